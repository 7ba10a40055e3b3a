"""Errors raised by the booking and queue layers.

Routes let these propagate; the handlers registered in ``create_app``
turn them into ``{"error": ..., "code": ...}`` JSON responses.
"""


class ApiError(Exception):
    status_code = 500
    code = "internal_error"
    message = "Internal error"

    def __init__(self, message=None, details=None, status_code=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class AuthenticationRequired(ApiError):
    status_code = 401
    code = "authentication_required"
    message = "Authentication required"


class Forbidden(ApiError):
    status_code = 403
    code = "forbidden"
    message = "Forbidden"


class ValidationError(ApiError):
    status_code = 400
    code = "invalid_payload"
    message = "Invalid input"


class NotFoundOrIneligible(ApiError):
    status_code = 404
    code = "not_found"
    message = "Not found"


class Ineligible(NotFoundOrIneligible):
    """The entity exists but its state does not allow the request."""
    status_code = 400
    code = "ineligible"


class Conflict(ApiError):
    status_code = 400
    code = "conflict"
    message = "Conflict"
