"""Request payload parsing shared by the blueprints."""
from datetime import datetime

from flask import request

from utils.errors import ValidationError


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected")
    return data


def parse_iso(value, field: str) -> datetime:
    # Expect ISO format like "2026-01-20T18:00:00"
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(details={field: "required"})
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(details={field: "invalid datetime, use ISO e.g. 2026-01-20T18:00:00"})
    if parsed.tzinfo is not None:
        # stored naive in UTC
        parsed = (parsed - parsed.utcoffset()).replace(tzinfo=None)
    return parsed


def parse_date(value, field: str = "date") -> datetime:
    if not value:
        raise ValidationError("Date parameter is required", details={field: "required"})
    try:
        day = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError("Invalid date. Use YYYY-MM-DD", details={field: "invalid date"})
    return datetime(day.year, day.month, day.day)


def positive_int(value, field: str, minimum: int = 1) -> int:
    if isinstance(value, bool):
        raise ValidationError(details={field: "must be an integer"})
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(details={field: "must be an integer"})
    if number < minimum:
        raise ValidationError(details={field: f"must be >= {minimum}"})
    return number


def optional_text(data: dict, field: str, max_len: int = None, keep_blank: bool = False):
    # keep_blank: "" means "clear it", None means "not sent"
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(details={field: "must be a string"})
    value = value.strip()
    if max_len and len(value) > max_len:
        raise ValidationError(details={field: f"must be at most {max_len} characters"})
    if keep_blank:
        return value
    return value or None


def required_text(data: dict, field: str, max_len: int = None) -> str:
    value = optional_text(data, field, max_len)
    if not value:
        raise ValidationError(details={field: "required"})
    return value


def one_of(value, field: str, choices) -> str:
    if value not in choices:
        raise ValidationError(details={field: "must be one of " + ", ".join(choices)})
    return value
