from functools import wraps
from flask import g
from security.session import session_from_request
from models import db
from models.user import User
from utils.errors import AuthenticationRequired

def load_current_user():
    sess = session_from_request()
    g.session = sess
    g.user = db.session.get(User, sess.user_id) if sess else None

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            raise AuthenticationRequired()
        return fn(*args, **kwargs)
    return wrapper
