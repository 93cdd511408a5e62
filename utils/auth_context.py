from functools import wraps
from flask import current_app, g, jsonify, request

from models import db
from models.user import User


def load_current_user():
    """Identity comes pre-verified from the auth gateway as trusted headers."""
    g.user = None
    g.role = None

    raw_id = request.headers.get(current_app.config.get("AUTH_USER_HEADER", "X-User-Id"))
    if not raw_id:
        return
    try:
        user_id = int(raw_id)
    except ValueError:
        return

    user = db.session.get(User, user_id)
    if user is None:
        return
    g.user = user
    role = request.headers.get(current_app.config.get("AUTH_ROLE_HEADER", "X-User-Role"))
    g.role = (role or user.role or "").strip().upper()


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
