from functools import wraps
from typing import Optional

from flask import current_app, jsonify, request, session

from ..models.user import Identity


def services():
    """Service container built by create_app()."""
    return current_app.extensions["rentalhub"]


def current_identity() -> Optional[Identity]:
    uid = session.get("uid")
    if not uid:
        return None
    return Identity(user_id=uid, role=session.get("role") or "")


def request_data() -> dict:
    """JSON body, falling back to form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if "uid" not in session:
            return jsonify(kind="Unauthorized", message="Please login first"), 401
        user = services().users.get_user(session["uid"])
        if user is None:
            session.clear()
            return jsonify(kind="Unauthorized", message="Please login first"), 401
        if not user.is_active:
            session.clear()
            return jsonify(kind="Forbidden", message="Error: this account has been deactivated"), 403
        return fn(*args, **kwargs)

    return wrapper


def role_required(*roles):
    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            role = session.get("role")
            if role not in roles:
                return jsonify(kind="Forbidden", message="Insufficient permission"), 403
            return fn(*args, **kwargs)

        return wrapper

    return deco
