from flask import Blueprint, jsonify, session

from ..exceptions import ValidationError
from ..utils.decorators import current_identity, login_required, request_data, services

bp = Blueprint("auth", __name__, url_prefix="/auth")


@bp.post("/register")
def register_submit():
    data = request_data()
    user = services().users.register(
        username=data.get("username"),
        password=data.get("password") or "",
        role=data.get("role") or "customer",
    )
    return jsonify(user=user.to_dict(), message="Registration successful. Please login."), 201


@bp.post("/login")
def login_submit():
    data = request_data()
    user = services().users.authenticate(data.get("username"), data.get("password"))
    if user is None:
        raise ValidationError("Invalid credentials")

    session.clear()
    session["uid"] = user.user_id
    session["role"] = user.role
    session["username"] = user.username
    return jsonify(user=user.to_dict(), message="Logged in")


@bp.post("/logout")
def logout():
    session.clear()
    return jsonify(message="Logged out")


@bp.get("/me")
@login_required
def me():
    return jsonify(user=services().users.get_user(current_identity().user_id).to_dict())
