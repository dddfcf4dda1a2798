from flask import Blueprint, jsonify, request

from ..utils.constants import Role
from ..utils.decorators import current_identity, login_required, role_required, services

bp = Blueprint("admin", __name__, url_prefix="/admin")


@bp.get("/users")
@login_required
@role_required(Role.ADMIN)
def list_users():
    users = services().users.list_users(request.args.get("search"), request.args.get("role"))
    return jsonify(users=users, total=len(users))


@bp.post("/users/<uid>/deactivate")
@login_required
@role_required(Role.ADMIN)
def deactivate_user(uid):
    user = services().users.set_active(uid, current_identity(), False)
    return jsonify(user=user.to_dict(), message="User deactivated successfully")


@bp.post("/users/<uid>/activate")
@login_required
@role_required(Role.ADMIN)
def activate_user(uid):
    user = services().users.set_active(uid, current_identity(), True)
    return jsonify(user=user.to_dict(), message="User activated successfully")
