from flask import Blueprint, jsonify

from ..utils.constants import Role
from ..utils.decorators import current_identity, login_required, role_required, services

bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")


@bp.get("/vendor")
@login_required
@role_required(Role.VENDOR)
def vendor_dashboard():
    return jsonify(services().analytics.vendor_stats(current_identity().user_id))


@bp.get("/customer")
@login_required
@role_required(Role.CUSTOMER)
def customer_dashboard():
    return jsonify(services().analytics.customer_stats(current_identity().user_id))


@bp.get("/admin")
@login_required
@role_required(Role.ADMIN)
def admin_dashboard():
    return jsonify(services().analytics.admin_summary())
