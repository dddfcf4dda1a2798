from flask import Blueprint, jsonify, request

from ..exceptions import ValidationError
from ..services.common import parse_range
from ..utils.constants import Role
from ..utils.decorators import (
    current_identity,
    login_required,
    request_data,
    role_required,
    services,
)

bp = Blueprint("products", __name__, url_prefix="/products")


@bp.get("")
def catalog():
    """Public product listing with search, availability and price filters."""
    return jsonify(services().products.catalog(request.args))


@bp.post("")
@login_required
@role_required(Role.VENDOR, Role.ADMIN)
def create_product():
    product = services().products.create_product(current_identity(), request_data())
    return jsonify(product=product.to_dict()), 201


@bp.get("/mine")
@login_required
def my_products():
    return jsonify(services().products.products_for_owner(current_identity().user_id))


@bp.get("/<pid>")
def product_detail(pid):
    return jsonify(product=services().products.get_product(pid).to_dict())


@bp.patch("/<pid>")
@login_required
def update_product(pid):
    product = services().products.update_product(pid, current_identity(), request_data())
    return jsonify(product=product.to_dict())


@bp.delete("/<pid>")
@login_required
def delete_product(pid):
    services().products.delete_product(pid, current_identity())
    return jsonify(message="Product deleted successfully")


@bp.patch("/<pid>/availability")
@login_required
def set_availability(pid):
    data = request_data()
    if "is_available" not in data:
        raise ValidationError("Field 'is_available' is required")
    flag = data.get("is_available")
    if isinstance(flag, str):
        flag = flag.strip().lower() in ("1", "true", "yes", "on")
    product = services().products.set_availability(pid, current_identity(), bool(flag))
    return jsonify(product=product.to_dict())


@bp.get("/<pid>/rentals")
def booked_calendar(pid):
    """Committed bookings of a product, for disabling dates in the picker."""
    svc = services()
    svc.products.get_product(pid)
    ranges = svc.availability.booked_ranges(pid)
    return jsonify([{"start_date": s.isoformat(), "end_date": e.isoformat()} for s, e in ranges])


@bp.get("/<pid>/availability")
def check_availability(pid):
    svc = services()
    svc.products.get_product(pid)
    start, end = parse_range(request.args.get("start_date"), request.args.get("end_date"))
    after = svc.availability.find_earliest_available_after(pid, start, end)
    return jsonify(
        available=after is None,
        available_after=after.isoformat() if after else None,
    )
