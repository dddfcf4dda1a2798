from flask import Blueprint, jsonify, request

from ..exceptions import RentalNotFoundError, ValidationError
from ..utils.decorators import current_identity, login_required, request_data, services

bp = Blueprint("rentals", __name__, url_prefix="/rentals")


@bp.post("")
@login_required
def create_rental():
    """Create a pending rental request for the current user."""
    data = request_data()
    rental = services().rentals.create_rental(
        current_identity(),
        data.get("product_id"),
        data.get("start_date"),
        data.get("end_date"),
        data.get("total_price"),
    )
    return jsonify(rental=rental.to_dict(), message="Rental request created successfully"), 201


@bp.post("/calculate-price")
@login_required
def calculate_price():
    data = request_data()
    quote = services().rentals.calculate_price(
        data.get("product_id"), data.get("start_date"), data.get("end_date"),
    )
    return jsonify(quote)


@bp.get("/my-rentals")
@login_required
def my_rentals():
    rentals = services().users.rentals_for_renter(
        current_identity().user_id, status=request.args.get("status"),
    )
    return jsonify(rentals)


@bp.get("/my-listings-rentals")
@login_required
def my_listings_rentals():
    rentals = services().users.rentals_for_owner(
        current_identity().user_id, status=request.args.get("status"),
    )
    return jsonify(rentals)


@bp.get("/<rid>")
@login_required
def rental_detail(rid):
    svc = services().rentals
    rental = svc.get_rental(rid)
    if not svc.parties(rental, current_identity()):
        # other people's rentals look missing
        raise RentalNotFoundError()
    return jsonify(rental=rental.to_dict())


@bp.patch("/<rid>/status")
@login_required
def update_status(rid):
    status = request_data().get("status")
    if not status:
        raise ValidationError("Field 'status' is required")
    rental = services().rentals.transition_status(rid, current_identity(), status)
    return jsonify(rental=rental.to_dict())


@bp.post("/<rid>/approve")
@login_required
def approve(rid):
    return jsonify(rental=services().rentals.approve_rental(rid, current_identity()).to_dict())


@bp.post("/<rid>/reject")
@login_required
def reject(rid):
    return jsonify(rental=services().rentals.reject_rental(rid, current_identity()).to_dict())


@bp.post("/<rid>/start")
@login_required
def start(rid):
    return jsonify(rental=services().rentals.start_rental(rid, current_identity()).to_dict())


@bp.post("/<rid>/complete")
@login_required
def complete(rid):
    return jsonify(rental=services().rentals.complete_rental(rid, current_identity()).to_dict())


@bp.patch("/<rid>/cancel")
@login_required
def cancel(rid):
    """Renter cancels their own request while pending or approved."""
    rental = services().rentals.cancel_rental(rid, current_identity())
    return jsonify(rental=rental.to_dict(), message="Rental cancelled successfully")


@bp.patch("/<rid>")
@login_required
def update_dates(rid):
    data = request_data()
    rental = services().rentals.update_rental_dates(
        rid, current_identity(), data.get("start_date"), data.get("end_date"),
    )
    return jsonify(rental=rental.to_dict())
