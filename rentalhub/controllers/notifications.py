from flask import Blueprint, jsonify

from ..utils.decorators import current_identity, login_required, services

bp = Blueprint("notifications", __name__, url_prefix="/notifications")


@bp.get("")
@login_required
def inbox():
    """Latest notifications plus the unread count."""
    return jsonify(services().notifications.inbox(current_identity().user_id))


@bp.patch("/mark-all-read")
@login_required
def mark_all_read():
    services().notifications.mark_all_read(current_identity().user_id)
    return jsonify(message="All notifications marked as read")


@bp.patch("/<nid>/read")
@login_required
def mark_read(nid):
    return jsonify(services().notifications.mark_read(nid, current_identity().user_id))


@bp.delete("/<nid>")
@login_required
def delete(nid):
    services().notifications.delete(nid, current_identity().user_id)
    return jsonify(message="Notification deleted")
