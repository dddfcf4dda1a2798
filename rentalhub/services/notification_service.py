"""Notification dispatch, inbox queries and the start-reminder job."""

import logging
from datetime import date, timedelta
from typing import Optional

from ..exceptions import NotificationNotFoundError
from ..models.rental import Rental
from ..models.store import Store
from ..utils.constants import NotificationType, RentalStatus, NOTIFICATION_PAGE_SIZE
from .common import _store

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    RentalStatus.APPROVED: ("Rental Request Approved",
                            "Your rental request for {title} has been approved"),
    RentalStatus.ACTIVE: ("Rental Request Approved",
                          "Your rental for {title} is now active"),
    RentalStatus.REJECTED: ("Rental Request Rejected",
                            "Your rental request for {title} has been rejected"),
    RentalStatus.COMPLETED: ("Rental Completed",
                             "Rental for {title} has been marked as completed"),
    RentalStatus.CANCELLED: ("Rental Cancelled",
                             "Rental for {title} has been cancelled"),
}


def rental_payload(rental: Rental, title: str, message: str) -> dict:
    return {
        "title": title,
        "message": message,
        "data": {"rental_id": rental.rental_id, "product_id": rental.product_id},
    }


class NotificationService:
    """
    Stores notifications for later pickup by the client (the inbox).
    Delivery beyond the inbox is out of scope.
    """

    def __init__(self, store: Optional[Store] = None):
        self._store = store

    @property
    def store(self) -> Store:
        return self._store or _store()

    # ---------- dispatch ----------
    def notify(self, recipient_id: str, ntype: str, payload: dict) -> dict:
        if ntype not in NotificationType.ALL:
            raise ValueError(f"Unknown notification type: {ntype!r}")
        n = self.store.create_notification({
            "recipient_id": str(recipient_id),
            "type": ntype,
            "title": payload.get("title", ""),
            "message": payload.get("message", ""),
            "data": dict(payload.get("data") or {}),
        })
        logger.info("Notification %s -> %s (%s)", ntype, recipient_id, n["notification_id"])
        return n

    def rental_request(self, rental: Rental, product_title: str = None):
        title = product_title or "your product"
        return self.notify(rental.owner_id, NotificationType.RENTAL_REQUEST, rental_payload(
            rental, "New Rental Request", f"New rental request for {title}",
        ))

    def rental_status(self, rental: Rental, product_title: str = None):
        title = product_title or "your product"
        head, body = STATUS_MESSAGES.get(
            rental.status, ("Rental Updated", "Rental for {title} is now {status}"),
        )
        return self.notify(rental.renter_id, NotificationType.RENTAL_STATUS, rental_payload(
            rental, head, body.format(title=title, status=rental.status),
        ))

    def rental_reminder(self, rental: Rental, product_title: str = None):
        """Remind both parties that the rental starts tomorrow."""
        title = product_title or "your product"
        return [
            self.notify(rental.renter_id, NotificationType.RENTAL_REMINDER, rental_payload(
                rental, "Rental Start Reminder", f"Your rental for {title} starts tomorrow",
            )),
            self.notify(rental.owner_id, NotificationType.RENTAL_REMINDER, rental_payload(
                rental, "Rental Start Reminder (Owner)",
                f"Your product {title} has a rental starting tomorrow",
            )),
        ]

    def send_start_reminders(self, today: date) -> int:
        """
        Periodic job: remind parties of committed rentals starting tomorrow.
        Reads rentals only; never changes their status. Returns the count of
        rentals reminded.
        """
        tomorrow = (today + timedelta(days=1)).isoformat()
        rows = self.store.rentals_where(start_date=tomorrow, status=RentalStatus.COMMITTED)
        sent = 0
        for rental in map(Rental.from_dict, rows):
            product = self.store.get_product(rental.product_id) or {}
            try:
                self.rental_reminder(rental, product.get("title"))
            except Exception:
                logger.exception("Reminder failed for rental %s", rental.rental_id)
                continue
            sent += 1
        logger.info("Start reminders for %s: %d sent", tomorrow, sent)
        return sent

    # ---------- inbox ----------
    def inbox(self, recipient_id: str, limit: int = NOTIFICATION_PAGE_SIZE) -> dict:
        items = self.store.notifications_for(str(recipient_id))
        return {
            "notifications": items[:limit],
            "unread_count": sum(1 for n in items if not n.get("read")),
        }

    def mark_read(self, notification_id: str, recipient_id: str) -> dict:
        n = self.store.update_notification(notification_id, str(recipient_id), {"read": True})
        if n is None:
            raise NotificationNotFoundError()
        return n

    def mark_all_read(self, recipient_id: str) -> int:
        return self.store.mark_all_read(str(recipient_id))

    def delete(self, notification_id: str, recipient_id: str) -> None:
        if not self.store.delete_notification(notification_id, str(recipient_id)):
            raise NotificationNotFoundError()
