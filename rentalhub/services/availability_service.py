"""Availability engine: date conflicts against committed bookings."""

import logging
from datetime import date
from typing import Optional

from ..models.rental import Rental
from ..models.store import Store
from ..utils.constants import RentalStatus
from .common import _store

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Decides whether a product can be booked for a closed date range.

    Only committed bookings (approved/active) block a range. Pending requests
    and terminal rentals never do. The product's global availability flag is
    not consulted here; callers enforce it.
    """

    def __init__(self, store: Optional[Store] = None):
        self._store = store

    @property
    def store(self) -> Store:
        return self._store or _store()

    def conflicting_rentals(
            self,
            product_id: str,
            start: date,
            end: date,
            exclude_rental_id: Optional[str] = None,
    ) -> list[Rental]:
        rows = self.store.find_overlapping(
            product_id, start, end, RentalStatus.COMMITTED, exclude_id=exclude_rental_id,
        )
        conflicts = [Rental.from_dict(r) for r in rows]
        logger.debug(
            "Availability check product=%s range=%s..%s conflicts=%s",
            product_id, start, end,
            [(r.rental_id, r.start_date.isoformat(), r.end_date.isoformat(), r.status)
             for r in conflicts],
        )
        return conflicts

    def check_availability(self, product_id, start, end, exclude_rental_id=None) -> bool:
        """True iff no committed booking overlaps [start, end]."""
        return not self.conflicting_rentals(product_id, start, end, exclude_rental_id)

    def find_earliest_available_after(self, product_id, start, end,
                                      exclude_rental_id=None) -> Optional[date]:
        """Latest end date among the conflicting bookings, or None without conflicts."""
        conflicts = self.conflicting_rentals(product_id, start, end, exclude_rental_id)
        if not conflicts:
            return None
        return max(r.end_date for r in conflicts)

    def booked_ranges(self, product_id: str) -> list[tuple[date, date]]:
        """
        Return (start, end) pairs of committed bookings, sorted by start.
        Used by clients to disable booked date ranges.
        """
        rows = self.store.rentals_where(
            product_id=str(product_id), status=RentalStatus.COMMITTED,
        )
        ranges = [(r.start_date, r.end_date) for r in map(Rental.from_dict, rows)]
        ranges.sort(key=lambda t: t[0])
        return ranges
