"""Rental lifecycle: creation, status transitions and date edits."""

import logging
from typing import Callable, Optional

from ..exceptions import (
    DateConflictError,
    DateInPastError,
    ForbiddenError,
    InvalidTransitionError,
    PriceMismatchError,
    ProductNotFoundError,
    ProductUnavailableError,
    RentalNotFoundError,
    SelfRentalForbiddenError,
)
from ..models.product import Product
from ..models.rental import Rental
from ..models.store import Store
from ..models.user import Identity
from ..utils.constants import (
    ApprovalMode,
    DEFAULT_PRICE_TOLERANCE,
    Party,
    RentalStatus as S,
)
from ..utils.dates import (
    day_count,
    duration_bucket,
    get_tz,
    now_in,
    start_of_day,
    utc_now_iso,
)
from .availability_service import AvailabilityService
from .common import _store, parse_range, round2, to_float_safe
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

OWNER = frozenset({Party.OWNER})
EITHER = frozenset({Party.OWNER, Party.RENTER})

# (current status, target status) -> parties allowed to trigger the edge.
# Terminal states have no outgoing edges.
TRANSITIONS = {
    (S.PENDING, S.APPROVED): OWNER,
    (S.PENDING, S.REJECTED): OWNER,
    (S.PENDING, S.CANCELLED): EITHER,
    (S.APPROVED, S.ACTIVE): OWNER,
    (S.APPROVED, S.CANCELLED): EITHER,
    (S.ACTIVE, S.COMPLETED): OWNER,
    (S.ACTIVE, S.CANCELLED): OWNER,
}

# direct approval promotes a request straight to active
DIRECT_APPROVAL_EDGE = {(S.PENDING, S.ACTIVE): OWNER}

RENTER_CANCELLABLE = frozenset({S.PENDING, S.APPROVED})


def transition_table(approval_mode: str = ApprovalMode.DIRECT) -> dict:
    if approval_mode not in ApprovalMode.ALL:
        raise ValueError(f"Unknown approval mode: {approval_mode!r}")
    table = dict(TRANSITIONS)
    if approval_mode == ApprovalMode.DIRECT:
        table.update(DIRECT_APPROVAL_EDGE)
    return table


def expected_price(product: Product, start, end) -> tuple[int, float]:
    """Flat daily rate: (days, days x per_day)."""
    days = day_count(start, end)
    return days, round2(days * product.per_day)


class RentalService:
    """
    Owns the lifecycle of rental records.

    Mutations that depend on the set of committed bookings of a product run
    under that product's lock, so availability checks and writes are atomic
    per product. Notifications are best effort and never undo a mutation.
    """

    def __init__(
            self,
            store: Optional[Store] = None,
            notifier: Optional[NotificationService] = None,
            availability: Optional[AvailabilityService] = None,
            *,
            clock: Optional[Callable] = None,
            timezone: str = "UTC",
            approval_mode: str = ApprovalMode.DIRECT,
            price_tolerance: float = DEFAULT_PRICE_TOLERANCE,
    ):
        self._store = store
        self.notifier = notifier or NotificationService(store)
        self.availability = availability or AvailabilityService(store)
        self.timezone = timezone
        self.clock = clock or (lambda: now_in(self.timezone))
        self.approval_mode = approval_mode
        self.transitions = transition_table(approval_mode)
        self.price_tolerance = float(price_tolerance)

    @property
    def store(self) -> Store:
        return self._store or _store()

    # ---------- lookups ----------
    def get_product(self, product_id) -> Product:
        product = Product.from_dict(self.store.get_product(product_id)) if product_id else None
        if product is None:
            raise ProductNotFoundError(f"Error: product '{product_id}' not found")
        return product

    def get_rental(self, rental_id) -> Rental:
        rental = Rental.from_dict(self.store.get_rental(rental_id)) if rental_id else None
        if rental is None:
            raise RentalNotFoundError(f"Error: rental '{rental_id}' not found")
        return rental

    def parties(self, rental: Rental, actor: Identity) -> set:
        """Roles the actor holds on this rental. Admins act on the owner's side."""
        held = set()
        if actor.user_id == rental.owner_id or actor.is_admin:
            held.add(Party.OWNER)
        if actor.user_id == rental.renter_id:
            held.add(Party.RENTER)
        return held

    # ---------- validation helpers ----------
    def _ensure_future(self, start) -> None:
        now = self.clock()
        begins = start_of_day(start, self.timezone)
        if now.tzinfo is None:
            now = get_tz(self.timezone).localize(now)
        if begins <= now:
            raise DateInPastError(start_date=start)

    def _ensure_no_conflict(self, product_id, start, end, exclude_rental_id=None) -> None:
        after = self.availability.find_earliest_available_after(
            product_id, start, end, exclude_rental_id=exclude_rental_id,
        )
        if after is not None:
            raise DateConflictError(
                f"Error: product is not available for these dates; "
                f"available after {after.isoformat()}",
                available_after=after,
            )

    def _dispatch(self, send, rental: Rental) -> None:
        try:
            send(rental, rental.product_title)
        except Exception:
            logger.exception("Notification failed for rental %s", rental.rental_id)

    # ---------- operations ----------
    def calculate_price(self, product_id, start, end) -> dict:
        """Quote for a range without creating anything."""
        d1, d2 = parse_range(start, end)
        product = self.get_product(product_id)
        days, total = expected_price(product, d1, d2)
        return {
            "product_id": product.product_id,
            "start_date": d1.isoformat(),
            "end_date": d2.isoformat(),
            "days": days,
            "duration": duration_bucket(days),
            "per_day": product.per_day,
            "total_price": total,
        }

    def create_rental(self, renter: Identity, product_id, start, end, claimed_total_price) -> Rental:
        """
        Create a pending rental request.

        Checks run in a fixed order and the first failure wins: date range,
        start in the future, product exists, no self-rental, product enabled,
        no committed overlap, submitted price.
        """
        d1, d2 = parse_range(start, end)
        self._ensure_future(d1)
        product = self.get_product(product_id)
        if product.owner_id == renter.user_id:
            raise SelfRentalForbiddenError()
        if not product.is_available:
            raise ProductUnavailableError()

        with self.store.product_locks.hold(product.product_id):
            # deleted or repriced while waiting for the lock
            product = self.get_product(product.product_id)
            self._ensure_no_conflict(product.product_id, d1, d2)

            days, expected = expected_price(product, d1, d2)
            claimed = to_float_safe(claimed_total_price)
            if claimed is None or not abs(claimed - expected) <= self.price_tolerance:
                raise PriceMismatchError(
                    f"Error: invalid total price; expected price is {expected:.2f}",
                    expected_price=expected,
                    claimed_price=claimed,
                )

            now = utc_now_iso()
            rental = Rental(
                rental_id="",
                product_id=product.product_id,
                renter_id=renter.user_id,
                owner_id=product.owner_id,
                start_date=d1,
                end_date=d2,
                days=days,
                duration=duration_bucket(days),
                total_price=expected,
                status=S.PENDING,
                created_at=now,
                updated_at=now,
            )
            row = self.store.insert_rental(rental.to_dict())
            rental.rental_id = row["rental_id"]

        rental.product_title = product.title
        logger.info(
            "Rental %s requested: product=%s renter=%s %s..%s total=%.2f",
            rental.rental_id, product.product_id, renter.user_id, d1, d2, expected,
        )
        self._dispatch(self.notifier.rental_request, rental)
        return rental

    def transition_status(self, rental_id, actor: Identity, target_status, *, guard=None) -> Rental:
        """
        Move a rental along one edge of the transition table.

        `guard(rental)` runs under the lock before the table lookup; wrappers
        use it to add their own preconditions.
        """
        target = str(target_status or "").strip().lower()
        rental = self.get_rental(rental_id)

        with self.store.product_locks.hold(rental.product_id):
            rental = self.get_rental(rental_id)
            if guard is not None:
                guard(rental)

            held = self.parties(rental, actor)
            if not held:
                raise ForbiddenError()

            allowed = self.transitions.get((rental.status, target))
            if allowed is None:
                raise InvalidTransitionError(
                    f"Error: invalid status transition from {rental.status} to {target or '?'}",
                    current_status=rental.status,
                    target_status=target,
                )
            if not held & allowed:
                raise ForbiddenError(
                    f"Error: only the {' or '.join(sorted(allowed))} can move a rental "
                    f"from {rental.status} to {target}",
                    current_status=rental.status,
                    target_status=target,
                )

            if target in S.COMMITTED and not rental.is_committed:
                self._ensure_no_conflict(
                    rental.product_id, rental.start_date, rental.end_date,
                    exclude_rental_id=rental.rental_id,
                )

            previous = rental.status
            updated_at = utc_now_iso()
            with self.store.transaction():
                self.store.update_rental(rental.rental_id, {
                    "status": target,
                    "updated_at": updated_at,
                })
                if target == S.COMPLETED:
                    # completion releases the product
                    if not self.store.set_availability(rental.product_id, True):
                        logger.warning("Completed rental %s references missing product %s",
                                       rental.rental_id, rental.product_id)
            rental.status, rental.updated_at = target, updated_at

        product = self.store.get_product(rental.product_id) or {}
        rental.product_title = product.get("title")
        logger.info("Rental %s: %s -> %s by %s", rental.rental_id, previous, target, actor.user_id)
        self._dispatch(self.notifier.rental_status, rental)
        return rental

    # ---------- owner-side wrappers ----------
    def approve_rental(self, rental_id, actor: Identity) -> Rental:
        target = S.ACTIVE if self.approval_mode == ApprovalMode.DIRECT else S.APPROVED
        return self.transition_status(rental_id, actor, target)

    def reject_rental(self, rental_id, actor: Identity) -> Rental:
        return self.transition_status(rental_id, actor, S.REJECTED)

    def start_rental(self, rental_id, actor: Identity) -> Rental:
        return self.transition_status(rental_id, actor, S.ACTIVE)

    def complete_rental(self, rental_id, actor: Identity) -> Rental:
        return self.transition_status(rental_id, actor, S.COMPLETED)

    def cancel_rental(self, rental_id, actor: Identity) -> Rental:
        """Renter-initiated cancellation, allowed while pending or approved."""

        def renter_may_cancel(rental: Rental):
            if actor.user_id != rental.renter_id:
                raise ForbiddenError("Error: not authorized to cancel this rental")
            if rental.status not in RENTER_CANCELLABLE:
                raise InvalidTransitionError(
                    "Error: can only cancel pending or approved rentals",
                    current_status=rental.status,
                    target_status=S.CANCELLED,
                )

        return self.transition_status(rental_id, actor, S.CANCELLED, guard=renter_may_cancel)

    def update_rental_dates(self, rental_id, actor: Identity, new_start, new_end) -> Rental:
        """Move a pending request to new dates and re-price it at the current rate."""
        d1, d2 = parse_range(new_start, new_end)
        self._ensure_future(d1)
        rental = self.get_rental(rental_id)

        with self.store.product_locks.hold(rental.product_id):
            rental = self.get_rental(rental_id)
            if not self.parties(rental, actor):
                raise ForbiddenError()
            if rental.status != S.PENDING:
                raise InvalidTransitionError(
                    "Error: rental dates can only be changed while pending",
                    current_status=rental.status,
                )
            self._ensure_no_conflict(rental.product_id, d1, d2, exclude_rental_id=rental.rental_id)
            product = self.get_product(rental.product_id)
            days, total = expected_price(product, d1, d2)

            rental.start_date, rental.end_date = d1, d2
            rental.days, rental.duration, rental.total_price = days, duration_bucket(days), total
            rental.updated_at = utc_now_iso()
            self.store.update_rental(rental.rental_id, {
                "start_date": d1.isoformat(),
                "end_date": d2.isoformat(),
                "days": days,
                "duration": rental.duration,
                "total_price": total,
                "updated_at": rental.updated_at,
            })

        rental.product_title = product.title
        logger.info("Rental %s rescheduled to %s..%s total=%.2f", rental.rental_id, d1, d2, total)
        return rental
