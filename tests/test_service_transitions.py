"""Status transitions: the table, who may trigger each edge, and side effects."""
import pytest

from conftest import seed_rental
from rentalhub.exceptions import (
    DateConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from rentalhub.services import build_services
from rentalhub.services.rental_service import transition_table
from rentalhub.utils.constants import ApprovalMode, Party, RentalStatus

TABLE = transition_table(ApprovalMode.DIRECT)
PAIRS = [(a, b) for a in RentalStatus.ALL for b in RentalStatus.ALL]


@pytest.fixture
def seeded(store, product, vendor, customer):
    def _seed(status, start="2025-06-01", end="2025-06-04"):
        return seed_rental(store, product, status, start, end,
                           renter_id=customer.user_id, owner_id=vendor.user_id)

    return _seed


def test_scenario_b_approve_promotes_to_active(svc, store, book, customer, vendor, product):
    rental = book(customer, "2025-06-01", "2025-06-04")

    approved = svc.rentals.approve_rental(rental.rental_id, vendor)

    assert approved.status == "active"
    assert store.get_rental(rental.rental_id)["status"] == "active"
    # availability is date-range based; the global flag is untouched
    assert store.get_product(product)["is_available"] is True


def test_scenario_d_active_back_to_pending_is_invalid(svc, seeded, vendor):
    rid = seeded("active")

    with pytest.raises(InvalidTransitionError) as exc:
        svc.rentals.transition_status(rid, vendor, "pending")

    assert exc.value.details == {"current_status": "active", "target_status": "pending"}


def test_scenario_e_renter_cannot_approve(svc, book, customer):
    rental = book(customer, "2025-06-01", "2025-06-04")

    with pytest.raises(ForbiddenError):
        svc.rentals.approve_rental(rental.rental_id, customer)


@pytest.mark.parametrize("current,target", [p for p in PAIRS if p not in TABLE])
def test_pairs_outside_table_are_invalid(svc, store, seeded, vendor, customer, current, target):
    rid = seeded(current)

    for actor in (vendor, customer):
        with pytest.raises(InvalidTransitionError) as exc:
            svc.rentals.transition_status(rid, actor, target)
        assert exc.value.details == {"current_status": current, "target_status": target}

    assert store.get_rental(rid)["status"] == current


@pytest.mark.parametrize("current,target", sorted(TABLE))
def test_pairs_in_table_require_the_right_party(svc, store, seeded, vendor, customer, customer2,
                                                current, target):
    allowed = TABLE[(current, target)]
    wrong = customer2 if Party.RENTER in allowed else customer
    right = vendor if Party.OWNER in allowed else customer
    rid = seeded(current)

    with pytest.raises(ForbiddenError):
        svc.rentals.transition_status(rid, wrong, target)
    assert store.get_rental(rid)["status"] == current

    rental = svc.rentals.transition_status(rid, right, target)
    assert rental.status == target
    assert store.get_rental(rid)["status"] == target


@pytest.mark.parametrize("flag", [True, False])
def test_completion_always_releases_product(svc, store, seeded, vendor, product, flag):
    store.set_availability(product, flag)
    rid = seeded("active")

    svc.rentals.complete_rental(rid, vendor)

    assert store.get_product(product)["is_available"] is True


def test_unknown_target_status_is_invalid(svc, seeded, vendor):
    rid = seeded("pending")

    with pytest.raises(InvalidTransitionError):
        svc.rentals.transition_status(rid, vendor, "archived")


def test_missing_rental(svc, vendor):
    with pytest.raises(NotFoundError):
        svc.rentals.transition_status("missing", vendor, "active")


def test_approving_overlapping_request_conflicts(svc, store, book, customer, customer2, vendor):
    first = book(customer, "2025-06-01", "2025-06-04")
    second = book(customer2, "2025-06-03", "2025-06-06")
    svc.rentals.approve_rental(first.rental_id, vendor)

    with pytest.raises(DateConflictError) as exc:
        svc.rentals.approve_rental(second.rental_id, vendor)

    assert exc.value.details["available_after"].isoformat() == "2025-06-04"
    assert store.get_rental(second.rental_id)["status"] == "pending"
    # rejecting the loser is still possible
    assert svc.rentals.reject_rental(second.rental_id, vendor).status == "rejected"


def test_approved_to_active_keeps_its_own_slot(svc, seeded, vendor):
    rid = seeded("approved")

    assert svc.rentals.start_rental(rid, vendor).status == "active"


def test_admin_acts_on_owner_side(svc, book, customer, admin):
    rental = book(customer, "2025-06-01", "2025-06-04")

    assert svc.rentals.approve_rental(rental.rental_id, admin).status == "active"


def test_two_step_approval(store, clock, book, customer, vendor):
    two_step = build_services(store, clock=clock, approval_mode=ApprovalMode.TWO_STEP)
    rental = book(customer, "2025-06-01", "2025-06-04")

    approved = two_step.rentals.approve_rental(rental.rental_id, vendor)
    assert approved.status == "approved"

    started = two_step.rentals.start_rental(rental.rental_id, vendor)
    assert started.status == "active"


def test_two_step_has_no_direct_edge(store, clock, book, customer, vendor):
    two_step = build_services(store, clock=clock, approval_mode=ApprovalMode.TWO_STEP)
    rental = book(customer, "2025-06-01", "2025-06-04")

    with pytest.raises(InvalidTransitionError):
        two_step.rentals.transition_status(rental.rental_id, vendor, "active")


def test_unknown_approval_mode_is_rejected():
    with pytest.raises(ValueError):
        transition_table("whenever")


# ---------- renter cancellation ----------
@pytest.mark.parametrize("status", ["pending", "approved"])
def test_renter_cancels_pending_or_approved(svc, seeded, customer, status):
    rid = seeded(status)

    assert svc.rentals.cancel_rental(rid, customer).status == "cancelled"


@pytest.mark.parametrize("status", ["active", "completed", "rejected", "cancelled"])
def test_renter_cannot_cancel_later_states(svc, store, seeded, customer, status):
    rid = seeded(status)

    with pytest.raises(InvalidTransitionError):
        svc.rentals.cancel_rental(rid, customer)
    assert store.get_rental(rid)["status"] == status


def test_only_renter_uses_cancel_wrapper(svc, seeded, vendor, customer2):
    rid = seeded("pending")

    for actor in (vendor, customer2):
        with pytest.raises(ForbiddenError):
            svc.rentals.cancel_rental(rid, actor)


# ---------- notifications ----------
def test_renter_is_notified_of_status(svc, book, customer, vendor):
    rental = book(customer, "2025-06-01", "2025-06-04")

    svc.rentals.approve_rental(rental.rental_id, vendor)

    statuses = [n for n in svc.notifications.inbox(customer.user_id)["notifications"]
                if n["type"] == "rental_status"]
    assert len(statuses) == 1
    assert statuses[0]["message"] == "Your rental for Camera is now active"


def test_notification_failure_does_not_fail_transition(svc, store, seeded, vendor, monkeypatch):
    rid = seeded("pending")

    def boom(*args, **kwargs):
        raise RuntimeError("queue full")

    monkeypatch.setattr(svc.notifications, "notify", boom)

    assert svc.rentals.reject_rental(rid, vendor).status == "rejected"
    assert store.get_rental(rid)["status"] == "rejected"
