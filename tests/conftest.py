import sys, pathlib

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from datetime import datetime

import pytest
import pytz

from rentalhub import create_app
from rentalhub.models.store import Store
from rentalhub.models.user import Identity
from rentalhub.services import build_services
from rentalhub.utils.constants import Role

# Every service test runs "today" = 2025-05-01
NOW = pytz.utc.localize(datetime(2025, 5, 1, 9, 0))


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def make_user(store, username, role):
    uid = store.create_user(username, "-", role)
    return Identity(user_id=uid, role=role)


def seed_rental(store, product_id, status, start, end, renter_id="u-renter", owner_id="u-owner",
                per_day=100.0):
    """Insert a rental row directly, bypassing validation."""
    from rentalhub.utils.dates import as_date, day_count
    days = day_count(as_date(start), as_date(end))
    row = store.insert_rental({
        "product_id": product_id,
        "renter_id": renter_id,
        "owner_id": owner_id,
        "start_date": start,
        "end_date": end,
        "days": days,
        "duration": "daily",
        "total_price": days * per_day,
        "status": status,
    })
    return row["rental_id"]


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    """A clean in-memory store, never written to disk."""
    return Store(path=None)


@pytest.fixture
def svc(store, clock):
    return build_services(store, clock=clock)


@pytest.fixture
def vendor(store):
    return make_user(store, "vendor1", Role.VENDOR)


@pytest.fixture
def customer(store):
    return make_user(store, "alice", Role.CUSTOMER)


@pytest.fixture
def customer2(store):
    return make_user(store, "bob", Role.CUSTOMER)


@pytest.fixture
def admin(store):
    return make_user(store, "root", Role.ADMIN)


@pytest.fixture
def product(store, vendor):
    """Product P: 100 per day, owned by vendor1."""
    return store.create_product({"owner_id": vendor.user_id, "title": "Camera", "per_day": 100})


@pytest.fixture
def book(svc, product):
    """Create a pending rental at the correct price."""

    def _book(renter, start, end, product_id=None):
        pid = product_id or product
        quote = svc.rentals.calculate_price(pid, start, end)
        return svc.rentals.create_rental(renter, pid, start, end, quote["total_price"])

    return _book


@pytest.fixture
def app(store, clock):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "STORE": store,
        "CLOCK": clock,
        "DATA_PATH": "",
    })
    return app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c
