# rentalhub/utils/constants.py

"""
Global constants for roles, statuses, and notification types.
These constants are imported by both models and services.
"""

# Date format (used for rental start/end)
DATE_FMT = "%Y-%m-%d"


class Role:
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"

    ALL = (CUSTOMER, VENDOR, ADMIN)
    SELF_SERVICE = (CUSTOMER, VENDOR)


class Party:
    """Relationship of an actor to one rental."""
    OWNER = "owner"
    RENTER = "renter"


class RentalStatus:
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (PENDING, APPROVED, ACTIVE, REJECTED, COMPLETED, CANCELLED)
    # committed bookings reserve their date range against other bookings
    COMMITTED = frozenset({APPROVED, ACTIVE})
    TERMINAL = frozenset({REJECTED, COMPLETED, CANCELLED})


class ApprovalMode:
    DIRECT = "direct"  # approve: pending -> active
    TWO_STEP = "two_step"  # approve: pending -> approved, then start

    ALL = (DIRECT, TWO_STEP)


class Duration:
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class NotificationType:
    RENTAL_REQUEST = "rental_request"
    RENTAL_STATUS = "rental_status"
    RENTAL_REMINDER = "rental_reminder"

    ALL = (RENTAL_REQUEST, RENTAL_STATUS, RENTAL_REMINDER)


# --- Misc ---
DEFAULT_PRICE_TOLERANCE = 1.0
NOTIFICATION_PAGE_SIZE = 50
