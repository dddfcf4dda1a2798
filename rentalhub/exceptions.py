"""
Custom exception classes for the rentalhub marketplace.

Every domain failure carries a machine-readable ``kind``, a human-readable
``message`` and optional structured ``details`` so the HTTP layer can explain
the problem instead of returning a generic 500 error.
"""
from datetime import date


class RentalError(Exception):
    """Base class for caller-facing rental failures."""

    kind = "RentalError"
    status_code = 400
    default_message = "Error: rental request failed"

    def __init__(self, message: str = None, **details) -> None:
        self.message = message or self.default_message
        self.details = {k: v for k, v in details.items() if v is not None}
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message

    def to_dict(self) -> dict:
        payload = {"kind": self.kind, "message": self.message}
        if self.details:
            payload["details"] = {
                k: (v.isoformat() if isinstance(v, date) else v)
                for k, v in self.details.items()
            }
        return payload


class ValidationError(RentalError):
    """Raised when a request payload is missing fields or malformed."""

    kind = "ValidationError"
    default_message = "Error: invalid request data"


class InvalidDateRangeError(RentalError):
    """Raised when dates cannot be parsed or the end is not after the start."""

    kind = "InvalidDateRange"
    default_message = "Error: end date must be after start date"


class DateInPastError(RentalError):
    """Raised when the start date is not in the future at submission time."""

    kind = "DateInPast"
    default_message = "Error: start date must be in the future"


class NotFoundError(RentalError):
    kind = "NotFound"
    status_code = 404
    default_message = "Error: not found"


class ProductNotFoundError(NotFoundError):
    """Raised when a product ID cannot be found in the system."""

    default_message = "Error: product not found"


class RentalNotFoundError(NotFoundError):
    """Raised when a rental record cannot be found in the system."""

    default_message = "Error: rental not found"


class NotificationNotFoundError(NotFoundError):
    default_message = "Error: notification not found"


class UserNotFoundError(NotFoundError):
    default_message = "Error: user not found"


class SelfRentalForbiddenError(RentalError):
    """Raised when an owner tries to rent their own product."""

    kind = "SelfRentalForbidden"
    default_message = "Error: cannot rent your own product"


class ProductUnavailableError(RentalError):
    """Raised when a product is globally disabled for rent."""

    kind = "ProductUnavailable"
    default_message = "Error: product is not available for rent"


class DateConflictError(RentalError):
    """Raised when the requested range overlaps a committed booking."""

    kind = "DateConflict"
    status_code = 409
    default_message = "Error: product is not available for these dates"


class PriceMismatchError(RentalError):
    """Raised when the submitted total disagrees with the server-computed price."""

    kind = "PriceMismatch"
    default_message = "Error: invalid total price"


class ForbiddenError(RentalError):
    """Raised when the actor lacks the role required for an operation."""

    kind = "Forbidden"
    status_code = 403
    default_message = "Error: not authorized for this rental"


class InvalidTransitionError(RentalError):
    """Raised when the requested status change is not in the transition table."""

    kind = "InvalidTransition"
    status_code = 409
    default_message = "Error: invalid status transition"


class ProductInUseError(RentalError):
    """Raised when deleting a product that still has open rentals."""

    kind = "ProductInUse"
    status_code = 409
    default_message = "Error: product has pending or active rentals"


class StorageError(Exception):
    """Raised when the backing store cannot be read or written."""

    kind = "StorageError"
    status_code = 503

    def __init__(self, message: str = "Error: storage unavailable") -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}
