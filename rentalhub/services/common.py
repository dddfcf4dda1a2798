"""Shared service helpers."""

import math
from typing import Optional

from ..exceptions import InvalidDateRangeError
from ..models.store import Store
from ..utils.dates import as_date


def _store() -> Store:
    """Get the singleton store instance."""
    return Store.instance()


def round2(x: float) -> float:
    return round(float(x), 2)


def to_float_safe(value) -> Optional[float]:
    """Safely convert to a finite float; return None if invalid, NaN or infinite."""
    if isinstance(value, bool):
        return None
    try:
        x = float(value)
    except (TypeError, ValueError):
        return None
    return x if math.isfinite(x) else None


def parse_range(start, end):
    """Parse both ends of a rental range; the end must be strictly after the start."""
    if start in (None, "") or end in (None, ""):
        raise InvalidDateRangeError("Error: start and end dates are required")
    try:
        d1 = as_date(start)
        d2 = as_date(end)
    except ValueError:
        raise InvalidDateRangeError("Error: invalid date format (expected YYYY-MM-DD)")
    if d1 >= d2:
        raise InvalidDateRangeError(
            "Error: end date must be after start date",
            start_date=d1, end_date=d2,
        )
    return d1, d2
