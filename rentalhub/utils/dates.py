"""Date parsing, overlap and day-count helpers."""
import math
from datetime import date, datetime, time, timezone

import pytz

from .constants import DATE_FMT, Duration


def as_date(x) -> date:
    """Coerce any date-like to a naive date (supports 'YYYY-MM-DD' or ISO with T)."""
    if isinstance(x, datetime):
        return x.date()
    if isinstance(x, date):
        return x
    if isinstance(x, str):
        base = x.split("T", 1)[0].strip()
        return datetime.strptime(base, DATE_FMT).date()
    raise ValueError(f"Unsupported date: {x!r}")


def overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """
    Check overlap between the closed ranges [a_start, a_end] and [b_start, b_end].
    Boundary days count: a rental ending on 2025-06-04 conflicts with one starting
    on 2025-06-04.
    """
    return a_start <= b_end and a_end >= b_start


def day_count(start, end) -> int:
    """Number of rental days, rounded up to whole days."""
    return math.ceil((end - start).total_seconds() / 86400)


def duration_bucket(days: int) -> str:
    if days <= 7:
        return Duration.DAILY
    if days <= 30:
        return Duration.WEEKLY
    return Duration.MONTHLY


def get_tz(tz_name: str):
    return pytz.timezone(tz_name or "UTC")


def now_in(tz_name: str) -> datetime:
    """Current aware datetime in the given zone. Wrapped for easier testing."""
    return datetime.now(get_tz(tz_name))


def start_of_day(d: date, tz_name: str) -> datetime:
    """Midnight of `d` in the given zone, as an aware datetime."""
    return get_tz(tz_name).localize(datetime.combine(d, time.min))


def local_date(moment: datetime, tz_name: str) -> date:
    if moment.tzinfo is None:
        moment = get_tz(tz_name).localize(moment)
    return moment.astimezone(get_tz(tz_name)).date()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
