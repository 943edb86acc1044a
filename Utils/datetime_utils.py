"""
DateTime helpers - every timestamp in the store is IST (Indian Standard Time).
Validity windows of offers and coupons are compared with these helpers so that
naive values read back from SQLite compare cleanly with aware ones.
"""
from datetime import datetime, timezone, timedelta
from typing import Optional

# IST timezone (UTC+5:30)
IST = timezone(timedelta(hours=5, minutes=30))


def to_ist(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is in IST timezone.
    Naive datetimes are assumed to already be IST wall-clock time.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=IST)

    if dt.tzinfo == IST:
        return dt

    return dt.astimezone(IST)


def to_ist_isoformat(dt: Optional[datetime]) -> Optional[str]:
    """ISO string in IST for API responses (e.g. "2024-12-17T14:30:00+05:30")."""
    ist_dt = to_ist(dt)
    if ist_dt is None:
        return None
    return ist_dt.isoformat()


def now_ist() -> datetime:
    """Current IST datetime (timezone-aware)."""
    return datetime.now(IST)


def within_window(now: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    """
    True when `now` lies inside the closed interval [start, end].
    A missing bound is treated as open on that side.
    """
    now = to_ist(now)
    if start is not None and now < to_ist(start):
        return False
    if end is not None and now > to_ist(end):
        return False
    return True
