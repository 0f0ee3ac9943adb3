"""Date helpers. Nothing here reads the wall clock; callers pass "now" in."""
from datetime import date, datetime, timedelta, timezone
from typing import Optional


def _naive(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 string (or date/datetime) into a naive datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _naive(value)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    return _naive(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def days_since(then: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed from ``then`` to ``now``, floored and never negative.

    Returns None when ``then`` is None.
    """
    if then is None:
        return None
    elapsed = _naive(now) - _naive(then)
    return max(0, elapsed.days)


def days_until_exam(exam_date: date, today: date) -> int:
    """Whole days until the exam; negative once the exam has passed."""
    if isinstance(exam_date, datetime):
        exam_date = exam_date.date()
    if isinstance(today, datetime):
        today = today.date()
    return (exam_date - today).days


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)
