from datetime import date, datetime, timezone
from typing import Iterable, Optional, Union

DateLike = Union[date, datetime]


def utc_day(value: DateLike) -> date:
    """UTC calendar day of a timestamp. Naive datetimes are taken as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(timezone.utc).date()
    return value


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def compute_streak(checkin_dates: Iterable[DateLike], today: Optional[date] = None) -> int:
    """Consecutive days with a check-in, ending today.

    Dates are reduced to UTC calendar days, deduplicated and sorted newest
    first. The i-th day must be exactly i days before today; the first day
    that breaks the run ends the count.
    """
    current = today or utc_today()
    days = sorted({utc_day(item) for item in checkin_dates}, reverse=True)
    streak = 0
    for index, day in enumerate(days):
        if (current - day).days != index:
            break
        streak += 1
    return streak
