"""
Portion status classification and deadline helpers.

All functions take ``today`` explicitly and never read the clock.
"""
import logging
import math
from datetime import date, datetime, time, timedelta
from enum import Enum

from .grouping import field

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 7


class PortionStatus(str, Enum):
    COMPLETED = "completed"
    OVERDUE = "overdue"
    DUE_TODAY = "due-today"
    PENDING = "pending"


def _parse(value):
    """Return a datetime/date for ``value`` or None when it cannot be read."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None
    return None


def to_day(value):
    """Normalize a date, datetime or ISO string to a calendar date (time of day dropped)."""
    parsed = _parse(value)
    if isinstance(parsed, datetime):
        return parsed.date()
    return parsed


def planned_day(portion):
    """The portion's planned date as a calendar date; logs and returns None when unusable."""
    raw = field(portion, "planned_date")
    day = to_day(raw)
    if day is None:
        logger.warning(
            "Portion %s has no usable planned_date (%r); treating it as pending",
            field(portion, "id"), raw,
        )
    return day


def classify(portion, today):
    if field(portion, "is_completed"):
        return PortionStatus.COMPLETED
    planned = planned_day(portion)
    if planned is None:
        return PortionStatus.PENDING
    today_day = to_day(today)
    if planned < today_day:
        return PortionStatus.OVERDUE
    if planned == today_day:
        return PortionStatus.DUE_TODAY
    return PortionStatus.PENDING


def days_until(planned, today):
    """
    Whole days from the start of ``today`` to the raw planned value, rounded up.

    This is computed independently of ``classify``: a planned value carrying a
    time of day later than midnight counts as one more day here, while
    ``classify`` drops the time first.
    """
    parsed = _parse(planned)
    if isinstance(parsed, datetime):
        planned_dt = parsed.replace(tzinfo=None)
    else:
        planned_dt = datetime.combine(parsed, time.min)
    start = datetime.combine(to_day(today), time.min)
    return math.ceil((planned_dt - start).total_seconds() / 86400)


def days_overdue(portion, today):
    planned = planned_day(portion)
    if planned is None:
        return 0
    return (to_day(today) - planned).days


def deadline_label(days):
    if days == 0:
        return "today"
    if days == 1:
        return "tomorrow"
    return f"{days} days"


def upcoming(portions, today, window_days=UPCOMING_WINDOW_DAYS):
    """
    Incomplete portions planned within ``[today, today + window_days]``.

    Returns ``(portion, planned_date, days_until)`` tuples in input order;
    callers choose their own sort.
    """
    today_day = to_day(today)
    horizon = today_day + timedelta(days=window_days)
    items = []
    for portion in portions:
        if field(portion, "is_completed"):
            continue
        planned = planned_day(portion)
        if planned is None:
            continue
        if today_day <= planned <= horizon:
            items.append((portion, planned, days_until(field(portion, "planned_date"), today_day)))
    return items
