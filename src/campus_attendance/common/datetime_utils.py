from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now()


def day_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """[start, end) of the calendar day containing `moment`."""
    start = datetime.combine(moment.date(), time.min)
    return start, start + timedelta(days=1)


def month_start(moment: datetime) -> datetime:
    return datetime.combine(moment.date().replace(day=1), time.min)


def parse_date_range(start: Optional[str], end: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """Parse an optional startDate/endDate query pair.

    The range only applies when both bounds are given; the end date is
    inclusive of its whole day.
    """
    if not start or not end:
        return None, None
    try:
        start_d = parse_iso_date(start)
        end_d = parse_iso_date(end)
    except ValueError:
        raise ValidationError("startDate and endDate must be YYYY-MM-DD")
    if end_d < start_d:
        raise ValidationError("endDate must not be before startDate")
    return datetime.combine(start_d, time.min), datetime.combine(end_d + timedelta(days=1), time.min)


def format_hhmm(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value else None


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
