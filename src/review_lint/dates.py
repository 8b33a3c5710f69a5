from __future__ import annotations

from datetime import date, datetime, time, timedelta
import re

MS_PER_DAY = 24 * 60 * 60 * 1000

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def format_date(value: date | datetime) -> str:
    """Zero-padded local calendar date, ``YYYY-MM-DD``."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date(text: str) -> datetime | None:
    """Parse ``YYYY-MM-DD`` strictly as local midnight; ``None`` when malformed."""
    match = _ISO_DATE_RE.match(text)
    if match is None:
        return None
    try:
        return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole elapsed days from ``earlier`` to ``later``, floored.

    This is a duration, not a calendar-day difference: 23 hours is 0 days and
    a negative span floors towards minus infinity.
    """
    delta = later - earlier
    millis = (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000
    return millis // MS_PER_DAY


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time())


def start_of_next_week(value: datetime) -> datetime:
    return start_of_day(value) + timedelta(days=7)


def coerce_datetime(value: object) -> datetime | None:
    """Normalize database date fields: ``date`` becomes local midnight."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _naive_local(value)
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        text = value.strip()
        day = parse_date(text)
        if day is not None:
            return day
        return _naive_local(datetime.fromisoformat(text))
    raise ValueError(f"expected ISO date or datetime, got {type(value).__name__}")


def _naive_local(value: datetime) -> datetime:
    # Offsets are converted to local wall-clock time so every instant compares
    # against a naive local ``now``.
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
