"""
Date handling for the statistics endpoints.

Query values arrive as raw strings and are validated here rather than coerced:
an unparseable ``month`` is a ``ValidationError``, never "the current month".
All windows are computed in the configured local time zone and converted to
UTC storage strings for the range queries.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from expense_tracker.core.config import settings
from expense_tracker.core.errors import ValidationError

MIN_YEAR = 1900
MAX_YEAR = 2999


@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime

    def bounds(self) -> Tuple[str, str]:
        return to_storage(self.start), to_storage(self.end)


def local_zone(name: Optional[str] = None) -> ZoneInfo:
    try:
        return ZoneInfo(name or settings.TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown time zone: {name or settings.TIMEZONE}")


def now_local(tz: Optional[ZoneInfo] = None) -> datetime:
    return datetime.now(tz or local_zone())


def to_storage(value: datetime, tz: Optional[ZoneInfo] = None) -> str:
    """Fixed-width UTC ISO string; lexical order equals time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz or local_zone())
    try:
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
    except OverflowError:
        raise ValidationError(f"Timestamp out of range: {value.isoformat()}")


def _parse_int(raw: str, name: str) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {raw!r}")


def parse_day(raw: Optional[str], tz: Optional[ZoneInfo] = None, today: Optional[date] = None) -> date:
    """Accept ``YYYY-MM-DD`` or a full ISO timestamp; default to today."""
    tz = tz or local_zone()
    if raw is None or not str(raw).strip():
        return today or now_local(tz).date()

    raw = str(raw).strip()
    try:
        day = date.fromisoformat(raw)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(tz)
        except (ValueError, OverflowError):
            raise ValidationError(f"Invalid date: {raw!r}")
        day = parsed.date()

    if not MIN_YEAR <= day.year <= MAX_YEAR:
        raise ValidationError(f"date must fall between {MIN_YEAR} and {MAX_YEAR}, got {raw!r}")
    return day


def parse_month_year(
    month: Optional[str],
    year: Optional[str],
    tz: Optional[ZoneInfo] = None,
    today: Optional[date] = None,
) -> Tuple[int, int]:
    """Return ``(year, month)``, filling missing parts from today."""
    today = today or now_local(tz or local_zone()).date()

    target_month = today.month
    if month is not None and str(month).strip():
        target_month = _parse_int(month, "month")
        if not 1 <= target_month <= 12:
            raise ValidationError(f"month must be between 1 and 12, got {target_month}")

    target_year = today.year
    if year is not None and str(year).strip():
        target_year = _parse_int(year, "year")
        if not MIN_YEAR <= target_year <= MAX_YEAR:
            raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR}, got {target_year}")

    return target_year, target_month


def day_window(day: date, tz: Optional[ZoneInfo] = None) -> Window:
    tz = tz or local_zone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return Window(start, end)


def month_window(year: int, month: int, tz: Optional[ZoneInfo] = None) -> Window:
    """First through last instant of the month."""
    tz = tz or local_zone()
    start = datetime(year, month, 1, tzinfo=tz)
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    end = datetime(next_year, next_month, 1, tzinfo=tz) - timedelta(microseconds=1)
    return Window(start, end)


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1
