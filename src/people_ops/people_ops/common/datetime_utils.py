from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone

from ..core.exceptions import ValidationError

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True)
class PeriodRange:
    """Inclusive UTC interval covering one payroll month."""

    period: str
    start: datetime
    end: datetime

    def overlaps(self, start: date, end: date | None) -> bool:
        """True when ``[start, end]`` intersects the month; ``end=None`` is open-ended."""
        if start > self.end.date():
            return False
        return end is None or end >= self.start.date()


def parse_period(value: str) -> PeriodRange:
    """Parse ``YYYY-MM`` into the first and last instant of that month (UTC)."""
    m = _PERIOD_RE.match((value or "").strip())
    if not m:
        raise ValidationError(f"Invalid period {value!r}, expected YYYY-MM")

    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid period {value!r}, month must be 01-12")

    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999000, tzinfo=timezone.utc)
    return PeriodRange(period=f"{year:04d}-{month:02d}", start=start, end=end)


def utc_now() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc)


def parse_iso_datetime(value: str, field_name: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field_name} must be an ISO-8601 date") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_iso_date(value: str, field_name: str) -> date:
    """Parse ``YYYY-MM-DD``; a full timestamp is reduced to its UTC calendar day."""
    text = str(value or "")
    if len(text) == 10:
        try:
            return date.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"{field_name} must be an ISO-8601 date") from None
    return parse_iso_datetime(text, field_name).date()
