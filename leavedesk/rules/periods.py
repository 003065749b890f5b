"""
Date / period helpers used by every rule.

All arithmetic is done on ``datetime.date`` values; datetimes are
truncated to their calendar date first so a time-of-day component can
never shift a day count.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta

_ISO_FMT = "%Y-%m-%d"
_BR_FMT = "%d/%m/%Y"


@dataclass(frozen=True)
class Period:
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("Period end must not precede its start")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def overlaps(self, other: "Period") -> bool:
        return self.end >= other.start and self.start <= other.end

    @property
    def days(self) -> int:
        return days_inclusive(self.start, self.end)


def as_date(value: date | datetime | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_date(value: object) -> date | None:
    """Parse ISO (YYYY-MM-DD) or Brazilian (DD/MM/YYYY) input; ``None`` when unusable."""
    if isinstance(value, (date, datetime)):
        return as_date(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    # Accept full ISO timestamps by keeping only the date part
    if "T" in text:
        text = text.split("T", 1)[0]
    for fmt in (_ISO_FMT, _BR_FMT):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def format_br(day: date | None) -> str:
    return day.strftime(_BR_FMT) if day else ""


def days_inclusive(start: date | datetime | None, end: date | datetime | None) -> int:
    """Number of calendar days in [start, end]; 0 when either bound is missing."""
    start_d, end_d = as_date(start), as_date(end)
    if start_d is None or end_d is None:
        return 0
    return (end_d - start_d).days + 1


def safe_date(year: int, month: int, day: int) -> date:
    """``date(year, month, day)`` clamped to the last day of the month (29/02 -> 28/02)."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last))


def anniversary_in(contract_start: date, year: int) -> date:
    return safe_date(year, contract_start.month, contract_start.day)


def eligibility_window(birth_date: date, reference_year: int) -> Period:
    """Day-off window: 1st of the birth month in *reference_year* up to the day before
    the same point one year later. The reference year is never rolled forward here;
    callers choose it explicitly."""
    start = date(reference_year, birth_date.month, 1)
    end = date(reference_year + 1, birth_date.month, 1) - timedelta(days=1)
    return Period(start, end)
