from __future__ import annotations

from datetime import date, datetime, time
from typing import Dict, Optional, Union


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    v = (value or "").strip()
    if not v:
        return None
    return parse_iso_date(v)


def parse_clock(value: Optional[str]) -> Optional[time]:
    """Parse HH:MM or HH:MM:SS into time; empty input gives None."""
    v = (value or "").strip()
    if not v:
        return None
    fmt = "%H:%M:%S" if v.count(":") == 2 else "%H:%M"
    return datetime.strptime(v, fmt).time()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def at_date(work_date: date, value: Union[datetime, time, None]) -> Optional[datetime]:
    """Anchor a wall-clock time (or a full timestamp) on the given work date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.combine(work_date, value)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end`` (0 within the same month)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def add_months(value: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    for day in (value.day, 30, 29, 28):
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError(f"Cannot shift {value!r} by {months} months")


def parse_cutoffs(value) -> Dict[str, time]:
    """Parse ``AM=10:00,PM=14:00`` (or a ready mapping) into period -> time."""
    if isinstance(value, dict):
        return {str(k).strip().upper(): v if isinstance(v, time) else parse_clock(str(v)) for k, v in value.items()}
    cutoffs: Dict[str, time] = {}
    for part in (value or "").split(","):
        if not part.strip():
            continue
        period, sep, clock = part.partition("=")
        if not sep or not period.strip():
            raise ValueError(f"Invalid cutoff entry: {part!r}")
        cutoff = parse_clock(clock)
        if cutoff is None:
            raise ValueError(f"Missing time in cutoff entry: {part!r}")
        cutoffs[period.strip().upper()] = cutoff
    return cutoffs
