"""Datetime parsing helpers for cell values."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

DATETIME_FORMATS: list[str] = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
]


def from_epoch_millis(value: int | float) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def parse_datetime_utc(raw_value: object) -> datetime | None:
    """
    Parse a timestamp into an aware UTC datetime.

    Accepts datetime/date objects, epoch milliseconds (number or 13-digit
    string), ISO 8601 and a few common layouts. Naive values are taken as UTC.
    Returns None when the value cannot be parsed.
    """
    if isinstance(raw_value, datetime):
        dt = raw_value
    elif isinstance(raw_value, date):
        dt = datetime(raw_value.year, raw_value.month, raw_value.day)
    elif isinstance(raw_value, bool):
        return None
    elif isinstance(raw_value, (int, float)):
        try:
            return from_epoch_millis(raw_value)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(raw_value, str):
        parsed = _parse_string(raw_value.strip())
        if parsed is None:
            return None
        dt = parsed
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_string(value: str) -> datetime | None:
    if not value:
        return None

    # Epoch timestamps (seconds or milliseconds)
    if re.fullmatch(r"\d{10,13}", value):
        ts = int(value)
        if len(value) == 13:
            return from_epoch_millis(ts)
        return datetime.fromtimestamp(ts, tz=timezone.utc)

    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None
