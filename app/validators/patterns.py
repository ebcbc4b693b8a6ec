"""
app/validators/patterns.py

Format checks shared by field-type sniffing and row validation.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m/%d/%y",
    "%d.%m.%Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
)

PHONE_PATTERN = re.compile(r"^\+?[0-9().\-/]{7,20}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TIME_24H_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
TIME_12H_PATTERN = re.compile(r"^(0?[1-9]|1[0-2]):([0-5]\d)\s*([AaPp][Mm])$")

_MIN_PHONE_DIGITS = 7


def is_valid_phone(value: str) -> bool:
    compact = re.sub(r"\s+", "", value)
    if not PHONE_PATTERN.match(compact):
        return False
    return sum(ch.isdigit() for ch in compact) >= _MIN_PHONE_DIGITS


def is_valid_email(value: str) -> bool:
    return EMAIL_PATTERN.match(value.strip()) is not None


def parse_date(value: str) -> date | None:
    """
    Parse a calendar date from ISO or common spreadsheet formats.
    """

    raw = value.strip()
    if not raw:
        return None

    normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return datetime.fromisoformat(normalized).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def parse_time(value: str) -> time | None:
    """
    Parse ``HH:MM`` 24h or ``H:MM AM/PM`` 12h clock times.
    """

    raw = value.strip()
    match = TIME_24H_PATTERN.match(raw)
    if match:
        return time(int(match.group(1)), int(match.group(2)))

    match = TIME_12H_PATTERN.match(raw)
    if match:
        hour = int(match.group(1)) % 12
        if match.group(3).lower() == "pm":
            hour += 12
        return time(hour, int(match.group(2)))
    return None


def parse_int(value: str) -> int | None:
    raw = value.strip()
    try:
        return int(raw)
    except ValueError:
        return None


def combine_appointment(date_value: str | None, time_value: str | None) -> datetime | None:
    """
    Combine raw date and time cells into one naive local datetime.
    """

    if not date_value or not time_value:
        return None
    parsed_date = parse_date(date_value)
    parsed_time = parse_time(time_value)
    if parsed_date is None or parsed_time is None:
        return None
    return datetime.combine(parsed_date, parsed_time)
