"""Calendar-date helpers shared by every timeline rule.

Dates travel through the forms as strings in one of two shapes: ISO
``YYYY-MM-DD`` (storage and API) or display ``DD/MM/YYYY`` (typed by users).
Both are accepted everywhere; impossible dates such as 30/02/2020 and years
outside 1900-3099 are rejected. ``0000-00-00`` is the legacy "no end date"
marker and is treated like an empty value.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

MIN_YEAR = 1900
MAX_YEAR = 3099
OPEN_DATE_SENTINEL = "0000-00-00"

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_ISO_DATETIME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})[T ]")
_DISPLAY_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")

DateInput = date | str | None


class DateFormatError(ValueError):
    """A value cannot be read as a calendar date."""


def is_valid_date(day: int, month: int, year: int) -> bool:
    """Return True when the triple names a real day between 1900 and 3099."""
    if year < MIN_YEAR or year > MAX_YEAR:
        return False
    if month < 1 or month > 12:
        return False
    return 1 <= day <= _days_in_month(year, month)


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        return 31
    return (date(year, month + 1, 1) - date(year, month, 1)).days


def is_blank(value: DateInput) -> bool:
    """True for missing values, empty strings and the open-end sentinel."""
    if value is None:
        return True
    if isinstance(value, date):
        return False
    stripped = value.strip()
    return not stripped or stripped == OPEN_DATE_SENTINEL


def parse_date(value: DateInput) -> date:
    """Parse an ISO or display date string.

    Raises DateFormatError for blank input, unknown shapes and impossible dates.
    """
    if is_blank(value):
        msg = "Date is required"
        raise DateFormatError(msg)
    if isinstance(value, date):
        if not is_valid_date(value.day, value.month, value.year):
            msg = f"Date {value.isoformat()} is out of range"
            raise DateFormatError(msg)
        # datetime is a date subclass but does not compare with one
        return date(value.year, value.month, value.day)

    text = str(value).strip()
    match = _ISO_RE.match(text) or _ISO_DATETIME_RE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
    else:
        match = _DISPLAY_RE.match(text)
        if match is None:
            msg = f"Unrecognised date format: {text!r}"
            raise DateFormatError(msg)
        day, month, year = (int(part) for part in match.groups())

    if not is_valid_date(day, month, year):
        msg = f"Invalid calendar date: {text!r}"
        raise DateFormatError(msg)
    return date(year, month, day)


def to_date(value: DateInput) -> date | None:
    """Lenient variant of parse_date: None for blank or unparseable input."""
    try:
        return parse_date(value)
    except DateFormatError:
        return None


def is_malformed(value: DateInput) -> bool:
    """True when a value is present but cannot be parsed."""
    return not is_blank(value) and to_date(value) is None


def compare(a: DateInput, b: DateInput) -> int | None:
    """Return -1, 0 or 1, or None when either operand is not a valid date."""
    da = to_date(a)
    db = to_date(b)
    if da is None or db is None:
        return None
    if da < db:
        return -1
    if da > db:
        return 1
    return 0


def format_iso(value: date) -> str:
    return value.isoformat()


def format_display(value: date) -> str:
    return f"{value.day:02d}/{value.month:02d}/{value.year:04d}"


def normalize_date(value: DateInput) -> str:
    """Return the ISO form of a date value, or an empty string when it is blank or invalid."""
    parsed = to_date(value)
    return parsed.isoformat() if parsed else ""


def display(value: DateInput) -> str:
    """Human form used inside messages; falls back to the raw value."""
    parsed = to_date(value)
    if parsed is not None:
        return format_display(parsed)
    if is_blank(value):
        return "Current"
    return str(value)


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def day_before(value: date) -> date:
    return add_days(value, -1)


def add_years(value: date, years: int) -> date:
    """Shift by whole years; 29 February rolls over to 1 March in non-leap years."""
    target_year = value.year + years
    if value.month == 2 and value.day == 29 and _days_in_month(target_year, 2) == 28:
        return date(target_year, 3, 1)
    return value.replace(year=target_year)


def days_between_inclusive(a: DateInput, b: DateInput) -> int:
    """Inclusive day count between two dates, e.g. 1-10 March is 10 days."""
    start = parse_date(a)
    end = parse_date(b)
    return abs((end - start).days) + 1


def apply_date_mask(raw: str) -> str:
    """Progressively format typed digits as DD/MM/YYYY.

    Digits beyond eight are dropped, and a day above 31 or a month outside
    1-12 is cut back to its first digit so the user can keep typing.
    """
    digits = re.sub(r"\D", "", raw)[:8]
    if not digits:
        return ""

    if len(digits) <= 2:
        if len(digits) == 2 and int(digits) > 31:
            return digits[:1]
        return digits

    day = digits[:2]
    if int(day) > 31:
        return day[:1]

    if len(digits) <= 4:
        month = digits[2:]
        if len(month) == 2 and not 1 <= int(month) <= 12:
            return f"{day}/{month[:1]}"
        return f"{day}/{month}"

    return f"{day}/{digits[2:4]}/{digits[4:]}"
