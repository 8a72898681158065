"""Locale-stable rendering of numbers, percentages and dates for funnel reports.

Numbers follow the Czech grouping convention (space thousands separator,
decimal comma) regardless of the host locale. Dates render as ``DD.MM.YYYY``.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from leasedesk.core.errors import InvalidDateError

NBSP = "\u00a0"
GROUP_SEPARATOR = NBSP
DECIMAL_SEPARATOR = ","


def to_datetime(value: date | datetime | str) -> datetime:
    """Parse a date-like value, raising :class:`InvalidDateError` instead of guessing."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidDateError(value) from exc
    raise InvalidDateError(value)


def round_half_up(value: float, decimals: int = 0) -> Decimal:
    """Round exact halves away from zero, so 12.25 becomes 12.3 rather than 12.2."""
    return Decimal(str(value)).quantize(Decimal(10) ** -decimals, rounding=ROUND_HALF_UP)


def format_fixed(value: float, decimals: int = 1) -> str:
    return f"{round_half_up(value, decimals):.{decimals}f}"


def format_number(value: float, decimals: int = 0) -> str:
    grouped = f"{round_half_up(value, decimals):,.{decimals}f}"
    localized = grouped.translate({ord(","): GROUP_SEPARATOR, ord("."): DECIMAL_SEPARATOR})
    return localized.replace(NBSP, " ")


def format_percent(value: float, decimals: int = 1) -> str:
    return f"{format_fixed(value, decimals)}%"


def format_date(value: date | datetime | str) -> str:
    d = to_datetime(value)
    return f"{d.day:02d}.{d.month:02d}.{d.year}"


def format_datetime(value: date | datetime | str) -> str:
    d = to_datetime(value)
    return f"{format_date(d)} {d.hour:02d}:{d.minute:02d}"


def format_period(date_from: date | datetime | str, date_to: date | datetime | str) -> str:
    return f"{format_date(date_from)} - {format_date(date_to)}"


def compact_date(value: date | datetime | str) -> str:
    """``YYYYMMDD``, used in export file names."""
    d = to_datetime(value)
    return f"{d.year:04d}{d.month:02d}{d.day:02d}"
