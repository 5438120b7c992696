"""
Value Formatting

Helpers that turn raw contract values into the strings used in
prompts, PDFs, and emails.

Examples:
    format_usd(450000)          -> "$450,000"
    number_to_words(450000)     -> "four hundred fifty thousand"
    format_long_date(date(2026, 3, 4)) -> "March 4, 2026"
"""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)

CLOSING_PERIOD_DAYS = 30

_ONES = [
    "", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine",
    "ten", "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen",
    "seventeen", "eighteen", "nineteen",
]
_TENS = [
    "", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety",
]


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a number, a numeric string, or a "$1,234" string into a Decimal."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        if isinstance(value, str):
            value = value.replace('$', '').replace(',', '').strip()
            if not value:
                return None
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return None


def round_whole(value: Any) -> int:
    """Round to the nearest whole currency unit, halves rounding up."""
    amount = to_decimal(value) or Decimal(0)
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_usd(value: Any) -> str:
    """
    Format a number as US currency without cents.

    Examples:
        450000 -> "$450,000"
        3333.33 -> "$3,333"
    """
    amount = to_decimal(value)
    if amount is None:
        logger.warning(f"Could not format as currency: {value}")
        return str(value) if value else ""
    return f"${round_whole(amount):,}"


def format_percent(value: Any) -> str:
    """Format a number as a percentage without a trailing ".0"."""
    amount = to_decimal(value)
    if amount is None:
        return str(value) if value else ""
    if amount == amount.to_integral_value():
        return f"{int(amount)}%"
    return f"{amount.normalize()}%"


def format_long_date(value: Any) -> str:
    """
    Format a date as "Month D, YYYY" (no zero padding).

    Examples:
        date(2026, 3, 4) -> "March 4, 2026"
    """
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        raise TypeError(f"Expected a date, got {type(value).__name__}")
    return f"{value:%B} {value.day}, {value.year}"


def closing_date(today: Optional[date] = None) -> date:
    """Proposed closing date: today plus the standard closing period."""
    today = today or date.today()
    return today + timedelta(days=CLOSING_PERIOD_DAYS)


def number_to_words(n: int) -> str:
    """
    Spell out a non-negative integer in English words.

    Zero-valued magnitude groups are omitted and "and" is never used.

    Examples:
        0 -> "zero"
        21 -> "twenty-one"
        450000 -> "four hundred fifty thousand"
        1200000 -> "one million two hundred thousand"
    """
    n = int(n)
    if n < 0:
        raise ValueError("number_to_words only supports non-negative integers")
    if n == 0:
        return "zero"
    if n < 20:
        return _ONES[n]
    if n < 100:
        return _TENS[n // 10] + (f"-{_ONES[n % 10]}" if n % 10 else "")
    if n < 1000:
        return f"{_ONES[n // 100]} hundred" + (f" {number_to_words(n % 100)}" if n % 100 else "")
    if n < 1_000_000:
        return f"{number_to_words(n // 1000)} thousand" + (f" {number_to_words(n % 1000)}" if n % 1000 else "")
    return f"{number_to_words(n // 1_000_000)} million" + (
        f" {number_to_words(n % 1_000_000)}" if n % 1_000_000 else ""
    )


def split_name(full_name: str) -> Tuple[str, str]:
    """
    Split a display name on the first space.

    Examples:
        "Jane Smith" -> ("Jane", "Smith")
        "Mary Ann Lee" -> ("Mary", "Ann Lee")
        "Cher" -> ("Cher", "")
    """
    first, _, rest = (full_name or "").partition(" ")
    return first, rest


def join_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    """Inverse of split_name, tolerant of missing parts."""
    return f"{first_name or ''} {last_name or ''}".strip()
