"""Parsing and formatting helpers shared by the CLI and the AI tools.

Amounts and dates arrive as free text (often Vietnamese shorthand such as
``"50k"`` or ``"3 triệu"``), and amounts leave formatted with the currency
symbol in its customary position.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta
from typing import Optional

from quicktoshl.exceptions import InvalidUsageError

AI_INSTRUCTIONS = (
    "IMPORTANT: Respond in the SAME LANGUAGE as the user's query. If the user asked in "
    "Vietnamese, respond in Vietnamese. If they asked in English, respond in English. "
    "Format currency amounts with proper separators."
)

DATE_RANGES = (
    "today",
    "yesterday",
    "this_week",
    "last_week",
    "this_month",
    "last_month",
    "last_7_days",
    "last_30_days",
    "last_90_days",
)

_MILLION_MARKERS = ("triệu", "trieu", "tr")
_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_DD_MM_RE = re.compile(r"^(\d{1,2})/(\d{1,2})$")
_DD_MM_YYYY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


# --- Amounts ---


def parse_amount(text: str) -> float:
    """Parse an amount with Vietnamese shortcuts.

    Supports ``"50k"`` (thousands), ``"3tr"``, ``"1.5tr"``, ``"3 triệu"``,
    ``"3 trieu"`` (millions) and plain numbers; thousands separators are
    ignored.

    Raises:
        InvalidUsageError: If *text* contains no number.
    """
    lowered = str(text).lower().strip()
    digits = re.sub(r"[^0-9.]", "", lowered)
    match = _NUMBER_RE.match(digits)
    if match is None:
        raise InvalidUsageError(f"Cannot parse amount: {text!r}")
    value = float(match.group())

    if any(marker in lowered for marker in _MILLION_MARKERS):
        return value * 1_000_000
    if "k" in lowered:
        return value * 1_000
    return value


# --- Dates ---


def parse_date(text: Optional[str] = None, today: Optional[date] = None) -> str:
    """Parse a loose date into ``YYYY-MM-DD``.

    Accepts ``today`` / ``hôm nay``, ``yesterday`` / ``hôm qua``, ``DD/MM``
    (current year) and ``DD/MM/YYYY``. Anything else means today.
    """
    today = today or date.today()
    if not text:
        return today.isoformat()

    lowered = text.lower().strip()
    if lowered in ("today", "hôm nay"):
        return today.isoformat()
    if lowered in ("yesterday", "hôm qua"):
        return (today - timedelta(days=1)).isoformat()

    match = _DD_MM_RE.match(text.strip())
    if match:
        day, month = int(match.group(1)), int(match.group(2))
        return f"{today.year}-{month:02d}-{day:02d}"

    match = _DD_MM_YYYY_RE.match(text.strip())
    if match:
        day, month, year = (int(g) for g in match.groups())
        return f"{year}-{month:02d}-{day:02d}"

    return today.isoformat()


def resolve_date_range(
    date_range: Optional[str] = None,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    today: Optional[date] = None,
) -> tuple[str, str]:
    """Resolve a named range, or explicit bounds, into ISO ``(from, to)``.

    Weeks start on Monday. Without a named range, missing bounds default to
    the last 30 days.

    Raises:
        InvalidUsageError: For an unknown range name.
    """
    today = today or date.today()

    if date_range:
        if date_range not in DATE_RANGES:
            raise InvalidUsageError(
                f"Unknown date range '{date_range}', expected one of: {', '.join(DATE_RANGES)}"
            )
        start, end = _named_range(date_range, today)
        return start.isoformat(), end.isoformat()

    return (
        from_date or (today - timedelta(days=30)).isoformat(),
        to_date or today.isoformat(),
    )


def _named_range(name: str, today: date) -> tuple[date, date]:
    if name == "today":
        return today, today
    if name == "yesterday":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if name == "this_week":
        monday = today - timedelta(days=today.weekday())
        return monday, monday + timedelta(days=6)
    if name == "last_week":
        monday = today - timedelta(days=7 + today.weekday())
        return monday, monday + timedelta(days=6)
    if name == "this_month":
        return _month_bounds(today.year, today.month)
    if name == "last_month":
        first = today.replace(day=1) - timedelta(days=1)
        return _month_bounds(first.year, first.month)
    days = {"last_7_days": 7, "last_30_days": 30, "last_90_days": 90}[name]
    return today - timedelta(days=days), today


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


# --- Currency formatting ---

# code -> (symbol, symbol goes before the number)
CURRENCY_SYMBOLS: dict[str, tuple[str, bool]] = {
    # Major currencies
    "USD": ("$", True),
    "EUR": ("€", False),
    "GBP": ("£", True),
    "JPY": ("¥", True),
    "CNY": ("¥", True),
    "CHF": ("CHF", True),
    # Southeast Asia
    "VND": ("₫", False),
    "THB": ("฿", True),
    "SGD": ("S$", True),
    "MYR": ("RM", True),
    "IDR": ("Rp", True),
    "PHP": ("₱", True),
    # Other Asia
    "KRW": ("₩", True),
    "INR": ("₹", True),
    "HKD": ("HK$", True),
    "TWD": ("NT$", True),
    # Americas
    "CAD": ("C$", True),
    "MXN": ("MX$", True),
    "BRL": ("R$", True),
    "ARS": ("AR$", True),
    "COP": ("COL$", True),
    # Oceania
    "AUD": ("A$", True),
    "NZD": ("NZ$", True),
    # Europe
    "PLN": ("zł", False),
    "CZK": ("Kč", False),
    "SEK": ("kr", False),
    "NOK": ("kr", False),
    "DKK": ("kr", False),
    "HUF": ("Ft", False),
    "RON": ("lei", False),
    "RUB": ("₽", False),
    "UAH": ("₴", False),
    "TRY": ("₺", True),
    # Middle East & Africa
    "AED": ("د.إ", True),
    "SAR": ("﷼", True),
    "ILS": ("₪", True),
    "ZAR": ("R", True),
    "EGP": ("E£", True),
    "NGN": ("₦", True),
}


def format_number(value: float) -> str:
    """Group thousands and keep at most three decimals: ``1234.5 -> "1,234.5"``."""
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def _with_symbol(text: str, currency: str) -> str:
    known = CURRENCY_SYMBOLS.get(currency)
    if known is None:
        return f"{text} {currency}"
    symbol, prefix = known
    return f"{symbol}{text}" if prefix else f"{text}{symbol}"


def format_currency(amount: float, currency: str) -> str:
    """Format ``abs(amount)`` with its currency symbol, e.g. ``$13`` or ``13€``.

    Unknown currencies fall back to ``"13 XYZ"``.
    """
    return _with_symbol(format_number(abs(amount)), currency)


def format_display_amount(amount: float, currency: str) -> str:
    """Short form for messages: ``1.5 triệu₫``, ``50k₫``, or :func:`format_currency`."""
    value = abs(amount)
    if value >= 1_000_000:
        return _with_symbol(f"{value / 1_000_000:.1f} triệu", currency)
    if value >= 1_000:
        return _with_symbol(f"{value / 1_000:.0f}k", currency)
    return format_currency(value, currency)
