"""
backoffice.finance.checks — Amount text for printed checks.
"""

from __future__ import annotations

from typing import Mapping

from backoffice.core.utils import format_currency, round_half_up

ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
TEENS = ["Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen",
         "Sixteen", "Seventeen", "Eighteen", "Nineteen"]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

SCALES = (
    (1_000_000_000, "Billion"),
    (1_000_000, "Million"),
    (1_000, "Thousand"),
)


def _below_thousand(n: int) -> str:
    if n == 0:
        return ""
    if n < 10:
        return ONES[n]
    if n < 20:
        return TEENS[n - 10]
    if n < 100:
        tens, ones = divmod(n, 10)
        return f"{TENS[tens]}-{ONES[ones]}" if ones else TENS[tens]
    hundreds, rest = divmod(n, 100)
    text = f"{ONES[hundreds]} Hundred"
    return f"{text} {_below_thousand(rest)}" if rest else text


def integer_to_words(n: int) -> str:
    if n == 0:
        return "Zero"
    parts = []
    for size, name in SCALES:
        chunk = (n // size) % 1000 if size != SCALES[0][0] else n // size
        if chunk:
            parts.append(f"{_below_thousand(chunk)} {name}")
    rest = n % 1000
    if rest:
        parts.append(_below_thousand(rest))
    return " ".join(parts)


def number_to_words(amount: float) -> str:
    """Dollar amount as check text.

    >>> number_to_words(1234.56)
    'One Thousand Two Hundred Thirty-Four and 56/100'

    Negative amounts are written as their absolute value.
    """
    amount = abs(amount)
    if amount == 0:
        return "Zero and 00/100"
    total_cents = round_half_up(amount * 100)
    dollars, cents = divmod(total_cents, 100)
    return f"{integer_to_words(dollars)} and {cents:02d}/100"


def cents_to_words(cents: int) -> str:
    return number_to_words(cents / 100)


def format_check_amount(cents: int) -> str:
    return format_currency(cents)


def build_city_state_zip(settings: Mapping[str, str]) -> str:
    """``"Austin, TX 78701"`` from the business address settings; parts may be missing."""
    city = settings.get("business_city") or ""
    state = settings.get("business_state") or ""
    zip_code = settings.get("business_zip") or ""
    parts = []
    if city:
        parts.append(city + ("," if state else ""))
    if state:
        parts.append(state)
    if zip_code:
        parts.append(zip_code)
    return " ".join(parts)
