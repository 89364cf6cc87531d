"""
Conversion between human-entered decimal amounts and integer minor units.

``to_minor_units`` is deliberately lenient and lossy: it never raises, strips
anything that is not a digit, truncates (never rounds) fractional digits beyond
the token precision and turns unusable input into ``0``. Callers that need to
reject bad input must check for a zero result themselves.
"""

from __future__ import annotations

import re

__all__ = ["from_minor_units", "to_minor_units"]

_NON_DIGITS = re.compile(r"\D")


def _check_decimals(decimals: int) -> None:
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")


def to_minor_units(amount: str, decimals: int) -> int:
    """
    Convert ``amount`` (e.g. ``"0.25"``) to minor units at ``decimals`` precision.

    >>> to_minor_units("0.1234567", 6)
    123456
    """
    _check_decimals(decimals)
    parts = (amount or "").split(".")
    integer_part = parts[0]
    # anything after a second separator is ignored
    fractional_part = parts[1] if len(parts) > 1 else ""
    clean_integer = _NON_DIGITS.sub("", integer_part) or "0"
    clean_fraction = _NON_DIGITS.sub("", fractional_part)
    padded_fraction = (clean_fraction + "0" * decimals)[:decimals]
    return int(clean_integer + padded_fraction)


def from_minor_units(value: int, decimals: int) -> str:
    """Render ``value`` as a canonical decimal string without trailing zeros."""
    _check_decimals(decimals)
    if value < 0:
        raise ValueError(f"minor-unit value must be non-negative, got {value}")
    if decimals == 0:
        return str(value)
    digits = str(value).rjust(decimals + 1, "0")
    integer, fraction = digits[:-decimals], digits[-decimals:].rstrip("0")
    return f"{integer}.{fraction}" if fraction else integer
