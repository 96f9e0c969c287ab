"""Validation primitives shared by the field mapper and the deployment gate."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
ZERO_ADDRESS = "0x" + "0" * 40

_DECIMAL_PATTERN = re.compile(r"^\d+(\.\d+)?$")

# Storage columns are NUMERIC(38, 8)
DECIMAL_PRECISION = 38
DECIMAL_SCALE = 8

PERCENT_MIN = Decimal("0")
PERCENT_MAX = Decimal("100")


class InvalidValue(ValueError):
    """A single value failed a primitive check; the message is user-facing."""


def is_unset(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def bounded_decimal(
    value: Any,
    minimum: Decimal | int | None = PERCENT_MIN,
    maximum: Decimal | int | None = PERCENT_MAX,
    *,
    optional: bool = True,
    places: int = DECIMAL_SCALE,
) -> Decimal | None:
    """Parse a non-negative decimal and check it lies in [minimum, maximum].

    Accepts strings, ints and Decimals. Empty input is "unset": it returns
    None when optional, otherwise raises. ``maximum=None`` means unbounded.
    Values with more than ``places`` fractional digits, or more integer
    digits than the storage column holds, are refused rather than rounded.
    """
    if is_unset(value):
        if optional:
            return None
        raise InvalidValue("is required")
    if isinstance(value, bool):
        raise InvalidValue("must be a number")
    if isinstance(value, Decimal):
        text = format(value, "f")
    elif isinstance(value, (int, float)):
        text = format(Decimal(str(value)), "f")
    elif isinstance(value, str):
        text = value.strip()
    else:
        raise InvalidValue("must be a number")

    if not _DECIMAL_PATTERN.match(text):
        raise InvalidValue("must be a non-negative decimal number")
    try:
        number = Decimal(text)
    except InvalidOperation:
        raise InvalidValue("must be a non-negative decimal number") from None

    whole, _, fraction = text.partition(".")
    if len(fraction.rstrip("0")) > places:
        raise InvalidValue(f"must have at most {places} decimal places")
    whole_digits = DECIMAL_PRECISION - DECIMAL_SCALE
    if len(whole.lstrip("0")) > whole_digits:
        raise InvalidValue(f"must have at most {whole_digits} digits before the decimal point")

    if minimum is not None and number < Decimal(minimum):
        raise InvalidValue(f"must be at least {minimum}")
    if maximum is not None and number > Decimal(maximum):
        raise InvalidValue(f"must be at most {maximum}")
    return number


def check_address(value: Any, *, optional: bool = True) -> str | None:
    """Return the trimmed address, or None when unset and optional."""
    if is_unset(value):
        if optional:
            return None
        raise InvalidValue("is required")
    if not isinstance(value, str) or not ADDRESS_PATTERN.match(value.strip()):
        raise InvalidValue("must be a 0x-prefixed 40 character hex address")
    return value.strip()


def is_zero_address(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() == ZERO_ADDRESS


def percentage_total(rows: Iterable[Mapping[str, Any]], field: str) -> Decimal:
    """Sum a percentage column, skipping unset or malformed entries."""
    total = Decimal("0")
    for row in rows:
        try:
            value = bounded_decimal(row.get(field))
        except InvalidValue:
            continue
        if value is not None:
            total += value
    return total


def check_percentage_total(rows: Iterable[Mapping[str, Any]], field: str) -> Decimal:
    """Raise InvalidValue when the column sums past 100; returns the total."""
    total = percentage_total(rows, field)
    if total > PERCENT_MAX:
        raise InvalidValue(f"must total at most 100 (got {normalize_decimal(total)})")
    return total


def normalize_decimal(value: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros ("2.50" -> "2.5")."""
    return format(value.normalize(), "f")
