"""Input normalization applied after validation and before dispatch."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional, Tuple

AMOUNT_SCALE = Decimal(1_000_000)


def normalize_amount(amount: str) -> str:
    """Scale human-sized amounts (below 1e6) into 6-decimal base units.

    A blank string reads as zero and ``0x``/``0o``/``0b`` prefixes as integers.
    Anything that is not a finite number passes through untouched.
    """
    value = _parse_number(amount)
    if value is None or not value.is_finite() or value >= AMOUNT_SCALE:
        return amount
    return _format_decimal(value * AMOUNT_SCALE)


def _parse_number(amount: str) -> Optional[Decimal]:
    if not isinstance(amount, str) or "_" in amount:
        return None
    text = amount.strip()
    if not text:
        return Decimal(0)
    if text[:2].lower() in ("0x", "0o", "0b"):
        try:
            return Decimal(int(text, 0))
        except ValueError:
            return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def encode_query_value(value: Any) -> str:
    """Render a query value the way the portfolio API expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, Decimal):
        return _format_decimal(value)
    return str(value)


def encode_query_params(params: Dict[str, Any]) -> Iterable[Tuple[str, str]]:
    """Yield (key, value) pairs in order, skipping unset values."""
    for key, value in params.items():
        if value is None:
            continue
        yield key, encode_query_value(value)


def _format_decimal(value: Decimal) -> str:
    if value == 0:
        return "0"
    return format(value.normalize(), "f")
