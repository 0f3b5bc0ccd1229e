from typing import Any, Dict, Iterable, List, Optional, Tuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re

CENT = Decimal("0.01")

_CURRENCY_NOISE = re.compile(r"[$,\s]|USD", re.IGNORECASE)


def to_money(value: Any) -> Optional[Decimal]:
    """
    Coerce a number or a currency string ("$1,250.00") to a cent-quantized Decimal.

    Returns:
        Decimal rounded to two places, or None when the value is not an amount
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = _CURRENCY_NOISE.sub("", value)
        if not cleaned:
            return None
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            return None
    else:
        return None

    if not amount.is_finite():
        return None
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_float(amount: Optional[Decimal]) -> Optional[float]:
    """Render a Decimal amount for JSON payloads"""
    return float(amount) if amount is not None else None


def amounts_equal(a: Optional[Decimal], b: Optional[Decimal]) -> bool:
    """Two amounts are equal when they agree to the cent"""
    if a is None or b is None:
        return False
    return to_money(a) == to_money(b)


def normalize_description(description: Optional[str]) -> str:
    """Case and whitespace insensitive key for charge descriptions"""
    if not description:
        return ""
    return " ".join(description.split()).casefold()


def parse_charges(charges: Optional[Iterable[Dict[str, Any]]]) -> List[Tuple[str, Optional[Decimal]]]:
    """
    Read a stored charge list into (description, amount) pairs.

    Entries without a description are skipped.
    """
    parsed = []
    for charge in charges or []:
        if not isinstance(charge, dict):
            continue
        description = charge.get("description")
        if not description:
            continue
        parsed.append((str(description).strip(), to_money(charge.get("amount"))))
    return parsed


def index_charges(charges: List[Tuple[str, Optional[Decimal]]]) -> Dict[str, Tuple[str, Optional[Decimal]]]:
    """Key charges by normalized description. The first occurrence of a description wins."""
    indexed = {}
    for description, amount in charges:
        key = normalize_description(description)
        if key not in indexed:
            indexed[key] = (description, amount)
    return indexed


def charges_total(charges: List[Tuple[str, Optional[Decimal]]]) -> Decimal:
    total = Decimal("0.00")
    for _, amount in charges:
        if amount is not None:
            total += amount
    return total.quantize(CENT)

