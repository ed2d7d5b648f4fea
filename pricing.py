"""
Category discount pricing.

Effective prices are rounded half away from zero (half-up for the
non-negative prices stored in the catalog): 1005 at 10% -> 904.5 -> 905.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Mapping, Optional, Tuple


def format_percent(percent) -> str:
    value = Decimal(str(percent)).normalize()
    if value == value.to_integral_value():
        return str(int(value))
    return format(value, "f")


def is_effective(discount: Optional[Mapping[str, Any]]) -> bool:
    if not discount:
        return False
    return bool(discount.get("active", True)) and (discount.get("percent") or 0) > 0


def resolve_price(price: int, discount: Optional[Mapping[str, Any]]) -> Tuple[int, Optional[str]]:
    """Return (effective unit price, promo label) for a list price under a category discount.

    A missing, inactive or 0% discount leaves the price untouched and yields no label.
    """
    if not is_effective(discount):
        return price, None
    percent = Decimal(str(discount["percent"]))
    factor = 1 - percent / 100
    effective = (Decimal(price) * factor).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    label = f"{format_percent(discount['percent'])}% {discount['category']}"
    return int(effective), label


def discount_map(discounts) -> Dict[str, Mapping[str, Any]]:
    """Index active discount documents by category."""
    return {d["category"]: d for d in discounts if is_effective(d)}
