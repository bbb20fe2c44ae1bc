"""Order pricing: subtotal plus the flat shipping rule."""

from typing import Iterable

from models import CartItem, PricingResult

# Orders at or above the threshold ship free; everything else pays the flat fee.
FREE_SHIPPING_THRESHOLD = 500.00
FLAT_SHIPPING_FEE = 25.00


def shipping_for(subtotal: float) -> float:
    if subtotal >= FREE_SHIPPING_THRESHOLD:
        return 0.0
    return FLAT_SHIPPING_FEE


def compute_pricing(items: Iterable[CartItem]) -> PricingResult:
    """Price a sequence of cart lines.

    Each line contributes ``unit_price * quantity`` to the subtotal. Shipping
    is decided on the subtotal rounded to cents.
    """
    subtotal = round(sum(item.unit_price * item.quantity for item in items), 2)
    shipping = shipping_for(subtotal)
    return PricingResult(subtotal=subtotal, shipping=shipping, total=round(subtotal + shipping, 2))
