"""
Money arithmetic for carts and orders.

All amounts are integers in minor currency units (paise). Nothing in here
touches the database; callers resolve products and coupons first.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class OrderTotals:
    subtotal: int
    discount_amount: int
    delivery_charge: int
    total_amount: int


def discounted_price(price: int, discount_percentage: Optional[int]) -> int:
    """Unit price after the product's own discount, rounded half-up."""
    pct = discount_percentage or 0
    if pct < 0 or pct > 100:
        raise ValueError("discount_percentage must be between 0 and 100")
    return (price * (100 - pct) + 50) // 100


def cart_subtotal(lines: Iterable[Tuple[int, int]]) -> int:
    """Sum of unit_price * quantity over (unit_price, quantity) pairs."""
    return sum(unit_price * quantity for unit_price, quantity in lines)


def coupon_discount(
    discount_type: str,
    discount_value: int,
    max_discount: Optional[int],
    subtotal: int,
) -> int:
    if discount_type == "percentage":
        discount = subtotal * discount_value // 100
    else:
        discount = discount_value

    if max_discount is not None:
        discount = min(discount, max_discount)
    return max(discount, 0)


def delivery_charge_for(subtotal: int, flat_fee: int, free_threshold: int) -> int:
    # Free delivery once the threshold is met
    if subtotal >= free_threshold:
        return 0
    return flat_fee


def order_total(subtotal: int, discount_amount: int, delivery_charge: int) -> int:
    return subtotal - discount_amount + delivery_charge


def compute_totals(
    lines: Iterable[Tuple[int, int]],
    flat_fee: int,
    free_threshold: int,
    coupon=None,
) -> OrderTotals:
    """
    Totals for a checkout.

    `coupon` is anything with discount_type / discount_value / max_discount
    attributes (a Coupon row in practice). The discount is clamped so the
    total never drops below zero while the stored figures still satisfy
    total = subtotal - discount + delivery.
    """
    subtotal = cart_subtotal(lines)
    delivery = delivery_charge_for(subtotal, flat_fee, free_threshold)

    discount = 0
    if coupon is not None:
        discount = coupon_discount(
            _enum_value(coupon.discount_type),
            coupon.discount_value,
            coupon.max_discount,
            subtotal,
        )
    discount = min(discount, subtotal + delivery)

    return OrderTotals(
        subtotal=subtotal,
        discount_amount=discount,
        delivery_charge=delivery,
        total_amount=order_total(subtotal, discount, delivery),
    )


def _enum_value(value) -> str:
    return getattr(value, "value", value)
