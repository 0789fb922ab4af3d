"""Shared helpers for cart totals and quantities."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from timtim.domain.cart import CartItem, ShippingSelection

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calc_items_total(items: Iterable[CartItem]) -> Decimal:
    return quantize_money(sum((item.price * item.quantity for item in items), Decimal("0")))


def calc_quantity(items: Iterable[CartItem]) -> int:
    return sum(int(item.quantity) for item in items)


def calc_shipping_fee(shipping: ShippingSelection | None) -> Decimal:
    """Shipping term of the grand total: zero when free, missing or not validated."""
    if shipping is None or not shipping.is_valid or shipping.is_free:
        return Decimal("0.00")
    return quantize_money(shipping.cost)


def calc_total_price(items_total: Decimal, shipping_fee: Decimal) -> Decimal:
    return quantize_money(items_total + shipping_fee)
