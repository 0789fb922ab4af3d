from decimal import Decimal

from timtim.core.order_math import calc_items_total, calc_quantity, calc_shipping_fee, calc_total_price
from timtim.domain.cart import CartItem, ShippingSelection


def test_calc_items_total_multiplies_price_by_quantity() -> None:
    items = [
        CartItem(id="1", name="Vinho", price=Decimal("89.90"), quantity=2, stock=5),
        CartItem(id="2", name="Cerveja", price=Decimal("12.345"), quantity=1, stock=5),
    ]
    assert calc_items_total(items) == Decimal("192.15")
    assert calc_quantity(items) == 3


def test_calc_shipping_fee_ignores_free_missing_and_invalid() -> None:
    paid = ShippingSelection(cost=Decimal("15"), is_free=False, is_valid=True)
    assert calc_shipping_fee(paid) == Decimal("15.00")
    assert calc_shipping_fee(None) == 0
    assert calc_shipping_fee(ShippingSelection(cost=Decimal("15"), is_free=True, is_valid=True)) == 0
    assert calc_shipping_fee(ShippingSelection(cost=Decimal("15"), is_free=False, is_valid=False)) == 0


def test_calc_total_price_adds_shipping() -> None:
    assert calc_total_price(Decimal("50.00"), Decimal("15.00")) == Decimal("65.00")
