from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from urllib.parse import unquote

import pytest

from timtim.core.config import WhatsAppConfig
from timtim.core.exceptions import CheckoutStateException
from timtim.domain.cart import ShippingSelection
from timtim.domain.checkout_fsm import CheckoutBlock, CheckoutState, validate_checkout_transition
from timtim.services.cart_service import CartService
from timtim.services.checkout import CheckoutOrchestrator, generate_order_id, pop_last_order

NOW = datetime(2024, 10, 13, 18, 30, tzinfo=timezone.utc)

VALID_FORM = {
    "name": "Maria Souza",
    "phone": "(81) 98888-7777",
    "cep": "50000-000",
    "address": "Rua da Aurora",
    "number": "45",
    "neighborhood": "Boa Vista",
    "city": "Recife",
    "state": "PE",
}


@pytest.fixture
def dispatched_urls() -> list[str]:
    return []


@pytest.fixture
def make_checkout(store, dispatched_urls):
    def factory(cart: CartService, dispatcher=None) -> CheckoutOrchestrator:
        return CheckoutOrchestrator(
            cart,
            store,
            whatsapp=WhatsAppConfig(phone_number="5581999999999"),
            dispatcher=dispatcher or dispatched_urls.append,
            clock=lambda: NOW,
        )

    return factory


@pytest.fixture
def ready_cart(cart_store, item_factory, shipping_factory) -> CartService:
    cart_store.save_cart([item_factory("1", "50.00", quantity=1)])
    cart_store.save_shipping(shipping_factory("15.00"))
    return CartService(cart_store)


def test_empty_cart_redirects_to_cart_page(cart_store, make_checkout, dispatched_urls) -> None:
    checkout = make_checkout(CartService(cart_store))

    outcome = checkout.submit(VALID_FORM)

    assert outcome.blocked_by is CheckoutBlock.EMPTY_CART
    assert outcome.redirect_to == "/carrinho"
    assert outcome.state is None
    assert dispatched_urls == []


def test_missing_shipping_blocks_and_prefills(cart_store, item_factory, make_checkout, dispatched_urls) -> None:
    cart_store.save_cart([item_factory()])
    cart_store.save_shipping(
        ShippingSelection(cost=Decimal("0"), is_free=False, is_valid=False, city="Caruaru", postal_code="55000-000")
    )
    checkout = make_checkout(CartService(cart_store))

    entered = checkout.begin()
    assert entered.blocked_by is CheckoutBlock.SHIPPING_NOT_CALCULATED
    assert entered.state is CheckoutState.CART_POPULATED
    assert entered.prefill == {"cep": "55000-000", "city": "Caruaru"}
    assert entered.redirect_to is None

    submitted = checkout.submit(VALID_FORM)
    assert submitted.blocked_by is CheckoutBlock.SHIPPING_NOT_CALCULATED
    assert submitted.notice == "Por favor, calcule o frete no carrinho antes de finalizar a compra"
    assert submitted.redirect_to == "/carrinho"
    assert dispatched_urls == []


def test_begin_with_priced_shipping(ready_cart, make_checkout) -> None:
    outcome = make_checkout(ready_cart).begin()

    assert outcome.blocked_by is None
    assert outcome.state is CheckoutState.SHIPPING_PRICED
    assert outcome.prefill == {"cep": "50000-000", "city": "Recife"}


def test_invalid_form_reports_field_errors(ready_cart, make_checkout, dispatched_urls, cart_store) -> None:
    checkout = make_checkout(ready_cart)

    outcome = checkout.submit({**VALID_FORM, "phone": "123", "state": ""})

    assert outcome.blocked_by is CheckoutBlock.INVALID_FORM
    assert set(outcome.field_errors) == {"phone", "state"}
    assert outcome.state is CheckoutState.SHIPPING_PRICED
    assert dispatched_urls == []
    assert len(cart_store.get_cart()) == 1


def test_successful_checkout_dispatches_and_clears_session(
    ready_cart, make_checkout, dispatched_urls, cart_store, store
) -> None:
    checkout = make_checkout(ready_cart)

    outcome = checkout.submit(VALID_FORM)

    assert outcome.completed
    assert outcome.dispatched
    assert outcome.redirect_to == "/"
    order = outcome.order
    assert order.id == "TIM-1728844200000"
    assert order.subtotal == Decimal("50.00")
    assert order.shipping_cost == Decimal("15.00")
    assert order.total == Decimal("65.00")
    assert order.status == "pending"

    assert dispatched_urls == [outcome.dispatch_url]
    assert outcome.dispatch_url.startswith("https://wa.me/5581999999999?text=")
    assert "*Previsão:* 20:30" in unquote(outcome.dispatch_url)

    assert cart_store.get_cart() == []
    assert cart_store.get_shipping() is None
    assert ready_cart.is_empty()

    record = store.get("tim-tim-last-order", None)
    assert record["id"] == order.id
    assert record["total"] == 65


def test_failing_dispatcher_still_clears_session(ready_cart, make_checkout, cart_store) -> None:
    def broken(_url):
        raise OSError("no browser available")

    outcome = make_checkout(ready_cart, dispatcher=broken).submit(VALID_FORM)

    assert outcome.completed
    assert not outcome.dispatched
    assert cart_store.get_cart() == []


def test_order_without_shipping_city_is_not_sent(cart_store, item_factory, make_checkout, dispatched_urls) -> None:
    cart_store.save_cart([item_factory()])
    cart_store.save_shipping(ShippingSelection(cost=Decimal("15"), is_free=False, is_valid=True))
    checkout = make_checkout(CartService(cart_store))

    outcome = checkout.submit(VALID_FORM)

    assert outcome.blocked_by is CheckoutBlock.INVALID_ORDER
    assert outcome.notice == "Erro ao criar pedido. Tente novamente."
    assert dispatched_urls == []
    assert len(cart_store.get_cart()) == 1


def test_last_order_is_read_once(ready_cart, make_checkout, store) -> None:
    make_checkout(ready_cart).submit(VALID_FORM)

    first = pop_last_order(store)
    assert first is not None and first["status"] == "pending"
    assert pop_last_order(store) is None


def test_free_shipping_order_total_excludes_fee(cart_store, item_factory, shipping_factory, make_checkout) -> None:
    cart_store.save_cart([item_factory("1", "120.00", quantity=2)])
    cart_store.save_shipping(shipping_factory("0", is_free=True))

    outcome = make_checkout(CartService(cart_store)).submit(VALID_FORM)

    assert outcome.order.total == Decimal("240.00")
    assert outcome.order.shipping_is_free


def test_order_id_uses_epoch_milliseconds() -> None:
    assert generate_order_id(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == "TIM-1000"


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        (None, CheckoutState.CART_POPULATED, True),
        (None, CheckoutState.DISPATCHED, False),
        (CheckoutState.CART_POPULATED, CheckoutState.SHIPPING_PRICED, True),
        (CheckoutState.CART_POPULATED, CheckoutState.FORM_VALIDATED, False),
        (CheckoutState.FORM_VALIDATED, CheckoutState.DISPATCHED, True),
        (CheckoutState.DISPATCHED, CheckoutState.SESSION_CLEARED, True),
        (CheckoutState.SESSION_CLEARED, CheckoutState.CART_POPULATED, False),
    ],
)
def test_checkout_transitions(current, target, allowed) -> None:
    assert validate_checkout_transition(current, target).allowed is allowed


def test_out_of_order_advance_raises(ready_cart, make_checkout) -> None:
    checkout = make_checkout(ready_cart)

    with pytest.raises(CheckoutStateException):
        checkout._advance(CheckoutState.DISPATCHED)
