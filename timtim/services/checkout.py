"""Checkout pipeline: guards, form validation, order hand-off and WhatsApp dispatch.

Orders are not stored server side. A finalized order is written once under a
fixed key for the confirmation screen, handed to WhatsApp through a deep
link, and the session's cart is cleared so it can never be resubmitted.
"""
from __future__ import annotations

import logging
import webbrowser
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping

from timtim.core.config import WhatsAppConfig
from timtim.core.constants import CART_PAGE_PATH, HOME_PAGE_PATH, LAST_ORDER_KEY, ORDER_ID_PREFIX
from timtim.core.exceptions import CheckoutStateException
from timtim.core.order_math import calc_shipping_fee, calc_total_price
from timtim.core.session_storage import KeyValueStore
from timtim.domain.checkout_form import CheckoutForm, validate_checkout_form
from timtim.domain.checkout_fsm import CheckoutBlock, CheckoutState, validate_checkout_transition
from timtim.domain.order import Order
from timtim.services.cart_service import CartService
from timtim.services.order_message import generate_whatsapp_url, validate_order_data
from timtim.services.shipping import get_estimated_delivery_time

logger = logging.getLogger(__name__)

Dispatcher = Callable[[str], Any]

EMPTY_CART_NOTICE = "Seu carrinho está vazio. Adicione produtos ao carrinho antes de finalizar a compra"
SHIPPING_NOT_CALCULATED_NOTICE = "Por favor, calcule o frete no carrinho antes de finalizar a compra"
INVALID_ORDER_NOTICE = "Erro ao criar pedido. Tente novamente."
ORDER_SENT_NOTICE = "Pedido enviado para o WhatsApp! Continue a compra pelo WhatsApp"


def open_in_browser(url: str) -> None:
    """Default dispatcher: open the deep link in a new browser tab."""
    webbrowser.open(url, new=2)


def generate_order_id(now: datetime) -> str:
    return f"{ORDER_ID_PREFIX}{int(now.timestamp() * 1000)}"


def pop_last_order(store: KeyValueStore) -> dict[str, Any] | None:
    """Read the handed-off order once; later reads return ``None``."""
    order = store.get(LAST_ORDER_KEY, None)
    store.delete(LAST_ORDER_KEY)
    return order if isinstance(order, dict) else None


@dataclass
class CheckoutOutcome:
    state: CheckoutState | None
    blocked_by: CheckoutBlock | None = None
    notice: str | None = None
    redirect_to: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    prefill: dict[str, str] = field(default_factory=dict)
    order: Order | None = None
    dispatch_url: str | None = None
    dispatched: bool = False

    @property
    def completed(self) -> bool:
        return self.state is CheckoutState.SESSION_CLEARED


class CheckoutOrchestrator:
    """Drives one session from a populated cart to a cleared session."""

    def __init__(
        self,
        cart: CartService,
        store: KeyValueStore,
        *,
        whatsapp: WhatsAppConfig | None = None,
        dispatcher: Dispatcher = open_in_browser,
        clock: Callable[[], datetime] = datetime.now,
        cart_path: str = CART_PAGE_PATH,
        home_path: str = HOME_PAGE_PATH,
    ) -> None:
        self._cart = cart
        self._store = store
        self._whatsapp = whatsapp or WhatsAppConfig()
        self._dispatcher = dispatcher
        self._clock = clock
        self._cart_path = cart_path
        self._home_path = home_path
        self._state: CheckoutState | None = None

    @property
    def state(self) -> CheckoutState | None:
        return self._state

    def _advance(self, target: CheckoutState) -> None:
        check = validate_checkout_transition(self._state, target)
        if not check.allowed:
            raise CheckoutStateException(check.reason or "Transition not allowed")
        self._state = target

    def _prefill(self) -> dict[str, str]:
        shipping = self._cart.shipping
        if shipping is None:
            return {}
        prefill = {}
        if shipping.postal_code:
            prefill["cep"] = shipping.postal_code
        if shipping.city:
            prefill["city"] = shipping.city
        return prefill

    def begin(self) -> CheckoutOutcome:
        """Entry guards run when the checkout screen opens."""
        self._state = None

        if self._cart.is_empty():
            logger.info("Checkout redirected to cart: cart is empty")
            return CheckoutOutcome(
                state=None,
                blocked_by=CheckoutBlock.EMPTY_CART,
                notice=EMPTY_CART_NOTICE,
                redirect_to=self._cart_path,
            )
        self._advance(CheckoutState.CART_POPULATED)

        if not self._cart.has_valid_shipping:
            return CheckoutOutcome(
                state=self._state,
                blocked_by=CheckoutBlock.SHIPPING_NOT_CALCULATED,
                notice=SHIPPING_NOT_CALCULATED_NOTICE,
                prefill=self._prefill(),
            )
        self._advance(CheckoutState.SHIPPING_PRICED)
        return CheckoutOutcome(state=self._state, prefill=self._prefill())

    def submit(self, form_data: Mapping[str, Any]) -> CheckoutOutcome:
        """Validate, hand off and dispatch the order, then clear the session."""
        outcome = self.begin()
        if outcome.blocked_by is CheckoutBlock.SHIPPING_NOT_CALCULATED:
            logger.info("Checkout submission refused: shipping not calculated")
            outcome.redirect_to = self._cart_path
        if outcome.blocked_by is not None:
            return outcome

        form, errors = validate_checkout_form(form_data)
        if form is None:
            return CheckoutOutcome(
                state=self._state,
                blocked_by=CheckoutBlock.INVALID_FORM,
                field_errors=errors,
                prefill=outcome.prefill,
            )
        self._advance(CheckoutState.FORM_VALIDATED)

        now = self._clock()
        order = self._build_order(form, now)
        if not validate_order_data(order.to_dict()):
            logger.error("Order %s is missing required data; not dispatched", order.id)
            return CheckoutOutcome(
                state=self._state,
                blocked_by=CheckoutBlock.INVALID_ORDER,
                notice=INVALID_ORDER_NOTICE,
            )

        # The confirmation screen reads this record, so it must exist before the cart goes.
        if not self._store.set(LAST_ORDER_KEY, order.to_dict()):
            logger.warning("Order %s could not be stored for the confirmation screen", order.id)

        url = generate_whatsapp_url(order, self._whatsapp, get_estimated_delivery_time(now))
        dispatched = self._dispatch(order, url)
        self._advance(CheckoutState.DISPATCHED)

        self._cart.reset()
        self._advance(CheckoutState.SESSION_CLEARED)
        logger.info("Order %s sent; session cart cleared", order.id)

        return CheckoutOutcome(
            state=self._state,
            notice=ORDER_SENT_NOTICE,
            redirect_to=self._home_path,
            order=order,
            dispatch_url=url,
            dispatched=dispatched,
        )

    def _build_order(self, form: CheckoutForm, now: datetime) -> Order:
        shipping = self._cart.shipping
        subtotal = self._cart.total
        shipping_cost = calc_shipping_fee(shipping)
        return Order(
            id=generate_order_id(now),
            items=self._cart.items,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            shipping_is_free=bool(shipping and shipping.is_free),
            total=calc_total_price(subtotal, shipping_cost),
            customer_info=form.customer_info(),
            shipping_address=form.shipping_address(),
            shipping_city=shipping.city if shipping else None,
            shipping_postal_code=shipping.postal_code if shipping else None,
            created_at=now,
        )

    def _dispatch(self, order: Order, url: str) -> bool:
        """Fire and forget: a failing dispatcher never keeps the cart alive."""
        try:
            self._dispatcher(url)
        except Exception:
            logger.exception("Dispatch of order %s failed", order.id)
            return False
        return True
