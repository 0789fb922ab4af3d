"""Checkout state transition rules (single source of truth)."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping


class CheckoutState(str, Enum):
    CART_POPULATED = "cart_populated"
    SHIPPING_PRICED = "shipping_priced"
    FORM_VALIDATED = "form_validated"
    DISPATCHED = "dispatched"
    SESSION_CLEARED = "session_cleared"


class CheckoutBlock(str, Enum):
    """Why a checkout stopped before dispatch."""

    EMPTY_CART = "empty_cart"
    SHIPPING_NOT_CALCULATED = "shipping_not_calculated"
    INVALID_FORM = "invalid_form"
    INVALID_ORDER = "invalid_order"


ALLOWED_TRANSITIONS: Mapping[CheckoutState, frozenset[CheckoutState]] = {
    CheckoutState.CART_POPULATED: frozenset({CheckoutState.SHIPPING_PRICED}),
    CheckoutState.SHIPPING_PRICED: frozenset({CheckoutState.FORM_VALIDATED}),
    CheckoutState.FORM_VALIDATED: frozenset({CheckoutState.DISPATCHED}),
    CheckoutState.DISPATCHED: frozenset({CheckoutState.SESSION_CLEARED}),
    CheckoutState.SESSION_CLEARED: frozenset(),
}

TERMINAL_STATES = frozenset({CheckoutState.SESSION_CLEARED})


@dataclass(frozen=True, slots=True)
class TransitionValidationResult:
    allowed: bool
    reason: str | None = None


def validate_checkout_transition(
    current: CheckoutState | None, target: CheckoutState
) -> TransitionValidationResult:
    """A checkout may only start populated and then move one step forward."""
    if current is None:
        if target is CheckoutState.CART_POPULATED:
            return TransitionValidationResult(True)
        return TransitionValidationResult(False, f"Checkout must start at '{CheckoutState.CART_POPULATED.value}'.")

    if current in TERMINAL_STATES:
        return TransitionValidationResult(False, f"Cannot leave terminal state '{current.value}'.")

    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        return TransitionValidationResult(
            False, f"Transition '{current.value} -> {target.value}' is not allowed."
        )
    return TransitionValidationResult(True)
