"""Domain package."""

from .cart import CartItem, Product, ShippingSelection
from .checkout_fsm import CheckoutBlock, CheckoutState
from .order import CustomerInfo, Order, OrderStatus, ShippingAddress

__all__ = [
    "CartItem",
    "Product",
    "ShippingSelection",
    "CheckoutBlock",
    "CheckoutState",
    "CustomerInfo",
    "Order",
    "OrderStatus",
    "ShippingAddress",
]
