"""In-memory cart state for one session, mirrored into the session store."""
from __future__ import annotations

import logging
from decimal import Decimal

from timtim.core.cart_storage import CartStore
from timtim.core.order_math import calc_items_total, calc_quantity, calc_shipping_fee, calc_total_price
from timtim.domain.cart import CartItem, Product, ShippingSelection
from timtim.services.migration import LegacyMigrator, MigrationResult

logger = logging.getLogger(__name__)


class CartService:
    """Owns the cart of one session.

    State is kept in memory and written through to :class:`CartStore` on
    every change, so the cart keeps working when storage is unavailable (it
    just does not survive a reload). Quantities always stay within
    ``1..stock``; requests that would break that are refused, not clamped.
    """

    def __init__(self, cart_store: CartStore, migrator: LegacyMigrator | None = None) -> None:
        self._cart_store = cart_store
        self.migration: MigrationResult | None = migrator.migrate() if migrator else None
        self._items: list[CartItem] = cart_store.get_cart()
        self._shipping: ShippingSelection | None = cart_store.get_shipping()

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    @property
    def shipping(self) -> ShippingSelection | None:
        return self._shipping

    @property
    def has_valid_shipping(self) -> bool:
        return self._shipping is not None and self._shipping.is_valid

    def is_empty(self) -> bool:
        return not self._items

    def _find(self, product_id: str) -> CartItem | None:
        for item in self._items:
            if item.id == str(product_id):
                return item
        return None

    def _commit(self) -> None:
        self._cart_store.save_cart(self._items)

    def add_item(self, product: Product) -> bool:
        """Add one unit of ``product``; merges into an existing line."""
        if product.stock <= 0:
            logger.info("Rejected add_item: product %s is out of stock", product.id)
            return False

        existing = self._find(product.id)
        if existing is not None:
            if existing.quantity >= product.stock:
                logger.info(
                    "Rejected add_item: only %s unit(s) of %s available", product.stock, product.id
                )
                return False
            existing.quantity += 1
            existing.stock = int(product.stock)
        else:
            self._items.append(CartItem.from_product(product, quantity=1))
        self._commit()
        return True

    def remove_item(self, product_id: str) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != str(product_id)]
        if len(self._items) == before:
            return False
        self._commit()
        return True

    def update_quantity(self, product_id: str, quantity: int) -> bool:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            return self.remove_item(product_id)

        item = self._find(product_id)
        if item is None:
            logger.info("Rejected update_quantity: %s is not in the cart", product_id)
            return False
        if quantity > item.stock:
            logger.info(
                "Rejected update_quantity: %s unit(s) requested, %s in stock", quantity, item.stock
            )
            return False

        item.quantity = int(quantity)
        self._commit()
        return True

    def clear_cart(self) -> None:
        self._items = []
        self._commit()

    def set_shipping(self, shipping: ShippingSelection | None) -> None:
        self._shipping = shipping
        if shipping is None:
            self._cart_store.clear_shipping()
        else:
            self._cart_store.save_shipping(shipping)

    def reset(self) -> None:
        """Drop cart and shipping, in memory and in storage."""
        self._items = []
        self._shipping = None
        self._cart_store.clear_session()

    @property
    def total(self) -> Decimal:
        return calc_items_total(self._items)

    @property
    def item_count(self) -> int:
        return calc_quantity(self._items)

    @property
    def grand_total(self) -> Decimal:
        return calc_total_price(self.total, calc_shipping_fee(self._shipping))
