"""Session-scoped cart and shipping persistence."""
from __future__ import annotations

import logging
from typing import Any

from timtim.core.constants import CART_KEY_PREFIX, SHIPPING_KEY_PREFIX
from timtim.core.exceptions import StorageErrorKind
from timtim.core.session_identity import SessionIdentity
from timtim.core.session_storage import KeyValueStore, StorageResult
from timtim.domain.cart import CartItem, ShippingSelection

logger = logging.getLogger(__name__)


class CartStore:
    """Cart items and shipping selection stored under ``cart-{S}`` / ``shipping-{S}``.

    Two sessions never see each other's records because their keys differ;
    there is no locking.
    """

    def __init__(self, store: KeyValueStore, identity: SessionIdentity) -> None:
        self._store = store
        self._identity = identity
        # Writes made elsewhere (migration flag, last order) can trigger eviction too.
        store.protect(*self._own_keys())

    @property
    def session_id(self) -> str:
        return self._identity.get_id()

    @property
    def cart_key(self) -> str:
        return f"{CART_KEY_PREFIX}{self.session_id}"

    @property
    def shipping_key(self) -> str:
        return f"{SHIPPING_KEY_PREFIX}{self.session_id}"

    @property
    def persistent(self) -> bool:
        return self._store.available

    def _own_keys(self) -> tuple[str, str]:
        return self.cart_key, self.shipping_key

    def save_cart(self, items: list[CartItem]) -> bool:
        saved = self._store.set(
            self.cart_key, [item.to_dict() for item in items], keep=self._own_keys()
        )
        if not saved and self._store.available:
            logger.warning("Could not save cart for session %s", self.session_id)
        return saved

    def read_cart(self) -> StorageResult[list[CartItem]]:
        result = self._store.read(self.cart_key, [])
        if not result.ok:
            return StorageResult([], result.error)

        payload: Any = result.value
        try:
            if not isinstance(payload, list):
                raise TypeError(f"expected a list, got {type(payload).__name__}")
            return StorageResult([CartItem.from_dict(raw) for raw in payload])
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.error("Discarding malformed cart for session %s: %s", self.session_id, exc)
            self._store.delete(self.cart_key)
            return StorageResult([], StorageErrorKind.CORRUPTED)

    def get_cart(self) -> list[CartItem]:
        return self.read_cart().value

    def clear_cart(self) -> None:
        self._store.delete(self.cart_key)

    def save_shipping(self, info: ShippingSelection) -> bool:
        saved = self._store.set(self.shipping_key, info.to_dict(), keep=self._own_keys())
        if not saved and self._store.available:
            logger.warning("Could not save shipping for session %s", self.session_id)
        return saved

    def get_shipping(self) -> ShippingSelection | None:
        payload = self._store.get(self.shipping_key, None)
        if payload is None:
            return None
        if not isinstance(payload, dict):
            logger.error("Discarding malformed shipping for session %s", self.session_id)
            self._store.delete(self.shipping_key)
            return None
        return ShippingSelection.from_dict(payload)

    def clear_shipping(self) -> None:
        self._store.delete(self.shipping_key)

    def save_cart_data(self, items: list[CartItem], shipping: ShippingSelection | None) -> bool:
        saved = self.save_cart(items)
        if shipping is not None:
            saved = self.save_shipping(shipping) and saved
        return saved

    def get_cart_data(self) -> tuple[list[CartItem], ShippingSelection | None]:
        return self.get_cart(), self.get_shipping()

    def clear_session(self) -> None:
        self.clear_cart()
        self.clear_shipping()
