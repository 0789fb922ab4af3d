"""Storefront bootstrap: one explicitly wired component graph per session."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from timtim.core.cart_storage import CartStore
from timtim.core.config import Settings
from timtim.core.session_identity import SessionIdentity
from timtim.core.session_storage import KeyValueStore
from timtim.services.cart_service import CartService
from timtim.services.checkout import CheckoutOrchestrator, Dispatcher, open_in_browser
from timtim.services.migration import LegacyMigrator

logger = logging.getLogger(__name__)


@dataclass
class Storefront:
    session_store: KeyValueStore
    legacy_store: KeyValueStore
    identity: SessionIdentity
    cart_store: CartStore
    migrator: LegacyMigrator
    cart: CartService
    checkout: CheckoutOrchestrator


def build_storefront(
    settings: Settings,
    *,
    session_client: Any | None = None,
    legacy_client: Any | None = None,
    session_id: str | None = None,
    dispatcher: Dispatcher = open_in_browser,
) -> Storefront:
    """Create the cart components of one session from configuration.

    Clients may be passed in directly; otherwise they are created from the
    configured Redis URLs. The legacy migration runs here, once.
    """
    session_store = KeyValueStore(session_client, redis_url=settings.redis_url)
    legacy_store = KeyValueStore(legacy_client, redis_url=settings.legacy_redis_url, evictable_prefixes=())
    if not session_store.available:
        logger.warning("Running without session storage; the cart lives in memory only")

    identity = SessionIdentity(session_store, session_id=session_id)
    cart_store = CartStore(session_store, identity)
    migrator = LegacyMigrator(session_store, legacy_store, cart_store)
    cart = CartService(cart_store, migrator)
    checkout = CheckoutOrchestrator(
        cart,
        session_store,
        whatsapp=settings.whatsapp,
        dispatcher=dispatcher,
        cart_path=settings.cart_redirect_path,
    )
    return Storefront(
        session_store=session_store,
        legacy_store=legacy_store,
        identity=identity,
        cart_store=cart_store,
        migrator=migrator,
        cart=cart,
        checkout=checkout,
    )
