"""One-shot migration of cart data from the legacy storage into the session.

The migration state lives in the session store it fills. Once the state is
``migrated`` it never runs again on its own, whether the attempt succeeded or
not: the guarantee is at most one attempt per session.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from timtim.core.cart_storage import CartStore
from timtim.core.constants import LEGACY_CART_KEY, LEGACY_SHIPPING_KEY, MIGRATION_FLAG_KEY
from timtim.core.session_storage import KeyValueStore
from timtim.domain.cart import CartItem, ShippingSelection

logger = logging.getLogger(__name__)


class MigrationState(str, Enum):
    NOT_MIGRATED = "not_migrated"
    MIGRATED = "migrated"

    @classmethod
    def normalize(cls, stored: Any) -> MigrationState:
        # Older builds stored a bare ``true`` flag.
        if stored is True or stored == "true" or stored == cls.MIGRATED.value:
            return cls.MIGRATED
        return cls.NOT_MIGRATED


@dataclass
class MigrationResult:
    success: bool = True
    cart_migrated: bool = False
    shipping_migrated: bool = False
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MigrationStatus:
    migrated: bool
    has_legacy_cart: bool
    has_legacy_shipping: bool


@dataclass(frozen=True, slots=True)
class _StepResult:
    migrated: bool = False
    error: str | None = None


class _MalformedData(ValueError):
    pass


def _parse_legacy(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise _MalformedData(f"Dados corrompidos: {exc}") from exc


class LegacyMigrator:
    def __init__(self, session_store: KeyValueStore, legacy_store: KeyValueStore, cart_store: CartStore) -> None:
        self._session_store = session_store
        self._legacy_store = legacy_store
        self._cart_store = cart_store

    @property
    def state(self) -> MigrationState:
        return MigrationState.normalize(self._session_store.get(MIGRATION_FLAG_KEY, None))

    def has_migrated(self) -> bool:
        return self.state is MigrationState.MIGRATED

    def _mark_as_migrated(self) -> None:
        if not self._session_store.set(MIGRATION_FLAG_KEY, MigrationState.MIGRATED.value):
            logger.error("Failed to persist migration state")

    def _migrate_cart(self) -> _StepResult:
        raw = self._legacy_store.get_raw(LEGACY_CART_KEY)
        if raw is None:
            logger.info("No legacy cart found")
            return _StepResult()

        try:
            payload = _parse_legacy(raw)
            if not isinstance(payload, list):
                raise _MalformedData("Formato de carrinho inválido")
            try:
                items = [CartItem.from_dict(entry) for entry in payload]
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise _MalformedData("Formato de carrinho inválido") from exc
        except _MalformedData as exc:
            logger.error("Legacy cart not migrated: %s", exc)
            return _StepResult(error=str(exc))

        if not self._cart_store.save_cart(items):
            return _StepResult(error="Não foi possível salvar o carrinho na sessão")
        logger.info("Legacy cart migrated: %s item(s)", len(items))
        return _StepResult(migrated=True)

    def _migrate_shipping(self) -> _StepResult:
        raw = self._legacy_store.get_raw(LEGACY_SHIPPING_KEY)
        if raw is None:
            logger.info("No legacy shipping info found")
            return _StepResult()

        try:
            payload = _parse_legacy(raw)
            if not isinstance(payload, dict):
                raise _MalformedData("Formato de frete inválido")
        except _MalformedData as exc:
            logger.error("Legacy shipping not migrated: %s", exc)
            return _StepResult(error=str(exc))

        if not self._cart_store.save_shipping(ShippingSelection.from_dict(payload)):
            return _StepResult(error="Não foi possível salvar o frete na sessão")
        logger.info("Legacy shipping info migrated")
        return _StepResult(migrated=True)

    def _cleanup_legacy(self) -> None:
        for key in (LEGACY_CART_KEY, LEGACY_SHIPPING_KEY):
            if self._legacy_store.exists(key) and not self._legacy_store.delete(key):
                logger.warning("Could not remove legacy key %s", key)

    def migrate(self) -> MigrationResult:
        """Move legacy cart and shipping into the session, at most once."""
        result = MigrationResult()

        if not self._session_store.available:
            logger.warning("Session storage unavailable; legacy migration skipped")
            return result

        if self.has_migrated():
            logger.debug("Legacy migration already done for this session")
            return result

        logger.info("Starting legacy storage migration")
        try:
            cart = self._migrate_cart()
            result.cart_migrated = cart.migrated
            if cart.error:
                result.success = False
                result.errors.append(f"Carrinho: {cart.error}")

            shipping = self._migrate_shipping()
            result.shipping_migrated = shipping.migrated
            if shipping.error:
                result.success = False
                result.errors.append(f"Frete: {shipping.error}")

            if result.cart_migrated or result.shipping_migrated:
                self._cleanup_legacy()
        except Exception as exc:
            logger.exception("Critical error during legacy migration")
            result.success = False
            result.errors.append(f"Erro crítico: {exc}")
        finally:
            self._mark_as_migrated()

        if not result.success:
            logger.warning("Legacy migration finished with errors: %s", result.errors)
        elif result.cart_migrated or result.shipping_migrated:
            logger.info("Legacy migration finished")
        else:
            logger.info("Nothing to migrate from legacy storage")
        return result

    def force_migration(self) -> MigrationResult:
        """Operator action: drop the migration state and run again."""
        logger.info("Forcing legacy migration re-run")
        self._session_store.delete(MIGRATION_FLAG_KEY)
        return self.migrate()

    def migration_status(self) -> MigrationStatus:
        return MigrationStatus(
            migrated=self.has_migrated(),
            has_legacy_cart=self._legacy_store.exists(LEGACY_CART_KEY),
            has_legacy_shipping=self._legacy_store.exists(LEGACY_SHIPPING_KEY),
        )
