"""Shared pytest fixtures: in-process Redis stand-ins for session and legacy storage."""
from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from decimal import Decimal

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from timtim.core.cart_storage import CartStore
from timtim.core.session_identity import SessionIdentity
from timtim.core.session_storage import KeyValueStore
from timtim.domain.cart import CartItem, Product, ShippingSelection

OOM_MESSAGE = "OOM command not allowed when used memory > 'maxmemory'."


@dataclass
class FakeRedisClient:
    data: dict[str, str] = field(default_factory=dict)
    max_keys: int | None = None
    down: bool = False
    set_calls: list[str] = field(default_factory=list)

    def _check_up(self) -> None:
        if self.down:
            raise RedisConnectionError("Connection refused")

    def ping(self) -> bool:
        self._check_up()
        return True

    def get(self, key: str):
        self._check_up()
        return self.data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._check_up()
        self.set_calls.append(key)
        if self.max_keys is not None and key not in self.data and len(self.data) >= self.max_keys:
            raise ResponseError(OOM_MESSAGE)
        self.data[key] = value
        return True

    def delete(self, key: str) -> int:
        self._check_up()
        existed = 1 if key in self.data else 0
        self.data.pop(key, None)
        return existed

    def scan_iter(self, match: str | None = None):
        self._check_up()
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key


@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture
def legacy_redis() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture
def store(fake_redis: FakeRedisClient) -> KeyValueStore:
    return KeyValueStore(fake_redis)


@pytest.fixture
def legacy_store(legacy_redis: FakeRedisClient) -> KeyValueStore:
    return KeyValueStore(legacy_redis, evictable_prefixes=())


@pytest.fixture
def cart_store(store: KeyValueStore) -> CartStore:
    return CartStore(store, SessionIdentity(store, session_id="session-a"))


@pytest.fixture
def wine() -> Product:
    return Product(id="vinho-1", name="Vinho Tinto", price=Decimal("89.90"), image="vinho.jpg", stock=3)


@pytest.fixture
def beer() -> Product:
    return Product(id="cerveja-1", name="Cerveja Artesanal", price=Decimal("50.00"), stock=10)


def make_item(item_id: str = "1", price: str = "50.00", quantity: int = 1, stock: int = 10) -> CartItem:
    return CartItem(id=item_id, name=f"Produto {item_id}", price=Decimal(price), quantity=quantity, stock=stock)


def make_shipping(cost: str = "15.00", *, is_free: bool = False, is_valid: bool = True) -> ShippingSelection:
    return ShippingSelection(
        cost=Decimal(cost), is_free=is_free, is_valid=is_valid, city="Recife", postal_code="50000-000"
    )


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def shipping_factory():
    return make_shipping
