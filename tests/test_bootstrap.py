from __future__ import annotations

import json
import logging

from timtim.core.bootstrap import build_storefront
from timtim.core.config import Settings, WhatsAppConfig, load_settings


def test_load_settings_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")
    monkeypatch.setenv("LEGACY_REDIS_URL", "redis://cache:6379/1")
    monkeypatch.setenv("WHATSAPP_NUMBER", "558133334444")
    monkeypatch.setenv("CART_REDIRECT_PATH", "/cart")

    settings = load_settings()

    assert settings.redis_url == "redis://cache:6379/0"
    assert settings.legacy_redis_url == "redis://cache:6379/1"
    assert settings.whatsapp.base_url == "https://wa.me/558133334444"
    assert settings.cart_redirect_path == "/cart"


def test_load_settings_defaults(monkeypatch) -> None:
    for name in ("REDIS_URL", "LEGACY_REDIS_URL", "WHATSAPP_NUMBER", "WHATSAPP_HOST", "CART_REDIRECT_PATH"):
        monkeypatch.setenv(name, "")

    settings = load_settings()

    assert settings.redis_url is None
    assert settings.whatsapp.phone_number == "5581995985278"
    assert settings.whatsapp.host == "wa.me"


def test_invalid_whatsapp_number_is_logged(monkeypatch, caplog) -> None:
    monkeypatch.setenv("WHATSAPP_NUMBER", "12345")

    with caplog.at_level(logging.WARNING, logger="timtim.core.config"):
        settings = load_settings()

    assert settings.whatsapp.phone_number == "12345"
    assert "WHATSAPP_NUMBER" in caplog.text


def test_build_storefront_migrates_once_and_shares_session(fake_redis, legacy_redis) -> None:
    legacy_redis.data["tim-tim-cart"] = json.dumps(
        [{"id": "7", "name": "Rum", "price": 70, "quantity": 2, "stock": 6}]
    )

    storefront = build_storefront(
        Settings(whatsapp=WhatsAppConfig(phone_number="5581999999999")),
        session_client=fake_redis,
        legacy_client=legacy_redis,
        session_id="session-z",
    )

    assert storefront.cart.migration.cart_migrated
    assert storefront.cart.item_count == 2
    assert storefront.cart_store.cart_key == "tim-tim-cart-session-z"
    assert "tim-tim-cart-session-z" in fake_redis.data
    assert "tim-tim-cart" not in legacy_redis.data


def test_build_storefront_without_storage_runs_in_memory() -> None:
    storefront = build_storefront(Settings())

    assert not storefront.session_store.available
    assert storefront.cart.is_empty()
    assert storefront.cart_store.session_id
