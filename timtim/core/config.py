"""Environment-driven configuration objects for the storefront."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field

from dotenv import load_dotenv

from timtim.core.constants import CART_PAGE_PATH, DEFAULT_WHATSAPP_HOST, DEFAULT_WHATSAPP_NUMBER

logger = logging.getLogger(__name__)

_WHATSAPP_NUMBER_RE = re.compile(r"^\d{12,13}$")


@dataclass(slots=True)
class WhatsAppConfig:
    """Destination of finalized orders.

    ``phone_number`` uses the international format without separators:
    country code + area code + number, e.g. ``5581999999999``.
    """

    phone_number: str = DEFAULT_WHATSAPP_NUMBER
    host: str = DEFAULT_WHATSAPP_HOST

    @property
    def base_url(self) -> str:
        return f"https://{self.host}/{self.phone_number}"

    def is_valid(self) -> bool:
        return bool(_WHATSAPP_NUMBER_RE.match(self.phone_number))

    def formatted_number(self) -> str:
        number = self.phone_number
        if len(number) == 13:
            return f"+{number[:2]} {number[2:4]} {number[4:9]}-{number[9:]}"
        if len(number) == 12:
            return f"+{number[:2]} {number[2:4]} {number[4:8]}-{number[8:]}"
        return f"+{number}"


@dataclass(slots=True)
class Settings:
    redis_url: str | None = None
    legacy_redis_url: str | None = None
    whatsapp: WhatsAppConfig = field(default_factory=WhatsAppConfig)
    cart_redirect_path: str = CART_PAGE_PATH


def load_settings() -> Settings:
    """Load environment variables once and expose typed settings."""
    load_dotenv()

    whatsapp = WhatsAppConfig(
        phone_number=os.getenv("WHATSAPP_NUMBER", "").strip() or DEFAULT_WHATSAPP_NUMBER,
        host=os.getenv("WHATSAPP_HOST", "").strip() or DEFAULT_WHATSAPP_HOST,
    )
    if not whatsapp.is_valid():
        logger.warning(
            "WHATSAPP_NUMBER %r is not in the expected format "
            "(country code + area code + number, e.g. 5581999999999)",
            whatsapp.phone_number,
        )

    return Settings(
        redis_url=os.getenv("REDIS_URL") or None,
        legacy_redis_url=os.getenv("LEGACY_REDIS_URL") or None,
        whatsapp=whatsapp,
        cart_redirect_path=os.getenv("CART_REDIRECT_PATH", CART_PAGE_PATH),
    )
