"""Application-wide constants and configuration values.

Centralizes magic numbers and storage keys to avoid duplication
and make changes easier.
"""
from decimal import Decimal

# ============== TIME CONSTANTS ==============
DELIVERY_TIME_HOURS = 2

# ============== SHIPPING ==============
WEIGHT_PER_BOTTLE_KG = Decimal("1.5")
INCLUDED_WEIGHT_KG = Decimal("1.5")  # covered by the base cost
FREE_SHIPPING_THRESHOLD = Decimal("200.00")
BASE_SHIPPING_COST = Decimal("15.00")
COST_PER_KG = Decimal("5.00")

COVERED_CITIES = (
    "Recife",
    "Olinda",
    "Jaboatão dos Guararapes",
    "Camaragibe",
)

# ============== SESSION STORAGE KEYS ==============
KEY_PREFIX = "tim-tim-"
SESSION_ID_KEY = f"{KEY_PREFIX}session-id"
CART_KEY_PREFIX = f"{KEY_PREFIX}cart-"
SHIPPING_KEY_PREFIX = f"{KEY_PREFIX}shipping-"
MIGRATION_FLAG_KEY = f"{KEY_PREFIX}migrated"
LAST_ORDER_KEY = f"{KEY_PREFIX}last-order"
STORAGE_PROBE_KEY = "__storage_test__"

# Legacy (pre-session) storage, longer-lived and not namespaced
LEGACY_CART_KEY = f"{KEY_PREFIX}cart"
LEGACY_SHIPPING_KEY = f"{KEY_PREFIX}shipping"

# ============== CHECKOUT ==============
ORDER_ID_PREFIX = "TIM-"
CART_PAGE_PATH = "/carrinho"
HOME_PAGE_PATH = "/"

# ============== WHATSAPP ==============
DEFAULT_WHATSAPP_NUMBER = "5581995985278"
DEFAULT_WHATSAPP_HOST = "wa.me"

# ============== CURRENCY ==============
CURRENCY_SYMBOL = "R$"
