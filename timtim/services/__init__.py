"""Business services orchestrating domain logic."""

from .cart_service import CartService
from .checkout import CheckoutOrchestrator, CheckoutOutcome, pop_last_order
from .migration import LegacyMigrator, MigrationResult, MigrationState

__all__ = [
    "CartService",
    "CheckoutOrchestrator",
    "CheckoutOutcome",
    "LegacyMigrator",
    "MigrationResult",
    "MigrationState",
    "pop_last_order",
]
