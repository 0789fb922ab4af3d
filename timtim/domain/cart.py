"""Cart domain types: catalog product, cart line and shipping selection."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Parse a stored money value (number or numeric string) as Decimal."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def money_to_json(value: Decimal) -> float | int:
    return int(value) if value == value.to_integral_value() else float(value)


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class Product:
    """Catalog record as supplied by the product service."""

    id: str
    name: str
    price: Decimal
    image: str = ""
    stock: int = 0


@dataclass
class CartItem:
    """Single line in the cart. One entry per product id."""

    id: str
    name: str
    price: Decimal
    quantity: int
    image: str = ""
    stock: int = 0

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> CartItem:
        return cls(
            id=str(product.id),
            name=product.name,
            price=to_decimal(product.price),
            quantity=int(quantity),
            image=product.image,
            stock=int(product.stock or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": money_to_json(self.price),
            "quantity": int(self.quantity),
            "image": self.image,
            "stock": int(self.stock),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CartItem:
        """Build from stored JSON; extra catalog fields of legacy carts are ignored."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            price=to_decimal(data.get("price")),
            quantity=int(data.get("quantity", 1)),
            image=str(data.get("image") or ""),
            stock=int(data.get("stock") or 0),
        )


@dataclass
class ShippingSelection:
    """Shipping quote chosen for the cart; ``is_valid=False`` blocks checkout."""

    cost: Decimal
    is_free: bool
    is_valid: bool
    city: str | None = None
    postal_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "cost": money_to_json(self.cost),
            "is_free": self.is_free,
            "is_valid": self.is_valid,
            "city": self.city,
            "postal_code": self.postal_code,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ShippingSelection:
        """Accepts both the current keys and the legacy camelCase ones."""
        return cls(
            cost=to_decimal(data.get("cost")),
            is_free=bool(_first(data, "is_free", "isFree", default=False)),
            is_valid=bool(_first(data, "is_valid", "isValid", default=False)),
            city=_first(data, "city"),
            postal_code=_first(data, "postal_code", "cep"),
        )


__all__ = ["CartItem", "Product", "ShippingSelection", "money_to_json", "to_decimal"]
