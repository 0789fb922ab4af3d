"""Order domain types and status values."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from timtim.domain.cart import CartItem, money_to_json


class OrderStatus:
    """Order status values. Later statuses are set by the operator, outside this core."""

    PENDING = "pending"


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    phone: str
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "phone": self.phone, "email": self.email}


@dataclass(frozen=True)
class ShippingAddress:
    postal_code: str
    street: str
    number: str
    neighborhood: str
    city: str
    state: str
    complement: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "postal_code": self.postal_code,
            "street": self.street,
            "number": self.number,
            "complement": self.complement,
            "neighborhood": self.neighborhood,
            "city": self.city,
            "state": self.state,
        }


@dataclass(frozen=True)
class Order:
    """Finalized order, built at checkout and handed off once for confirmation."""

    id: str
    items: list[CartItem]
    subtotal: Decimal
    shipping_cost: Decimal
    shipping_is_free: bool
    total: Decimal
    customer_info: CustomerInfo
    shipping_address: ShippingAddress
    shipping_city: str | None = None
    shipping_postal_code: str | None = None
    status: str = OrderStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "items": [item.to_dict() for item in self.items],
            "subtotal": money_to_json(self.subtotal),
            "shipping_cost": money_to_json(self.shipping_cost),
            "shipping_is_free": self.shipping_is_free,
            "total": money_to_json(self.total),
            "shipping": {
                "cost": money_to_json(self.shipping_cost),
                "is_free": self.shipping_is_free,
                "city": self.shipping_city,
                "postal_code": self.shipping_postal_code,
            },
            "customer_info": self.customer_info.to_dict(),
            "shipping_address": self.shipping_address.to_dict(),
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }
