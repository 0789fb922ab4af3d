"""Express delivery pricing for the covered Recife metro municipalities.

Pure functions only: address lookup by postal code happens upstream and the
caller passes the resolved city in.
"""
from __future__ import annotations

import math
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable

from timtim.core.constants import (
    BASE_SHIPPING_COST,
    COST_PER_KG,
    COVERED_CITIES,
    DELIVERY_TIME_HOURS,
    FREE_SHIPPING_THRESHOLD,
    INCLUDED_WEIGHT_KG,
    WEIGHT_PER_BOTTLE_KG,
)
from timtim.core.order_math import quantize_money
from timtim.domain.cart import CartItem, ShippingSelection, to_decimal


def calculate_total_weight(items: Iterable[CartItem]) -> Decimal:
    """Total weight in kg; every unit counts as one bottle."""
    bottles = sum(int(item.quantity) for item in items)
    return bottles * WEIGHT_PER_BOTTLE_KG


def calculate_shipping_cost(weight_kg: Decimal | float, subtotal: Decimal | float) -> Decimal:
    """Base cost plus a per-kg charge above the included weight.

    Orders at or above the free shipping threshold ship for free whatever
    they weigh. Partial kilograms are charged as whole ones.
    """
    if to_decimal(subtotal) >= FREE_SHIPPING_THRESHOLD:
        return Decimal("0.00")

    additional_weight = max(Decimal("0"), to_decimal(weight_kg) - INCLUDED_WEIGHT_KG)
    additional_cost = math.ceil(additional_weight) * COST_PER_KG
    return quantize_money(BASE_SHIPPING_COST + additional_cost)


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def get_covered_cities() -> list[str]:
    return list(COVERED_CITIES)


def is_city_in_coverage(city: str | None) -> bool:
    """Case and accent insensitive; partial names match either way round."""
    if not city or not city.strip():
        return False
    wanted = _fold(city)
    for covered in COVERED_CITIES:
        folded = _fold(covered)
        if wanted == folded or folded in wanted or wanted in folded:
            return True
    return False


def get_estimated_delivery_time(now: datetime | None = None) -> datetime:
    return (now or datetime.now()) + timedelta(hours=DELIVERY_TIME_HOURS)


def get_shipping_info() -> dict[str, Any]:
    return {
        "delivery_time": f"até {DELIVERY_TIME_HOURS} horas",
        "free_shipping_threshold": FREE_SHIPPING_THRESHOLD,
        "covered_cities": get_covered_cities(),
        "base_shipping_cost": BASE_SHIPPING_COST,
        "weight_per_bottle": WEIGHT_PER_BOTTLE_KG,
    }


@dataclass(frozen=True)
class ShippingQuote:
    is_available: bool
    cost: Decimal
    is_free: bool
    estimated_hours: int
    total_weight: Decimal
    message: str
    city: str | None = None
    postal_code: str | None = None

    def to_selection(self) -> ShippingSelection:
        return ShippingSelection(
            cost=self.cost,
            is_free=self.is_free,
            is_valid=self.is_available,
            city=self.city,
            postal_code=self.postal_code,
        )


def _coverage_error(city: str | None) -> str:
    covered = ", ".join(COVERED_CITIES[:-1]) + f" e {COVERED_CITIES[-1]}"
    if not city:
        return "CEP fora da área de cobertura"
    return f"Desculpe, não entregamos em {city}. Atendemos apenas: {covered}."


def quote_shipping(
    city: str | None,
    postal_code: str | None,
    items: Iterable[CartItem],
    subtotal: Decimal | float,
) -> ShippingQuote:
    """Price delivery to an already resolved address."""
    if not is_city_in_coverage(city):
        return ShippingQuote(
            is_available=False,
            cost=Decimal("0.00"),
            is_free=False,
            estimated_hours=0,
            total_weight=Decimal("0"),
            message=_coverage_error(city),
            city=city,
            postal_code=postal_code,
        )

    total_weight = calculate_total_weight(items)
    cost = calculate_shipping_cost(total_weight, subtotal)
    is_free = cost == 0
    if is_free:
        message = f"🎉 Frete Grátis! Entrega em até {DELIVERY_TIME_HOURS} horas."
    else:
        message = f"Entrega expressa em até {DELIVERY_TIME_HOURS} horas por R$ {cost:.2f}"
    return ShippingQuote(
        is_available=True,
        cost=cost,
        is_free=is_free,
        estimated_hours=DELIVERY_TIME_HOURS,
        total_weight=total_weight,
        message=message,
        city=city,
        postal_code=postal_code,
    )


def format_shipping_message(quote: ShippingQuote) -> str:
    if not quote.is_available:
        return quote.message
    if quote.is_free:
        return (
            f"🎉 Frete Grátis para {quote.city}! "
            f"Entrega em até {quote.estimated_hours} horas."
        )
    return (
        f"Frete para {quote.city}: R$ {quote.cost:.2f} - "
        f"Entrega em até {quote.estimated_hours} horas."
    )
