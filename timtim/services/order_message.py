"""
WhatsApp order message builder.

Single source of truth for the text the store operator receives when a
shopper finalizes an order, and for the deep link that carries it.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping
from urllib.parse import quote

from timtim.core.config import WhatsAppConfig
from timtim.core.constants import CURRENCY_SYMBOL, DELIVERY_TIME_HOURS
from timtim.domain.order import Order

SEPARATOR = "━━━━━━━━━━━━━━━━━━━━━━"

# encodeURIComponent leaves these unescaped besides alphanumerics and "-_.~"
_URI_COMPONENT_SAFE = "!*'()"


def format_money(value: Decimal | float) -> str:
    return f"{CURRENCY_SYMBOL} {Decimal(str(value)):.2f}"


def _products_block(order: Order) -> str:
    return "\n".join(
        f"  • {item.quantity}x {item.name}\n    {format_money(item.line_total)}"
        for item in order.items
    )


def _delivery_block(estimated_delivery: datetime | None) -> str:
    text = f"até {DELIVERY_TIME_HOURS} horas 🚚"
    if estimated_delivery is not None:
        text += f"\n*Previsão:* {estimated_delivery.strftime('%H:%M')}"
    return text


def _customer_block(order: Order) -> str:
    customer = order.customer_info
    lines = [f"Nome: {customer.name}", f"Telefone: {customer.phone}"]
    if customer.email:
        lines.append(f"Email: {customer.email}")
    return "\n".join(lines)


def _address_block(order: Order) -> str:
    address = order.shipping_address
    lines = [
        f"{address.street}, {address.number}",
        address.complement,
        address.neighborhood,
        f"{address.city} - {address.state}",
        f"CEP: {address.postal_code}",
    ]
    return "\n".join(line for line in lines if line)


def generate_whatsapp_message(order: Order, estimated_delivery: datetime | None = None) -> str:
    """Render the full order summary sent to the store's WhatsApp."""
    shipping_text = "🎉 *FRETE GRÁTIS*" if order.shipping_is_free else format_money(order.shipping_cost)
    sections = [
        "🍷 *Novo Pedido - Tim-Tim Bebidas*",
        SEPARATOR,
        f"📋 *PEDIDO #{order.id}*\n\n*Produtos:*\n{_products_block(order)}",
        SEPARATOR,
        (
            "💰 *VALORES*\n"
            f"Subtotal: {format_money(order.subtotal)}\n"
            f"Frete: {shipping_text}\n"
            f"{SEPARATOR}\n"
            f"*TOTAL: {format_money(order.total)}*"
        ),
        SEPARATOR,
        f"🚚 *ENTREGA*\n{_delivery_block(estimated_delivery)}\n📍 {order.shipping_city or ''}",
        SEPARATOR,
        f"👤 *DADOS DO CLIENTE*\n{_customer_block(order)}",
        SEPARATOR,
        f"📍 *ENDEREÇO DE ENTREGA*\n{_address_block(order)}",
        SEPARATOR,
        "✨ Obrigado por escolher a Tim-Tim Bebidas!",
    ]
    return "\n\n".join(sections)


def build_whatsapp_url(message: str, config: WhatsAppConfig) -> str:
    return f"{config.base_url}?text={quote(message, safe=_URI_COMPONENT_SAFE)}"


def generate_whatsapp_url(
    order: Order,
    config: WhatsAppConfig,
    estimated_delivery: datetime | None = None,
) -> str:
    return build_whatsapp_url(generate_whatsapp_message(order, estimated_delivery), config)


def validate_order_data(data: Mapping[str, Any]) -> bool:
    """Structural precondition for sending an order; optional fields never matter."""
    if not data.get("id") or not data.get("items"):
        return False

    customer = data.get("customer_info") or {}
    if not customer.get("name") or not customer.get("phone"):
        return False

    address = data.get("shipping_address") or {}
    if not address.get("postal_code") or not address.get("city"):
        return False

    shipping = data.get("shipping") or {}
    if not shipping.get("city"):
        return False

    return True
