"""Tim-Tim Bebidas storefront core: session cart, shipping and WhatsApp checkout."""

__version__ = "1.0.0"
