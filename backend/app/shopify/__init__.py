"""Интеграция с Shopify Admin API."""

from .client import (
    ShopifyClient,
    ShopifyConfigurationError,
    ShopifyError,
    ShopifyRequestError,
)

__all__ = [
    "ShopifyClient",
    "ShopifyConfigurationError",
    "ShopifyError",
    "ShopifyRequestError",
]
