"""
External capability adapters.

This module provides:
- Capability interfaces for AI, commerce and CRM backends
- OpenAI-compatible AI client
- Shopify commerce adapter
- Kustomer support desk adapter
"""

from .base import (
    CommerceAdapter,
    IntentClassifierCapability,
    ReplyGeneratorCapability,
    SupportDeskAdapter,
)
from .kustomer_adapter import KustomerAdapter
from .openai_client import OpenAIClient
from .shopify_adapter import ShopifyAdapter

__all__ = [
    "CommerceAdapter",
    "IntentClassifierCapability",
    "ReplyGeneratorCapability",
    "SupportDeskAdapter",
    "KustomerAdapter",
    "OpenAIClient",
    "ShopifyAdapter",
]
