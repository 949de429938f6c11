"""
Shopify Admin REST adapter.

This module handles:
- Order lookups by customer email and by order name
- Product listing and catalog search
- Draft orders, used as the cart equivalent
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from pipeline.errors import LookupFailure, SearchUnavailable
from pipeline.field_mapper import strip_html

from .base import CommerceAdapter
from .http_client import BaseHTTPClient

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-01"
CATALOG_PAGE_SIZE = 50


def normalize_store_domain(store_domain: str) -> str:
    """Return the full myshopify.com host for a store name or domain."""
    domain = store_domain.strip().replace("https://", "").replace("http://", "").rstrip("/")
    if not domain.endswith(".myshopify.com"):
        domain = f"{domain}.myshopify.com"
    return domain


def _searchable_text(product: Dict[str, Any]) -> str:
    tags = product.get("tags") or ""
    if isinstance(tags, list):
        tags = " ".join(tags)
    parts = [
        product.get("title") or "",
        strip_html(product.get("body_html")),
        tags,
        product.get("vendor") or "",
    ]
    return " ".join(parts).lower()


class ShopifyAdapter(BaseHTTPClient, CommerceAdapter):
    """CommerceAdapter backed by the Shopify Admin REST API."""

    capability = "shopify"

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize Shopify adapter.

        Args:
            store_domain: Store name or myshopify.com domain
            access_token: Admin API access token
            api_version: Admin API version
            timeout: Request timeout in seconds
            client: Optional preconfigured AsyncClient
        """
        self.store_domain = normalize_store_domain(store_domain)
        super().__init__(
            base_url=f"https://{self.store_domain}/admin/api/{api_version}",
            headers={
                "X-Shopify-Access-Token": access_token,
                "Content-Type": "application/json",
            },
            timeout=timeout,
            client=client,
        )

    @property
    def store_url(self) -> str:
        return f"https://{self.store_domain}"

    async def verify_connection(self) -> bool:
        try:
            data = await self._request("GET", "/shop.json")
        except LookupFailure as e:
            logger.warning(f"Shopify connection check failed: {e}")
            return False
        return bool(data.get("shop"))

    async def find_orders_by_email(self, email: str) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            "/orders.json",
            params={"email": email, "status": "any", "limit": 250},
        )
        orders = data.get("orders") or []
        logger.info(f"Shopify returned {len(orders)} orders for email lookup")
        return orders

    async def find_order_by_number(self, order_number: str) -> Optional[Dict[str, Any]]:
        name = order_number if order_number.startswith("#") else f"#{order_number}"
        try:
            data = await self._request(
                "GET",
                "/orders.json",
                params={"name": name, "status": "any"},
            )
        except LookupFailure as e:
            cause = e.__cause__
            if isinstance(cause, httpx.HTTPStatusError) and cause.response.status_code in (400, 404):
                raise SearchUnavailable(
                    f"Order name search not available: {e}",
                    capability=self.capability,
                ) from e
            raise

        orders = data.get("orders") or []
        return orders[0] if orders else None

    async def search_products(self, query: str) -> List[Dict[str, Any]]:
        """Case-insensitive substring match over a page of active products (title, description, tags, vendor)."""
        products = await self.list_products(CATALOG_PAGE_SIZE)
        if not query:
            return products

        needle = query.lower()
        matches = [product for product in products if needle in _searchable_text(product)]
        logger.info(f"Product search matched {len(matches)} of {len(products)} products")
        return matches

    async def list_products(self, limit: int = 6) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            "/products.json",
            params={"status": "active", "limit": limit},
        )
        return data.get("products") or []

    async def find_draft_orders(self, email: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/draft_orders.json", params={"status": "open"})
        draft_orders = data.get("draft_orders") or []
        return [
            draft for draft in draft_orders
            if draft.get("email") == email or (draft.get("customer") or {}).get("email") == email
        ]
