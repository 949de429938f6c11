"""
Field mapping for commerce records shown to customers.

Converts raw e-commerce payloads (Shopify REST shape) into the compact
product cards carried in response metadata.
"""

from typing import Any, Dict, Optional

from bs4 import BeautifulSoup


def strip_html(html: Optional[str]) -> str:
    """Return the visible text of an HTML fragment."""
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)


def map_variant(variant: Dict[str, Any]) -> Dict[str, Any]:
    inventory = variant.get("inventory_quantity")
    return {
        "id": variant.get("id"),
        "title": variant.get("title"),
        "price": variant.get("price"),
        "compare_at_price": variant.get("compare_at_price"),
        "sku": variant.get("sku"),
        "available": bool(inventory and inventory > 0),
        "inventory": inventory,
    }


def map_product(product: Dict[str, Any], store_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Map a product record to a product card.

    Args:
        product: Raw product record
        store_url: Storefront base URL used to build product links

    Returns:
        Product card dict
    """
    handle = product.get("handle")
    url = None
    if handle and store_url:
        url = f"{store_url.rstrip('/')}/products/{handle}"

    return {
        "id": product.get("id"),
        "title": product.get("title"),
        "handle": handle,
        "description": strip_html(product.get("body_html")),
        "vendor": product.get("vendor"),
        "type": product.get("product_type"),
        "tags": product.get("tags"),
        "images": [
            {
                "id": image.get("id"),
                "src": image.get("src"),
                "alt": image.get("alt") or product.get("title"),
            }
            for image in product.get("images") or []
        ],
        "variants": [map_variant(v) for v in product.get("variants") or []],
        "url": url,
    }


def parse_price(value: Any) -> float:
    """Parse a price string; unparseable values count as zero."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
