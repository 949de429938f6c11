"""In-memory capability adapters for unit tests."""

from typing import Any, Dict, List, Optional

from integrations.base import (
    CommerceAdapter,
    IntentClassifierCapability,
    ReplyGeneratorCapability,
    SupportDeskAdapter,
)
from pipeline.models import ClassificationOutcome


class FakeCommerce(CommerceAdapter):
    """Commerce adapter backed by lists, with per-method error injection."""

    def __init__(
        self,
        orders: Optional[List[Dict[str, Any]]] = None,
        products: Optional[List[Dict[str, Any]]] = None,
        draft_orders: Optional[List[Dict[str, Any]]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        connected: bool = True
    ):
        self.orders = orders or []
        self.products = products or []
        self.draft_orders = draft_orders or []
        self.errors = errors or {}
        self.connected = connected
        self.calls: List[tuple] = []

    def _record(self, method: str, *args) -> None:
        self.calls.append((method,) + args)
        if method in self.errors:
            raise self.errors[method]

    async def verify_connection(self) -> bool:
        self._record("verify_connection")
        return self.connected

    async def find_orders_by_email(self, email: str) -> List[Dict[str, Any]]:
        self._record("find_orders_by_email", email)
        return [o for o in self.orders if o.get("email") == email]

    async def find_order_by_number(self, order_number: str) -> Optional[Dict[str, Any]]:
        self._record("find_order_by_number", order_number)
        for order in self.orders:
            if str(order.get("order_number")) == order_number or order.get("name") == f"#{order_number}":
                return order
        return None

    async def search_products(self, query: str) -> List[Dict[str, Any]]:
        self._record("search_products", query)
        return [p for p in self.products if query.lower() in p.get("title", "").lower()]

    async def list_products(self, limit: int = 6) -> List[Dict[str, Any]]:
        self._record("list_products", limit)
        return self.products[:limit]

    async def find_draft_orders(self, email: str) -> List[Dict[str, Any]]:
        self._record("find_draft_orders", email)
        return [d for d in self.draft_orders if d.get("email") == email]


class FakeSupportDesk(SupportDeskAdapter):
    """Support desk adapter that records tickets in memory."""

    def __init__(self, connected: bool = True, errors: Optional[Dict[str, Exception]] = None):
        self.connected = connected
        self.errors = errors or {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.tickets: List[Dict[str, Any]] = []
        self.escalations: List[Dict[str, Any]] = []

    def _check(self, method: str) -> None:
        if method in self.errors:
            raise self.errors[method]

    async def verify_connection(self) -> bool:
        self._check("verify_connection")
        return self.connected

    async def find_customer(self, email: str) -> Optional[Dict[str, Any]]:
        self._check("find_customer")
        return self.customers.get(email)

    async def create_customer(self, email: str, name: str) -> Dict[str, Any]:
        self._check("create_customer")
        customer = {"id": f"cust_{len(self.customers) + 1}", "email": email, "name": name}
        self.customers[email] = customer
        return customer

    async def create_ticket(self, customer_id, conversation_id, subject, description, priority):
        self._check("create_ticket")
        ticket = {
            "id": f"T-{len(self.tickets) + 1}",
            "customer_id": customer_id,
            "conversation_id": conversation_id,
            "subject": subject,
            "description": description,
            "priority": priority,
        }
        self.tickets.append(ticket)
        return ticket

    async def escalate_to_human(self, conversation_id, customer_id, reason,
                                priority="high", message=None, history=None):
        self._check("escalate_to_human")
        escalation = {
            "ticket_id": f"E-{len(self.escalations) + 1}",
            "escalated_at": "2024-05-01T10:00:00",
            "reason": reason,
            "customer_id": customer_id,
            "priority": priority,
            "message": message,
        }
        self.escalations.append(escalation)
        return escalation


class FakeAI(IntentClassifierCapability, ReplyGeneratorCapability):
    """AI capability returning canned labels and replies."""

    def __init__(
        self,
        outcome: Optional[ClassificationOutcome] = None,
        reply: str = "Here is an AI reply.",
        connected: bool = True
    ):
        self.outcome = outcome or ClassificationOutcome.success([])
        self.reply = reply
        self.connected = connected
        self.reply_calls: List[str] = []

    async def classify_intents(self, message: str, labels: List[str]) -> ClassificationOutcome:
        return self.outcome

    async def generate_reply(self, message, history=None) -> str:
        self.reply_calls.append(message)
        return self.reply

    async def verify_connection(self) -> bool:
        return self.connected


def make_order(**overrides) -> Dict[str, Any]:
    """Shopify-shaped order with sensible defaults."""
    order = {
        "id": 5550001,
        "name": "#10045",
        "order_number": 10045,
        "email": "jane@example.com",
        "total_price": "129.99",
        "currency": "USD",
        "financial_status": "paid",
        "fulfillment_status": None,
        "cancelled_at": None,
        "fulfillments": [],
        "line_items": [{"title": "Wireless Headphones", "quantity": 1}],
        "shipping_address": {
            "address1": "1 Main St",
            "city": "Springfield",
            "province_code": "IL",
            "zip": "62701",
        },
    }
    order.update(overrides)
    return order


def make_product(**overrides) -> Dict[str, Any]:
    """Shopify-shaped product with one variant."""
    product = {
        "id": 777,
        "title": "Wireless Headphones",
        "handle": "wireless-headphones",
        "body_html": "<p>Noise <strong>cancelling</strong> over-ear headphones.</p>",
        "vendor": "SoundCo",
        "product_type": "headphones",
        "tags": "audio",
        "images": [{"id": 1, "src": "https://cdn.example.com/h.jpg", "alt": None}],
        "variants": [
            {"id": 901, "title": "Black", "price": "99.00", "compare_at_price": "129.00",
             "sku": "WH-1", "inventory_quantity": 5},
        ],
    }
    product.update(overrides)
    return product
