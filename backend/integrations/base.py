"""
Abstract capability interfaces used by the support pipeline.

The pipeline never talks to a transport directly. Each external capability
(AI classification, commerce lookups, CRM ticketing) is reached through one
of these interfaces so that any provider can be substituted.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pipeline.models import ClassificationOutcome


class IntentClassifierCapability(ABC):
    """AI-assisted intent classification."""

    @abstractmethod
    async def classify_intents(self, message: str, labels: List[str]) -> ClassificationOutcome:
        """
        Classify a message against a closed label set.

        Args:
            message: Customer message
            labels: Allowed intent labels

        Returns:
            Success outcome with zero or more labels, or a failure outcome
        """
        pass


class ReplyGeneratorCapability(ABC):
    """Generic AI-generated replies."""

    @abstractmethod
    async def generate_reply(
        self,
        message: str,
        history: Optional[List[Dict[str, Any]]] = None
    ) -> str:
        pass

    @abstractmethod
    async def verify_connection(self) -> bool:
        pass


class CommerceAdapter(ABC):
    """Order, product and cart lookups against an e-commerce backend."""

    name = "shopify"

    @abstractmethod
    async def verify_connection(self) -> bool:
        pass

    @abstractmethod
    async def find_orders_by_email(self, email: str) -> List[Dict[str, Any]]:
        """Return zero or more orders placed with this email."""
        pass

    @abstractmethod
    async def find_order_by_number(self, order_number: str) -> Optional[Dict[str, Any]]:
        """
        Return the order matching an order number, if any.

        Raises:
            SearchUnavailable: If the backend cannot search by order number
        """
        pass

    @abstractmethod
    async def search_products(self, query: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_products(self, limit: int = 6) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def find_draft_orders(self, email: str) -> List[Dict[str, Any]]:
        """Return pending cart-equivalent records for this email."""
        pass


class SupportDeskAdapter(ABC):
    """Customer lookup, ticketing and human handoff in a CRM."""

    name = "kustomer"

    @abstractmethod
    async def verify_connection(self) -> bool:
        pass

    @abstractmethod
    async def find_customer(self, email: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def create_customer(self, email: str, name: str) -> Dict[str, Any]:
        pass

    async def find_or_create_customer(self, email: str, name: Optional[str] = None) -> Dict[str, Any]:
        """Resolve a CRM customer by email, creating one if none exists."""
        customer = await self.find_customer(email)
        if customer:
            return customer
        return await self.create_customer(email, name or "Chat Customer")

    @abstractmethod
    async def create_ticket(
        self,
        customer_id: str,
        conversation_id: Optional[str],
        subject: str,
        description: str,
        priority: str
    ) -> Dict[str, Any]:
        """Open a ticket. The returned dict carries an 'id'."""
        pass

    @abstractmethod
    async def escalate_to_human(
        self,
        conversation_id: str,
        customer_id: str,
        reason: str,
        priority: str = "high",
        message: Optional[str] = None,
        history: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Hand a conversation to a human.

        Args:
            conversation_id: Chat conversation identifier
            customer_id: CRM customer identifier
            reason: Generated escalation reason
            priority: Pipeline priority (low, medium, high, urgent)
            message: Customer message that triggered the escalation
            history: Prior chat messages

        Returns:
            Dict with 'ticket_id' and 'escalated_at'
        """
        pass
