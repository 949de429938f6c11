"""
Kustomer CRM adapter.

This module handles:
- Customer lookup and creation by email
- Conversation (ticket) creation with an initial message
- Human handoff of a chat conversation
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from pipeline.errors import LookupFailure

from .base import SupportDeskAdapter
from .http_client import BaseHTTPClient

logger = logging.getLogger(__name__)

# Pipeline priority -> Kustomer numeric priority (1 lowest, 5 highest)
PRIORITY_LEVELS = {"low": 1, "medium": 2, "normal": 2, "high": 4, "urgent": 5}

HISTORY_EXCERPT_LENGTH = 10


class KustomerAdapter(BaseHTTPClient, SupportDeskAdapter):
    """SupportDeskAdapter backed by the Kustomer REST API."""

    capability = "kustomer"

    def __init__(
        self,
        subdomain: str,
        api_key: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__(
            base_url=f"https://{subdomain}.api.kustomerapp.com",
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            client=client,
        )

    async def verify_connection(self) -> bool:
        try:
            await self._request("GET", "/v1/customers", params={"page[limit]": 1})
        except LookupFailure as e:
            logger.warning(f"Kustomer connection check failed: {e}")
            return False
        return True

    async def find_customer(self, email: str) -> Optional[Dict[str, Any]]:
        data = await self._request("GET", "/v1/customers", params={"email": email})
        customers = data.get("data") or []
        if isinstance(customers, dict):
            customers = [customers]
        return customers[0] if customers else None

    async def create_customer(self, email: str, name: str) -> Dict[str, Any]:
        payload = {
            "name": name,
            "emails": [{"type": "home", "email": email}],
        }
        data = await self._request("POST", "/v1/customers", json=payload)
        customer = data.get("data") or {}
        logger.info(f"Created Kustomer customer {customer.get('id')}")
        return customer

    async def create_ticket(
        self,
        customer_id: str,
        conversation_id: Optional[str],
        subject: str,
        description: str,
        priority: str
    ) -> Dict[str, Any]:
        payload = {
            "customer": customer_id,
            "name": subject,
            "status": "open",
            "priority": PRIORITY_LEVELS.get(priority, 2),
            "custom": {"chatConversationIdStr": conversation_id} if conversation_id else {},
        }
        data = await self._request("POST", "/v1/conversations", json=payload)
        ticket = data.get("data") or {}
        ticket_id = ticket.get("id")

        if ticket_id and description:
            await self._post_message(ticket_id, description)

        logger.info(f"Created Kustomer ticket {ticket_id}")
        return {"id": ticket_id, "subject": subject}

    async def escalate_to_human(
        self,
        conversation_id: str,
        customer_id: str,
        reason: str,
        priority: str = "high",
        message: Optional[str] = None,
        history: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        lines = []
        if message:
            lines.append(f'Customer Message: "{message}"')
        lines.append(f"Escalation reason: {reason}")
        lines.append(f"Priority: {priority}")
        lines.append(f"Chat conversation: {conversation_id}")
        excerpt = (history or [])[-HISTORY_EXCERPT_LENGTH:]
        if excerpt:
            lines.append("")
            lines.append("Recent messages:")
            for entry in excerpt:
                sender = entry.get("sender_type") or entry.get("role") or "unknown"
                lines.append(f"[{sender}] {entry.get('content', '')}")

        ticket = await self.create_ticket(
            customer_id,
            conversation_id,
            "Chat escalated to human agent",
            "\n".join(lines),
            priority,
        )
        return {"ticket_id": ticket.get("id"), "escalated_at": datetime.now().isoformat()}

    async def _post_message(self, ticket_id: str, body: str) -> None:
        await self._request(
            "POST",
            f"/v1/conversations/{ticket_id}/messages",
            json={"channel": "chat", "direction": "in", "preview": body[:200], "body": body},
        )
