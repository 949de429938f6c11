"""
Integration dispatcher for planned actions.

Executes a response plan's actions against the commerce and CRM adapters,
one at a time. A failing action is logged and recorded as a failed result;
it never prevents the remaining actions from running.
"""

import copy
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from .errors import LookupFailure, PipelineFailure, SearchUnavailable
from .models import (
    ActionResult,
    ActionType,
    CartViewAction,
    CustomerContext,
    EscalationAction,
    EscalationReason,
    IntegrationResults,
    OrderLookupAction,
    ProductDetailsAction,
    ProductSearchAction,
    ResultStatus,
    TicketCreationAction,
)
from .response_planner import GENERIC_PRODUCT_QUERY

logger = logging.getLogger(__name__)

PRODUCT_DETAIL_PREFIXES = re.compile(
    r"tell me about|more info about|details about|what is",
    re.IGNORECASE
)

# Capability family each action's result is stored under
ACTION_FAMILIES = {
    ActionType.ORDER_LOOKUP: "shopify",
    ActionType.PRODUCT_SEARCH: "shopify",
    ActionType.CART_VIEW: "shopify",
    ActionType.PRODUCT_DETAILS: "shopify",
    ActionType.ESCALATION: "kustomer",
    ActionType.TICKET_CREATION: "kustomer",
}


class IntegrationDispatcher:
    """Runs planned actions against capability adapters."""

    def __init__(
        self,
        commerce=None,
        support_desk=None,
        product_listing_limit: int = 6,
        clock=datetime.now
    ):
        """
        Initialize dispatcher.

        Args:
            commerce: CommerceAdapter for orders, products and carts
            support_desk: SupportDeskAdapter for tickets and escalation
            product_listing_limit: Products returned for a generic browse
            clock: Function returning the current datetime
        """
        self.commerce = commerce
        self.support_desk = support_desk
        self.product_listing_limit = product_listing_limit
        self._clock = clock
        self.support_desk_connected = support_desk is not None

        self._handlers = {
            ActionType.ORDER_LOOKUP: self._handle_order_lookup,
            ActionType.PRODUCT_SEARCH: self._handle_product_search,
            ActionType.CART_VIEW: self._handle_cart_view,
            ActionType.PRODUCT_DETAILS: self._handle_product_details,
            ActionType.ESCALATION: self._handle_escalation,
            ActionType.TICKET_CREATION: self._handle_ticket_creation,
        }
        missing = set(ActionType) - set(self._handlers)
        if missing:
            raise PipelineFailure(f"No dispatcher handler for: {sorted(m.value for m in missing)}")

    async def execute(
        self,
        actions: List[Any],
        customer_context: CustomerContext,
        message: Dict[str, Any]
    ) -> IntegrationResults:
        """
        Execute actions sequentially.

        Args:
            actions: Planned action records
            customer_context: Caller-supplied customer context
            message: Message dict with 'content' and optional 'conversation_id'

        Returns:
            IntegrationResults keyed by capability family
        """
        results = IntegrationResults()

        for action in actions:
            family = ACTION_FAMILIES[action.type]
            try:
                result = await self._handlers[action.type](action, customer_context, message)
            except Exception as e:
                logger.error(f"Error executing {action.type.value}: {e}", exc_info=True)
                result = ActionResult.failure(action.type, str(e))

            # First action of a family owns its slot
            if result is not None and getattr(results, family) is None:
                setattr(results, family, result)

        return results

    async def _handle_order_lookup(
        self,
        action: OrderLookupAction,
        customer_context: CustomerContext,
        message: Dict[str, Any]
    ) -> ActionResult:
        if self.commerce is None:
            raise LookupFailure("No commerce integration configured", capability="shopify")

        logger.info(
            f"Order lookup: has_email={bool(action.email)}, "
            f"order_numbers={action.order_numbers}"
        )

        orders: List[Dict[str, Any]] = []
        email_error: Optional[LookupFailure] = None

        if action.email:
            try:
                orders = await self.commerce.find_orders_by_email(action.email) or []
                logger.info(f"Found {len(orders)} orders for email")
            except LookupFailure as e:
                logger.warning(f"Order search by email failed: {e}")
                email_error = e

            if orders and action.order_numbers:
                specific = self._match_order(orders, action.order_numbers[0])
                if specific:
                    orders = [specific]

        if not orders and action.order_numbers:
            try:
                order = await self.commerce.find_order_by_number(action.order_numbers[0])
                if order:
                    orders = [order]
                    logger.info(f"Found order by number: {order.get('name')}")
            except SearchUnavailable:
                logger.warning("Order number search not available - treating as no match")

        if not orders and email_error is not None:
            raise email_error

        status = ResultStatus.FOUND if orders else ResultStatus.NOT_FOUND
        return ActionResult(action_type=action.type, status=status, orders=orders)

    @staticmethod
    def _match_order(orders: List[Dict[str, Any]], order_number: str) -> Optional[Dict[str, Any]]:
        number = str(order_number)
        for order in orders:
            if number in str(order.get("name") or ""):
                return order
            if str(order.get("order_number")) == number or str(order.get("id")) == number:
                return order
        return None

    async def _handle_product_search(
        self,
        action: ProductSearchAction,
        customer_context: CustomerContext,
        message: Dict[str, Any]
    ) -> ActionResult:
        if self.commerce is None:
            raise LookupFailure("No commerce integration configured", capability="shopify")

        if action.query and action.query != GENERIC_PRODUCT_QUERY:
            products = await self.commerce.search_products(action.query)
        else:
            products = await self.commerce.list_products(self.product_listing_limit)

        products = products or []
        return ActionResult(
            action_type=action.type,
            status=ResultStatus.FOUND if products else ResultStatus.NOT_FOUND,
            products=products,
            search_query=action.query,
        )

    async def _handle_product_details(
        self,
        action: ProductDetailsAction,
        customer_context: CustomerContext,
        message: Dict[str, Any]
    ) -> ActionResult:
        if self.commerce is None:
            raise LookupFailure("No commerce integration configured", capability="shopify")

        product_query = PRODUCT_DETAIL_PREFIXES.sub("", action.query.lower()).strip(" ?!.")
        logger.info(f"Searching for product details: {product_query}")

        products = await self.commerce.search_products(product_query) if product_query else []
        if not products:
            return ActionResult(
                action_type=action.type,
                status=ResultStatus.NOT_FOUND,
                search_query=product_query,
            )

        return ActionResult(
            action_type=action.type,
            status=ResultStatus.FOUND,
            products=[products[0]],
            search_query=product_query,
        )

    async def _handle_cart_view(
        self,
        action: CartViewAction,
        customer_context: CustomerContext,
        message: Dict[str, Any]
    ) -> ActionResult:
        email = customer_context.email or action.email
        if not email or self.commerce is None:
            logger.info("No email or commerce integration - cart is empty")
            return ActionResult(action_type=action.type, status=ResultStatus.NOT_FOUND)

        draft_orders = await self.commerce.find_draft_orders(email) or []
        return ActionResult(
            action_type=action.type,
            status=ResultStatus.FOUND if draft_orders else ResultStatus.NOT_FOUND,
            draft_orders=draft_orders,
        )

    async def _handle_escalation(
        self,
        action: EscalationAction,
        customer_context: CustomerContext,
        message: Dict[str, Any]
    ) -> Optional[ActionResult]:
        if not self.support_desk_connected:
            logger.warning("Support desk not connected - skipping escalation")
            return None

        customer = await self._resolve_customer(customer_context)
        reason = self.generate_escalation_reason(action)
        now = self._clock()

        escalation = await self.support_desk.escalate_to_human(
            message.get("conversation_id") or f"chat_conv_{int(now.timestamp())}",
            (customer or {}).get("id") or f"anonymous_{int(now.timestamp())}",
            reason,
            priority=action.priority.value,
            message=message.get("content"),
            history=customer_context.chat_history,
        )

        return ActionResult(
            action_type=action.type,
            status=ResultStatus.FOUND,
            ticket_id=escalation.get("ticket_id"),
            escalated_at=escalation.get("escalated_at"),
            reason=reason,
            customer=customer,
        )

    async def _handle_ticket_creation(
        self,
        action: TicketCreationAction,
        customer_context: CustomerContext,
        message: Dict[str, Any]
    ) -> Optional[ActionResult]:
        if not self.support_desk_connected:
            logger.warning("Support desk not connected - skipping ticket creation")
            return None

        customer = await self._resolve_customer(customer_context)
        subject = self.generate_ticket_subject(action)
        description = self.generate_ticket_description(action, message, customer_context)

        ticket = await self.support_desk.create_ticket(
            (customer or {}).get("id") or f"anonymous_{int(self._clock().timestamp())}",
            message.get("conversation_id"),
            subject,
            description,
            action.priority.value,
        )

        return ActionResult(
            action_type=action.type,
            status=ResultStatus.FOUND,
            ticket_id=(ticket or {}).get("id"),
            subject=subject,
            customer=customer,
        )

    async def _resolve_customer(self, customer_context: CustomerContext) -> Optional[Dict[str, Any]]:
        if not customer_context.email:
            return None
        return await self.support_desk.find_or_create_customer(
            customer_context.email,
            customer_context.name,
        )

    @staticmethod
    def generate_escalation_reason(action: EscalationAction) -> str:
        if action.reason == EscalationReason.CUSTOMER_REQUEST:
            return "Customer requested to speak with a human agent"
        return (
            f"Customer sentiment detected as {action.sentiment.value} "
            f"- proactive escalation (priority: {action.priority.value})"
        )

    def generate_ticket_subject(self, action: TicketCreationAction) -> str:
        date = self._clock().strftime("%Y-%m-%d")
        subjects = {
            "billing": "Billing Inquiry",
            "order": "Order Support Request",
            "technical": "Technical Support",
        }
        return f"{subjects.get(action.category, 'Customer Support Request')} - {date}"

    def generate_ticket_description(
        self,
        action: TicketCreationAction,
        message: Dict[str, Any],
        customer_context: CustomerContext
    ) -> str:
        lines = [f'Customer Message: "{message.get("content", "")}"', ""]
        if customer_context.email:
            lines.append(f"Customer Email: {customer_context.email}")
        if customer_context.name:
            lines.append(f"Customer Name: {customer_context.name}")
        lines.append(f"Category: {action.category}")
        lines.append(f"Priority: {action.priority.value}")
        lines.append(f"Created: {self._clock().strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append("")
        lines.append("This ticket was automatically created by the chatbot system.")
        return "\n".join(lines)

    @staticmethod
    def enrich_customer_context(
        customer_context: CustomerContext,
        results: IntegrationResults
    ) -> CustomerContext:
        """
        Copy the customer context and attach data gathered by the integrations.

        Args:
            customer_context: Caller-supplied context
            results: Dispatcher results for this message

        Returns:
            Enriched copy of the context
        """
        enriched = copy.deepcopy(customer_context)

        if results.shopify is not None:
            enriched.shopify = {
                "orders": list(results.shopify.orders),
                "products": list(results.shopify.products),
            }

        if results.kustomer is not None:
            enriched.kustomer = {
                "customer_id": (results.kustomer.customer or {}).get("id"),
                "ticket_id": results.kustomer.ticket_id,
                "escalated": bool(results.kustomer.escalated_at),
            }

        return enriched
