"""
Response planning for analyzed customer messages.

Turns an IntentAnalysis plus conversation memory into an ordered list of
backend actions and the response template that should render their results.
"""

import logging
import re
from typing import List, Optional

from .conversation_memory import ConversationMemoryStore
from .models import (
    CartViewAction,
    CollectedData,
    EscalationAction,
    EscalationReason,
    Intent,
    IntentAnalysis,
    OrderLookupAction,
    ProductDetailsAction,
    ProductSearchAction,
    ResponsePlan,
    ResponseType,
    TicketCreationAction,
    WaitingFor,
)

logger = logging.getLogger(__name__)

GENERIC_PRODUCT_QUERY = "browse"

STOP_WORDS = {
    "show", "me", "get", "find", "looking", "for", "some", "the", "a", "an",
    "need", "want", "buy", "purchase", "i", "am", "can", "you", "what", "is",
    "are", "do", "does", "have", "any", "your",
}

# Primary intents in priority order; only the first one present is planned
PRIMARY_INTENTS = [
    Intent.ORDER_TRACKING,
    Intent.PRODUCT_SEARCH,
    Intent.CART_INQUIRY,
    Intent.PRODUCT_QUESTION,
]


class ResponsePlanner:
    """Builds response plans from intent analyses."""

    def __init__(self, memory: ConversationMemoryStore):
        """
        Initialize response planner.

        Args:
            memory: Conversation memory shared with the classifier
        """
        self.memory = memory

    def plan(
        self,
        analysis: IntentAnalysis,
        original_message: str = "",
        conversation_id: Optional[str] = None
    ) -> ResponsePlan:
        """
        Generate a response plan.

        Args:
            analysis: Classifier output for the message
            original_message: Raw customer message
            conversation_id: Conversation the message belongs to

        Returns:
            ResponsePlan with ordered actions and a response type
        """
        plan = ResponsePlan()
        primary = self._select_primary_intent(analysis)

        if primary == Intent.ORDER_TRACKING:
            self._plan_order_tracking(plan, analysis, conversation_id)
        elif primary == Intent.PRODUCT_SEARCH:
            plan.actions.append(ProductSearchAction(
                query=self.extract_search_query(original_message, analysis.entities.products),
                products=list(analysis.entities.products),
            ))
            plan.response_type = ResponseType.PRODUCT_RECOMMENDATIONS
        elif primary == Intent.CART_INQUIRY:
            plan.actions.append(CartViewAction(email=analysis.entities.email))
            plan.response_type = ResponseType.CART_DISPLAY
        elif primary == Intent.PRODUCT_QUESTION:
            plan.actions.append(ProductDetailsAction(query=original_message))
            plan.response_type = ResponseType.PRODUCT_DETAILS

        if analysis.requires_escalation:
            reason = (
                EscalationReason.CUSTOMER_REQUEST
                if analysis.has(Intent.SUPPORT_ESCALATION)
                else EscalationReason.SENTIMENT_ANALYSIS
            )
            plan.actions.append(EscalationAction(
                priority=analysis.priority,
                sentiment=analysis.sentiment,
                reason=reason,
            ))
            self._claim(plan, ResponseType.ESCALATION)

        if analysis.has(Intent.BILLING_INQUIRY):
            plan.actions.append(TicketCreationAction(category="billing", priority=analysis.priority))
            self._claim(plan, ResponseType.BILLING_SUPPORT)

        if not plan.actions and plan.response_type == ResponseType.STANDARD:
            self._plan_fallback(plan, analysis, original_message)

        logger.info(
            f"Response plan: type={plan.response_type.value}, "
            f"actions={[a.value for a in plan.action_types()]}"
        )
        return plan

    def _select_primary_intent(self, analysis: IntentAnalysis) -> Optional[Intent]:
        for intent in PRIMARY_INTENTS:
            if analysis.has(intent):
                return intent
        return None

    def _plan_order_tracking(
        self,
        plan: ResponsePlan,
        analysis: IntentAnalysis,
        conversation_id: Optional[str]
    ) -> None:
        existing = self.memory.get(conversation_id)
        stored = existing.collected_data if existing else CollectedData()

        email = analysis.entities.email or stored.email
        order_numbers = list(analysis.entities.order_numbers) or list(stored.order_numbers)

        if conversation_id:
            if not email:
                waiting_for = WaitingFor.EMAIL
            elif not order_numbers:
                waiting_for = WaitingFor.ORDER_NUMBER
            else:
                waiting_for = None
            self.memory.set(
                conversation_id,
                active_intent=Intent.ORDER_TRACKING,
                waiting_for=waiting_for,
                collected_data=CollectedData(email=email, order_numbers=order_numbers),
            )

        if email or order_numbers:
            plan.actions.append(OrderLookupAction(email=email, order_numbers=order_numbers))
        else:
            logger.info("Order tracking with no email or order number - asking customer")
        plan.response_type = ResponseType.ORDER_STATUS

    def _plan_fallback(self, plan: ResponsePlan, analysis: IntentAnalysis, message: str) -> None:
        message_lower = message.lower()
        if "order" in message_lower or "track" in message_lower:
            logger.info("Fallback: order-related keywords")
            plan.actions.append(OrderLookupAction(
                email=analysis.entities.email,
                order_numbers=list(analysis.entities.order_numbers),
            ))
            plan.response_type = ResponseType.ORDER_STATUS
        elif re.search(r"product|item|catalog|shop|store|buy|purchase", message_lower):
            logger.info("Fallback: product-related keywords")
            plan.actions.append(ProductSearchAction(query=GENERIC_PRODUCT_QUERY))
            plan.response_type = ResponseType.PRODUCT_RECOMMENDATIONS
        elif re.search(r"cart|checkout", message_lower):
            logger.info("Fallback: cart-related keywords")
            plan.actions.append(CartViewAction(email=analysis.entities.email))
            plan.response_type = ResponseType.CART_DISPLAY

    @staticmethod
    def _claim(plan: ResponsePlan, response_type: ResponseType) -> None:
        if plan.response_type == ResponseType.STANDARD:
            plan.response_type = response_type

    @staticmethod
    def extract_search_query(message: str, products: Optional[List[str]] = None) -> str:
        """
        Derive a product search query.

        Uses the first explicit product entity, otherwise the first three
        meaningful words of the message.

        Args:
            message: Raw customer message
            products: Product entities from the analysis

        Returns:
            Search query, or the generic browse placeholder
        """
        if products:
            return products[0]

        cleaned = re.sub(r"[^a-z0-9\s-]", " ", message.lower())
        words = [w for w in cleaned.split() if len(w) > 2 and w not in STOP_WORDS]
        if words:
            return " ".join(words[:3])
        return GENERIC_PRODUCT_QUERY
