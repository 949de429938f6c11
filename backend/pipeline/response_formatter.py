"""
Response formatter for the support pipeline.

Renders dispatcher results into deterministic customer-facing replies with
quick actions. Every template has an explicit branch for when nothing was
found, so the customer is always offered a next step.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .errors import PipelineFailure
from .field_mapper import map_product, parse_price, strip_html
from .intent_classifier import EntityExtractor
from .models import (
    ActionResult,
    ActionType,
    FormattedResponse,
    IntegrationResults,
    QuickAction,
    ResponsePlan,
    ResponseType,
)

logger = logging.getLogger(__name__)

MAX_LISTED_ITEMS = 3
MAX_PRODUCT_CARDS = 3
DESCRIPTION_PREVIEW_LENGTH = 200


def get_order_status(order: Dict[str, Any]) -> str:
    """
    Derive a customer-facing status label for an order.

    Precedence: cancelled, fulfilled, shipment status, tracking number,
    partial fulfillment, pending payment, paid but unfulfilled.
    """
    if order.get("cancelled_at"):
        return "Cancelled"

    if order.get("fulfillment_status") == "fulfilled":
        return "Delivered"

    fulfillments = order.get("fulfillments") or []
    if fulfillments:
        latest = fulfillments[0]
        shipment_status = latest.get("shipment_status")
        if shipment_status == "delivered":
            return "Delivered"
        if shipment_status == "out_for_delivery":
            return "Out for Delivery"
        if shipment_status == "in_transit":
            return "Shipped - In Transit"
        if latest.get("status") == "success" or latest.get("tracking_number"):
            return "Shipped"

    if order.get("fulfillment_status") == "partial":
        return "Partially Shipped"

    if order.get("financial_status") == "pending":
        return "Payment Processing"
    if order.get("financial_status") == "paid" and not order.get("fulfillment_status"):
        return "Processing"

    return "Processing"


class ResponseFormatter:
    """Formats response plans and integration results into replies."""

    def __init__(self, store_url: Optional[str] = None):
        """
        Initialize formatter.

        Args:
            store_url: Storefront base URL for product links
        """
        self.store_url = store_url
        self.entity_extractor = EntityExtractor()

        self._formatters = {
            ResponseType.ORDER_STATUS: self.format_order_response,
            ResponseType.PRODUCT_RECOMMENDATIONS: self.format_product_response,
            ResponseType.CART_DISPLAY: self.format_cart_response,
            ResponseType.PRODUCT_DETAILS: self.format_product_details_response,
            ResponseType.ESCALATION: self.format_escalation_response,
            ResponseType.BILLING_SUPPORT: self.format_billing_response,
            ResponseType.STANDARD: self.format_standard_response,
        }
        missing = set(ResponseType) - set(self._formatters)
        if missing:
            raise PipelineFailure(f"No formatter for: {sorted(m.value for m in missing)}")

    def format(
        self,
        plan: ResponsePlan,
        results: IntegrationResults,
        original_message: str
    ) -> FormattedResponse:
        """
        Format the reply for a plan.

        Args:
            plan: Response plan for the message
            results: Dispatcher results
            original_message: Raw customer message

        Returns:
            FormattedResponse with text, quick actions and metadata
        """
        logger.info(f"Formatting response for type: {plan.response_type.value}")
        return self._formatters[plan.response_type](plan, results, original_message)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def format_order_response(
        self,
        plan: ResponsePlan,
        results: IntegrationResults,
        original_message: str
    ) -> FormattedResponse:
        action = plan.find(ActionType.ORDER_LOOKUP)
        email = (action.email if action else None) or self.entity_extractor.extract_email(original_message)
        order_numbers = list(action.order_numbers) if action else []

        if not email and not order_numbers:
            return FormattedResponse(
                text=(
                    "I'll help you track your order! To get started, I need some information:\n\n"
                    "**What email address did you use for your order?**\n\n"
                    "Please provide your email address so I can look up your order.\n\n"
                    "Example: *my email is john@example.com*"
                ),
                actions=[
                    QuickAction("quick_reply", "I have my order number", value="My order number is "),
                ],
                confidence=0.8,
                extra={"needs_info": "email"},
            )

        data = results.shopify
        if data is None or data.action_type != ActionType.ORDER_LOOKUP or data.failed:
            return self._format_order_lookup_failed(email, order_numbers)

        if not data.orders:
            return self._format_order_not_found(email, order_numbers)

        return self._format_order_found(data.orders[0])

    def _format_order_lookup_failed(self, email: Optional[str], order_numbers: List[str]) -> FormattedResponse:
        text = "I'm having trouble reaching our order system right now, so I couldn't look up "
        if order_numbers:
            text += f"order **#{order_numbers[0]}**"
        else:
            text += f"orders for **{email}**"
        text += ".\n\nPlease try again in a moment, or connect with an agent who can check it for you."

        return FormattedResponse(
            text=text,
            actions=[
                QuickAction("quick_reply", "Try again", value="Where is my order?"),
                QuickAction("escalate", "Chat with Agent", priority="high"),
            ],
            source="smart_integration_fallback",
            confidence=0.5,
            integrations_used=["shopify"],
        )

    def _format_order_not_found(self, email: Optional[str], order_numbers: List[str]) -> FormattedResponse:
        extra: Dict[str, Any] = {"searched_email": email}

        if email and order_numbers:
            text = (
                "I'm having trouble finding your order. I searched for:\n"
                f"• Email: **{email}**\n"
                f"• Order #: **{order_numbers[0]}**\n\n"
                "The order might not be in our system yet if it was just placed, "
                "or there could be a typo.\n\n"
                "**Let's try:**\n"
                "• Double-check the order number\n"
                "• Verify the email address\n"
                "• Or connect with an agent who can search more thoroughly"
            )
            extra["searched_order_number"] = order_numbers[0]
        elif email:
            text = (
                f"I searched for orders with email **{email}**, but couldn't find any.\n\n"
                "This could mean:\n"
                "• The order is very recent and still processing\n"
                "• You used a different email address\n"
                "• The order was placed as a guest\n\n"
                "**Do you have your order number?** Please provide it so I can look it up directly.\n\n"
                "Order numbers typically look like: #1234, #ABC1234"
            )
            extra["needs_info"] = "order_number"
        else:
            text = (
                f"I searched for order **#{order_numbers[0]}**, but couldn't locate it.\n\n"
                "**Can you provide the email address used for this order?**\n"
                "This will help me search more accurately."
            )
            extra["needs_info"] = "email"
            extra["searched_order_number"] = order_numbers[0]

        return FormattedResponse(
            text=text,
            actions=[
                QuickAction("quick_reply", "Provide order number", value="My order number is "),
                QuickAction("quick_reply", "Try different email", value="My email is "),
                QuickAction("escalate", "Connect with Agent", priority="high"),
            ],
            confidence=0.6,
            integrations_used=["shopify"],
            extra=extra,
        )

    def _format_order_found(self, order: Dict[str, Any]) -> FormattedResponse:
        status = get_order_status(order)
        fulfillments = order.get("fulfillments") or []
        latest_fulfillment = fulfillments[0] if fulfillments else {}
        order_name = order.get("name") or f"#{order.get('order_number')}"

        lines = ["**Order Found!**", "", f"**Order {order_name}**"]

        line_items = order.get("line_items") or []
        if line_items:
            lines.append("")
            lines.append("**Items:**")
            for item in line_items[:MAX_LISTED_ITEMS]:
                lines.append(f"• {item.get('title')} (x{item.get('quantity', 1)})")
            if len(line_items) > MAX_LISTED_ITEMS:
                lines.append(f"• ...and {len(line_items) - MAX_LISTED_ITEMS} more items")

        total = order.get("total_price")
        currency = order.get("currency")
        lines.append("")
        lines.append(f"**Total**: {total}{' ' + currency if currency else ''}")
        lines.append(f"**Status**: {status}")

        tracking_number = latest_fulfillment.get("tracking_number") or order.get("tracking_number")
        tracking_url = latest_fulfillment.get("tracking_url") or order.get("tracking_url")
        if tracking_number:
            lines.append("")
            lines.append("**Shipping Information:**")
            lines.append(f"**Tracking #**: {tracking_number}")
            if latest_fulfillment.get("tracking_company"):
                lines.append(f"**Carrier**: {latest_fulfillment['tracking_company']}")
            if tracking_url:
                lines.append(f"**Track online**: {tracking_url}")
            updated_at = latest_fulfillment.get("updated_at")
            if updated_at:
                lines.append(f"**Last updated**: {self._format_date(updated_at)}")

        note = self._status_note(order)
        if note:
            lines.append("")
            lines.append(note)

        address = order.get("shipping_address")
        if address:
            lines.append("")
            lines.append("**Shipping to:**")
            lines.append(address.get("address1") or "")
            if address.get("address2"):
                lines.append(address["address2"])
            lines.append(
                f"{address.get('city') or ''}, {address.get('province_code') or ''} {address.get('zip') or ''}".strip()
            )

        actions = []
        if tracking_url:
            actions.append(QuickAction("external_link", "Track Package Online", url=tracking_url))
        actions.append(QuickAction("escalate", "Questions? Chat with Agent"))

        return FormattedResponse(
            text="\n".join(lines),
            actions=actions,
            confidence=0.95,
            integrations_used=["shopify"],
            extra={"order_number": order_name, "tracking_number": tracking_number},
        )

    @staticmethod
    def _status_note(order: Dict[str, Any]) -> Optional[str]:
        if order.get("cancelled_at"):
            return None
        fulfillment_status = order.get("fulfillment_status")
        if fulfillment_status == "fulfilled":
            return "**Delivered!** Hope you're enjoying your purchase!"
        if fulfillment_status in ("shipped", "partial"):
            return "**In Transit** - Your order is on the way!"
        if order.get("financial_status") == "paid" and not fulfillment_status:
            return (
                "**Processing** - We're preparing your order for shipment.\n"
                "Expected to ship within 1-2 business days."
            )
        return None

    @staticmethod
    def _format_date(value: str) -> str:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%b %d, %Y")
        except ValueError:
            return value

    # ------------------------------------------------------------------
    # Products and cart
    # ------------------------------------------------------------------

    def format_product_response(
        self,
        plan: ResponsePlan,
        results: IntegrationResults,
        original_message: str
    ) -> FormattedResponse:
        data = self._result_for(results.shopify, ActionType.PRODUCT_SEARCH)
        if data is None or not data.products:
            return FormattedResponse(
                text=(
                    "I'd be happy to help you find the perfect product! "
                    "Could you tell me more about what you're looking for?"
                ),
                actions=[
                    QuickAction("quick_reply", "Headphones", value="I'm looking for headphones"),
                    QuickAction("quick_reply", "Speakers", value="I'm looking for speakers"),
                    QuickAction("quick_reply", "Accessories", value="I'm looking for accessories"),
                ],
                confidence=0.6,
                integrations_used=["shopify"],
            )

        cards = [map_product(p, self.store_url) for p in data.products[:MAX_PRODUCT_CARDS]]
        return FormattedResponse(
            text="Here are some great products I found for you:",
            confidence=0.9,
            integrations_used=["shopify"],
            extra={"products": cards, "search_query": data.search_query},
        )

    def format_cart_response(
        self,
        plan: ResponsePlan,
        results: IntegrationResults,
        original_message: str
    ) -> FormattedResponse:
        data = self._result_for(results.shopify, ActionType.CART_VIEW)
        if data is None or not data.draft_orders:
            return FormattedResponse(
                text="Your cart is currently empty.\n\nWould you like to browse our products?",
                actions=[
                    QuickAction("quick_reply", "Show Products", value="show me products"),
                    QuickAction("quick_reply", "Best Sellers", value="show me best sellers"),
                ],
                confidence=0.8,
                integrations_used=["shopify"],
            )

        lines = ["**Your Cart**", ""]
        total = 0.0
        index = 0
        for draft_order in data.draft_orders:
            for item in draft_order.get("line_items") or []:
                index += 1
                quantity = item.get("quantity") or 1
                lines.append(f"{index}. **{item.get('title')}**")
                lines.append(f"   {item.get('price')} x {quantity}")
                total += parse_price(item.get("price")) * quantity

        lines.append("")
        lines.append(f"**Total**: {total:.2f}")

        checkout_url = data.draft_orders[0].get("invoice_url") or "#"
        return FormattedResponse(
            text="\n".join(lines),
            actions=[
                QuickAction("external_link", "Complete Checkout", url=checkout_url),
                QuickAction("quick_reply", "Continue Shopping", value="show me more products"),
            ],
            confidence=0.9,
            integrations_used=["shopify"],
            extra={"cart_total": round(total, 2)},
        )

    def format_product_details_response(
        self,
        plan: ResponsePlan,
        results: IntegrationResults,
        original_message: str
    ) -> FormattedResponse:
        data = self._result_for(results.shopify, ActionType.PRODUCT_DETAILS)
        if data is None or not data.products:
            return FormattedResponse(
                text=(
                    "I couldn't find specific details about that product. Could you provide "
                    "the product name, or would you like to see our available products?"
                ),
                actions=[
                    QuickAction("quick_reply", "Show All Products", value="show me products"),
                    QuickAction("escalate", "Speak to Specialist"),
                ],
                confidence=0.5,
                integrations_used=["shopify"],
            )

        product = data.products[0]
        variants = product.get("variants") or []
        variant = variants[0] if variants else None

        lines = [f"**{product.get('title')}**", ""]
        description = strip_html(product.get("body_html"))
        if description:
            if len(description) > DESCRIPTION_PREVIEW_LENGTH:
                description = description[:DESCRIPTION_PREVIEW_LENGTH] + "..."
            lines.append(description)
            lines.append("")

        if variant:
            price = variant.get("price")
            lines.append(f"**Price**: {price}")
            compare_at = variant.get("compare_at_price")
            if compare_at and parse_price(compare_at) > parse_price(price):
                lines.append(f"~~{compare_at}~~ **SALE!**")
            in_stock = (variant.get("inventory_quantity") or 0) > 0
            lines.append(f"**Availability**: {'In Stock' if in_stock else 'Out of Stock'}")

        if product.get("vendor"):
            lines.append(f"**Brand**: {product['vendor']}")

        return FormattedResponse(
            text="\n".join(lines),
            actions=[
                QuickAction(
                    "add_to_cart",
                    "Add to Cart",
                    data={
                        "product_id": product.get("id"),
                        "variant_id": variant.get("id") if variant else None,
                        "quantity": 1,
                    },
                ),
                QuickAction(
                    "quick_reply",
                    "Show Similar Products",
                    value=f"show me {product.get('product_type') or 'products'}",
                ),
            ],
            confidence=0.9,
            integrations_used=["shopify"],
            extra={"products": [map_product(product, self.store_url)]},
        )

    # ------------------------------------------------------------------
    # Support desk
    # ------------------------------------------------------------------

    def format_escalation_response(
        self,
        plan: ResponsePlan,
        results: IntegrationResults,
        original_message: str
    ) -> FormattedResponse:
        data = results.kustomer
        if data is None or data.failed or not data.ticket_id:
            return FormattedResponse(
                text=(
                    "I understand your concern and I want to make sure you get the best help possible. "
                    "I'm routing you to our support team now.\n\n"
                    "You can start a live chat with an agent, or request a callback and "
                    "we'll reach out to you shortly."
                ),
                actions=[
                    QuickAction("escalate", "Live Chat with Agent", priority="high"),
                    QuickAction("callback", "Request Callback"),
                ],
                confidence=0.9,
                integrations_used=results.integrations_used(),
            )

        return FormattedResponse(
            text=(
                "I understand your concern and I want to make sure you get the best help possible. "
                "I've connected you with our support team.\n\n"
                f"**Support Ticket**: #{data.ticket_id}\n"
                "**Response Time**: A specialist will respond within 15 minutes\n"
                "**Priority**: High priority - you're important to us!\n\n"
                "Is there anything else I can help you with while you wait?"
            ),
            actions=[
                QuickAction("escalate", "Live Chat with Agent", priority="high"),
                QuickAction("callback", "Request Callback"),
            ],
            confidence=1.0,
            integrations_used=["kustomer"],
            extra={"ticket_id": data.ticket_id},
        )

    def format_billing_response(
        self,
        plan: ResponsePlan,
        results: IntegrationResults,
        original_message: str
    ) -> FormattedResponse:
        data = results.kustomer
        if data is None or data.failed or not data.ticket_id:
            return FormattedResponse(
                text=(
                    "I'm sorry you're having a billing issue. Our billing team can review your "
                    "account and resolve this for you.\n\n"
                    "Would you like to speak with a billing specialist?"
                ),
                actions=[
                    QuickAction("escalate", "Speak to Billing"),
                    QuickAction("info", "View Account Status"),
                ],
                confidence=0.8,
                integrations_used=results.integrations_used(),
            )

        return FormattedResponse(
            text=(
                "I've created a billing support ticket for you to ensure this gets resolved quickly.\n\n"
                f"**Billing Ticket**: #{data.ticket_id}\n"
                "**Department**: Billing & Accounts\n"
                "**Response Time**: 1-2 hours during business hours\n\n"
                "A billing specialist will review your account and contact you with a resolution."
            ),
            actions=[
                QuickAction("escalate", "Speak to Billing"),
                QuickAction("info", "View Account Status"),
            ],
            confidence=0.9,
            integrations_used=["kustomer"],
            extra={"ticket_id": data.ticket_id},
        )

    def format_standard_response(
        self,
        plan: ResponsePlan,
        results: IntegrationResults,
        original_message: str
    ) -> FormattedResponse:
        return FormattedResponse(
            text="I understand you're looking for help. Let me connect you with the right information.",
            confidence=0.5,
            integrations_used=results.integrations_used(),
        )

    @staticmethod
    def _result_for(result: Optional[ActionResult], action_type: ActionType) -> Optional[ActionResult]:
        if result is None or result.action_type != action_type or result.failed:
            return None
        return result
