import pytest

from pipeline.models import (
    ActionResult,
    ActionType,
    CartViewAction,
    EscalationAction,
    IntegrationResults,
    OrderLookupAction,
    ProductDetailsAction,
    ProductSearchAction,
    ResponsePlan,
    ResponseType,
    ResultStatus,
    TicketCreationAction,
)
from pipeline.response_formatter import ResponseFormatter, get_order_status
from tests.fakes import make_order, make_product


@pytest.fixture
def formatter():
    return ResponseFormatter(store_url="https://demo.myshopify.com")


def order_plan(email=None, order_numbers=None):
    actions = []
    if email or order_numbers:
        actions.append(OrderLookupAction(email=email, order_numbers=list(order_numbers or [])))
    return ResponsePlan(actions=actions, response_type=ResponseType.ORDER_STATUS)


def shopify_result(action_type, status=ResultStatus.FOUND, **kwargs):
    return IntegrationResults(shopify=ActionResult(action_type=action_type, status=status, **kwargs))


def labels(response):
    return [action.label for action in response.actions]


class TestOrderStatusLabel:

    def test_cancelled_wins_over_fulfillment(self):
        order = make_order(
            cancelled_at="2024-04-01T00:00:00Z",
            fulfillment_status="fulfilled",
            fulfillments=[{"shipment_status": "delivered", "tracking_number": "1Z999"}],
        )
        assert get_order_status(order) == "Cancelled"

    @pytest.mark.parametrize("overrides,expected", [
        ({"fulfillment_status": "fulfilled"}, "Delivered"),
        ({"fulfillments": [{"shipment_status": "delivered"}]}, "Delivered"),
        ({"fulfillments": [{"shipment_status": "out_for_delivery"}]}, "Out for Delivery"),
        ({"fulfillments": [{"shipment_status": "in_transit"}]}, "Shipped - In Transit"),
        ({"fulfillments": [{"tracking_number": "1Z999"}]}, "Shipped"),
        ({"fulfillment_status": "partial"}, "Partially Shipped"),
        ({"financial_status": "pending"}, "Payment Processing"),
        ({"financial_status": "paid"}, "Processing"),
        ({"financial_status": "refunded"}, "Processing"),
    ])
    def test_precedence(self, overrides, expected):
        assert get_order_status(make_order(**overrides)) == expected


class TestOrderResponses:

    def test_no_information_asks_for_email(self, formatter):
        response = formatter.format(order_plan(), IntegrationResults(), "where is my order")

        assert "What email address did you use" in response.text
        assert labels(response) == ["I have my order number"]
        assert response.metadata["needs_info"] == "email"

    def test_email_without_orders_asks_for_order_number(self, formatter):
        response = formatter.format(
            order_plan(email="a@b.com"),
            shopify_result(ActionType.ORDER_LOOKUP, ResultStatus.NOT_FOUND),
            "my email is a@b.com",
        )

        assert "a@b.com" in response.text
        assert "Do you have your order number?" in response.text
        assert "Provide order number" in labels(response)
        assert "Try different email" in labels(response)
        assert response.metadata["needs_info"] == "order_number"

    def test_email_and_order_number_without_orders(self, formatter):
        response = formatter.format(
            order_plan(email="a@b.com", order_numbers=["10045"]),
            shopify_result(ActionType.ORDER_LOOKUP, ResultStatus.NOT_FOUND),
            "where is my order",
        )

        assert "Order #: **10045**" in response.text
        assert "Try different email" in labels(response)
        assert "What email address did you use" not in response.text

    def test_order_number_without_orders_asks_for_email(self, formatter):
        response = formatter.format(
            order_plan(order_numbers=["10045"]),
            shopify_result(ActionType.ORDER_LOOKUP, ResultStatus.NOT_FOUND),
            "#10045",
        )

        assert "#10045" in response.text
        assert response.metadata["needs_info"] == "email"

    def test_failed_lookup_is_distinct_from_not_found(self, formatter):
        results = IntegrationResults(shopify=ActionResult.failure(ActionType.ORDER_LOOKUP, "timeout"))

        response = formatter.format(order_plan(email="a@b.com"), results, "where is my order")

        assert "trouble reaching our order system" in response.text
        assert "timeout" not in response.text
        assert "Chat with Agent" in labels(response)
        assert "Try different email" not in labels(response)

    def test_missing_result_for_planned_lookup_counts_as_failed(self, formatter):
        response = formatter.format(order_plan(email="a@b.com"), IntegrationResults(), "where is my order")
        assert "trouble reaching our order system" in response.text

    def test_found_order(self, formatter):
        order = make_order(
            fulfillment_status="shipped",
            fulfillments=[{
                "tracking_number": "1Z999",
                "tracking_company": "UPS",
                "tracking_url": "https://track.example.com/1Z999",
                "shipment_status": "in_transit",
                "updated_at": "2024-04-28T12:00:00Z",
            }],
            line_items=[{"title": f"Item {i}", "quantity": 1} for i in range(5)],
        )

        response = formatter.format(
            order_plan(email="jane@example.com"),
            shopify_result(ActionType.ORDER_LOOKUP, orders=[order]),
            "where is my order",
        )

        assert "**Order #10045**" in response.text
        assert "Item 2" in response.text
        assert "Item 3" not in response.text
        assert "...and 2 more items" in response.text
        assert "**Status**: Shipped - In Transit" in response.text
        assert "**Tracking #**: 1Z999" in response.text
        assert "**Last updated**: Apr 28, 2024" in response.text
        assert "Springfield, IL 62701" in response.text
        assert response.actions[0].type == "external_link"
        assert response.actions[0].url == "https://track.example.com/1Z999"
        assert response.metadata["confidence"] == 0.95
        assert response.metadata["integrations_used"] == ["shopify"]

    def test_found_order_without_tracking_has_only_escalate_action(self, formatter):
        response = formatter.format(
            order_plan(email="jane@example.com"),
            shopify_result(ActionType.ORDER_LOOKUP, orders=[make_order()]),
            "where is my order",
        )

        assert [a.type for a in response.actions] == ["escalate"]
        assert "Expected to ship within 1-2 business days" in response.text


class TestProductResponses:

    def test_product_cards(self, formatter):
        products = [make_product(id=i, handle=f"p-{i}") for i in range(5)]
        plan = ResponsePlan(actions=[ProductSearchAction(query="browse")],
                            response_type=ResponseType.PRODUCT_RECOMMENDATIONS)

        response = formatter.format(
            plan,
            shopify_result(ActionType.PRODUCT_SEARCH, products=products, search_query="browse"),
            "show me products",
        )

        cards = response.metadata["products"]
        assert len(cards) == 3
        assert cards[0]["description"] == "Noise cancelling over-ear headphones."
        assert cards[0]["url"] == "https://demo.myshopify.com/products/p-0"
        assert cards[0]["variants"][0]["available"] is True

    def test_no_products_asks_for_detail(self, formatter):
        plan = ResponsePlan(actions=[ProductSearchAction(query="zither")],
                            response_type=ResponseType.PRODUCT_RECOMMENDATIONS)

        response = formatter.format(
            plan,
            shopify_result(ActionType.PRODUCT_SEARCH, ResultStatus.NOT_FOUND),
            "zither",
        )

        assert "Could you tell me more" in response.text
        assert len(response.actions) == 3

    def test_product_details(self, formatter):
        plan = ResponsePlan(actions=[ProductDetailsAction(query="tell me about headphones")],
                            response_type=ResponseType.PRODUCT_DETAILS)

        response = formatter.format(
            plan,
            shopify_result(ActionType.PRODUCT_DETAILS, products=[make_product()]),
            "tell me about headphones",
        )

        assert "**Wireless Headphones**" in response.text
        assert "<p>" not in response.text
        assert "SALE!" in response.text
        assert "**Availability**: In Stock" in response.text
        assert "**Brand**: SoundCo" in response.text
        assert response.actions[0].data == {"product_id": 777, "variant_id": 901, "quantity": 1}

    def test_long_description_is_truncated(self, formatter):
        product = make_product(body_html="<p>" + "x" * 300 + "</p>")
        plan = ResponsePlan(response_type=ResponseType.PRODUCT_DETAILS)

        response = formatter.format(
            plan,
            shopify_result(ActionType.PRODUCT_DETAILS, products=[product]),
            "tell me about it",
        )

        assert "x" * 200 + "..." in response.text
        assert "x" * 201 not in response.text


class TestCartResponses:

    def test_cart_lines_and_total(self, formatter):
        draft = {
            "email": "jane@example.com",
            "invoice_url": "https://demo.myshopify.com/invoices/abc",
            "line_items": [
                {"title": "Headphones", "price": "99.00", "quantity": 2},
                {"title": "Cable", "price": "10.50", "quantity": 1},
            ],
        }
        plan = ResponsePlan(actions=[CartViewAction(email="jane@example.com")],
                            response_type=ResponseType.CART_DISPLAY)

        response = formatter.format(
            plan,
            shopify_result(ActionType.CART_VIEW, draft_orders=[draft]),
            "show my cart",
        )

        assert "1. **Headphones**" in response.text
        assert "2. **Cable**" in response.text
        assert "**Total**: 208.50" in response.text
        assert response.actions[0].url == "https://demo.myshopify.com/invoices/abc"

    def test_empty_cart(self, formatter):
        plan = ResponsePlan(actions=[CartViewAction()], response_type=ResponseType.CART_DISPLAY)

        response = formatter.format(
            plan,
            shopify_result(ActionType.CART_VIEW, ResultStatus.NOT_FOUND),
            "show my cart",
        )

        assert "Your cart is currently empty" in response.text


class TestSupportResponses:

    def test_escalation_with_ticket(self, formatter):
        plan = ResponsePlan(actions=[EscalationAction()], response_type=ResponseType.ESCALATION)
        results = IntegrationResults(kustomer=ActionResult(
            action_type=ActionType.ESCALATION, status=ResultStatus.FOUND, ticket_id="E-1",
        ))

        response = formatter.format(plan, results, "speak to a human")

        assert "**Support Ticket**: #E-1" in response.text
        assert response.metadata["confidence"] == 1.0

    def test_escalation_without_ticket(self, formatter):
        plan = ResponsePlan(actions=[EscalationAction()], response_type=ResponseType.ESCALATION)

        response = formatter.format(plan, IntegrationResults(), "speak to a human")

        assert "routing you to our support team" in response.text
        assert labels(response) == ["Live Chat with Agent", "Request Callback"]

    def test_billing_with_ticket(self, formatter):
        plan = ResponsePlan(actions=[TicketCreationAction(category="billing")],
                            response_type=ResponseType.BILLING_SUPPORT)
        results = IntegrationResults(kustomer=ActionResult(
            action_type=ActionType.TICKET_CREATION, status=ResultStatus.FOUND, ticket_id="T-7",
        ))

        response = formatter.format(plan, results, "I was charged twice")

        assert "**Billing Ticket**: #T-7" in response.text

    def test_billing_when_ticket_failed(self, formatter):
        plan = ResponsePlan(actions=[TicketCreationAction()], response_type=ResponseType.BILLING_SUPPORT)
        results = IntegrationResults(kustomer=ActionResult.failure(ActionType.TICKET_CREATION, "500"))

        response = formatter.format(plan, results, "billing problem")

        assert "billing specialist" in response.text
        assert "500" not in response.text


def test_standard_response(formatter):
    response = formatter.format(ResponsePlan(), IntegrationResults(), "hello")

    assert response.metadata == {"source": "smart_integration", "confidence": 0.5, "integrations_used": []}


@pytest.mark.parametrize("response_type", list(ResponseType))
def test_every_response_type_formats(formatter, response_type):
    response = formatter.format(ResponsePlan(response_type=response_type), IntegrationResults(), "hello")

    assert response.text
    assert {"source", "confidence", "integrations_used"} <= set(response.metadata)
