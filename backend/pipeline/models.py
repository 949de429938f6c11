"""
Domain types for the support pipeline.

This module defines:
- Intent, sentiment and priority labels
- Conversation context held by the memory store
- Intent analysis produced by the classifier
- Planned actions and response plans
- Integration results and formatted responses
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from .errors import ClassificationFailure


class Intent(str, Enum):
    """Customer intent labels."""
    ORDER_TRACKING = "orderTracking"
    PRODUCT_SEARCH = "productSearch"
    CART_INQUIRY = "cartInquiry"
    PRODUCT_QUESTION = "productQuestion"
    SUPPORT_ESCALATION = "supportEscalation"
    BILLING_INQUIRY = "billingInquiry"


class Sentiment(str, Enum):
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"


class Priority(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class WaitingFor(str, Enum):
    """Slot the conversation is waiting on."""
    EMAIL = "email"
    ORDER_NUMBER = "order_number"


class ActionType(str, Enum):
    """Backend actions a plan can contain."""
    ORDER_LOOKUP = "shopify_order_lookup"
    PRODUCT_SEARCH = "shopify_product_search"
    CART_VIEW = "shopify_cart_view"
    PRODUCT_DETAILS = "shopify_product_details"
    ESCALATION = "kustomer_escalation"
    TICKET_CREATION = "kustomer_ticket_creation"


class ResponseType(str, Enum):
    """Response template selector."""
    ORDER_STATUS = "order_status"
    PRODUCT_RECOMMENDATIONS = "product_recommendations"
    CART_DISPLAY = "cart_display"
    PRODUCT_DETAILS = "product_details"
    ESCALATION = "escalation"
    BILLING_SUPPORT = "billing_support"
    STANDARD = "standard"


class ResultStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class EscalationReason(str, Enum):
    CUSTOMER_REQUEST = "customer_request"
    SENTIMENT_ANALYSIS = "sentiment_analysis"


# ============================================================================
# CONVERSATION MEMORY
# ============================================================================

@dataclass
class CollectedData:
    """Data gathered from the customer across turns."""
    email: Optional[str] = None
    order_numbers: List[str] = field(default_factory=list)


@dataclass
class ConversationContext:
    """Short-lived memory for a single conversation."""
    conversation_id: str
    active_intent: Optional[Intent] = None
    waiting_for: Optional[WaitingFor] = None
    collected_data: CollectedData = field(default_factory=CollectedData)
    timestamp: float = 0.0
    message_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "active_intent": self.active_intent.value if self.active_intent else None,
            "waiting_for": self.waiting_for.value if self.waiting_for else None,
            "collected_data": {
                "email": self.collected_data.email,
                "order_numbers": list(self.collected_data.order_numbers),
            },
            "timestamp": self.timestamp,
            "message_count": self.message_count,
        }


# ============================================================================
# CLASSIFICATION
# ============================================================================

@dataclass
class ExtractedEntities:
    """Structured values pulled out of a customer message."""
    email: Optional[str] = None
    order_numbers: List[str] = field(default_factory=list)
    products: List[str] = field(default_factory=list)


@dataclass
class IntentAnalysis:
    """Classifier output for one message."""
    intents: List[Intent] = field(default_factory=list)
    entities: ExtractedEntities = field(default_factory=ExtractedEntities)
    sentiment: Sentiment = Sentiment.NEUTRAL
    priority: Priority = Priority.MEDIUM
    requires_escalation: bool = False
    confidence: float = 0.0

    def add_intent(self, intent: Intent, boost: float = 0.0) -> bool:
        """Append an intent if it is new. Returns True when added."""
        if intent in self.intents:
            return False
        self.intents.append(intent)
        self.boost(boost)
        return True

    def boost(self, amount: float) -> None:
        self.confidence = min(self.confidence + amount, 1.0)

    def has(self, intent: Intent) -> bool:
        return intent in self.intents

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intents": [getattr(i, "value", i) for i in self.intents],
            "entities": {
                "email": self.entities.email,
                "order_numbers": list(self.entities.order_numbers),
                "products": list(self.entities.products),
            },
            "sentiment": self.sentiment.value,
            "priority": self.priority.value,
            "requires_escalation": self.requires_escalation,
            "confidence": self.confidence,
        }


@dataclass
class ClassificationOutcome:
    """Result of the optional AI classification call."""
    labels: List[str] = field(default_factory=list)
    error: Optional[ClassificationFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, labels: List[str]) -> "ClassificationOutcome":
        return cls(labels=list(labels))

    @classmethod
    def failure(cls, reason: str) -> "ClassificationOutcome":
        return cls(error=ClassificationFailure(reason))


# ============================================================================
# PLANNING
# ============================================================================

@dataclass
class OrderLookupAction:
    type: ClassVar[ActionType] = ActionType.ORDER_LOOKUP
    email: Optional[str] = None
    order_numbers: List[str] = field(default_factory=list)


@dataclass
class ProductSearchAction:
    type: ClassVar[ActionType] = ActionType.PRODUCT_SEARCH
    query: str = "browse"
    products: List[str] = field(default_factory=list)


@dataclass
class CartViewAction:
    type: ClassVar[ActionType] = ActionType.CART_VIEW
    email: Optional[str] = None


@dataclass
class ProductDetailsAction:
    type: ClassVar[ActionType] = ActionType.PRODUCT_DETAILS
    query: str = ""


@dataclass
class EscalationAction:
    type: ClassVar[ActionType] = ActionType.ESCALATION
    priority: Priority = Priority.HIGH
    sentiment: Sentiment = Sentiment.NEUTRAL
    reason: EscalationReason = EscalationReason.CUSTOMER_REQUEST


@dataclass
class TicketCreationAction:
    type: ClassVar[ActionType] = ActionType.TICKET_CREATION
    category: str = "general"
    priority: Priority = Priority.MEDIUM


@dataclass
class ResponsePlan:
    """Ordered backend actions plus the response template to render."""
    actions: List[Any] = field(default_factory=list)
    response_type: ResponseType = ResponseType.STANDARD

    def find(self, action_type: ActionType) -> Optional[Any]:
        for action in self.actions:
            if action.type == action_type:
                return action
        return None

    def action_types(self) -> List[ActionType]:
        return [action.type for action in self.actions]


# ============================================================================
# DISPATCH RESULTS
# ============================================================================

@dataclass
class ActionResult:
    """Outcome of one executed action."""
    action_type: ActionType
    status: ResultStatus
    orders: List[Dict[str, Any]] = field(default_factory=list)
    products: List[Dict[str, Any]] = field(default_factory=list)
    draft_orders: List[Dict[str, Any]] = field(default_factory=list)
    search_query: Optional[str] = None
    ticket_id: Optional[str] = None
    subject: Optional[str] = None
    reason: Optional[str] = None
    escalated_at: Optional[str] = None
    customer: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == ResultStatus.FOUND

    @property
    def failed(self) -> bool:
        return self.status == ResultStatus.FAILED

    @classmethod
    def failure(cls, action_type: ActionType, error: str) -> "ActionResult":
        return cls(action_type=action_type, status=ResultStatus.FAILED, error=error)


@dataclass
class IntegrationResults:
    """Result bag keyed by capability family."""
    shopify: Optional[ActionResult] = None
    kustomer: Optional[ActionResult] = None

    def integrations_used(self) -> List[str]:
        used = []
        if self.shopify is not None:
            used.append("shopify")
        if self.kustomer is not None:
            used.append("kustomer")
        return used


# ============================================================================
# RESPONSES
# ============================================================================

@dataclass
class QuickAction:
    """Quick reply, link or handoff offered alongside a reply."""
    type: str
    label: str
    value: Optional[str] = None
    url: Optional[str] = None
    priority: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {"type": self.type, "label": self.label}
        for key in ("value", "url", "priority", "data"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass
class FormattedResponse:
    """Customer-facing reply."""
    text: str
    actions: List[QuickAction] = field(default_factory=list)
    source: str = "smart_integration"
    confidence: float = 0.8
    integrations_used: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def metadata(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "confidence": self.confidence,
            "integrations_used": list(self.integrations_used),
            **self.extra,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "actions": [action.to_dict() for action in self.actions],
            "metadata": self.metadata,
        }


@dataclass
class CustomerContext:
    """Caller-supplied context for a message."""
    conversation_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    chat_history: List[Dict[str, Any]] = field(default_factory=list)
    shopify: Optional[Dict[str, Any]] = None
    kustomer: Optional[Dict[str, Any]] = None


@dataclass
class PipelineResult:
    """Everything produced by one pipeline pass."""
    response: FormattedResponse
    analysis: Optional[IntentAnalysis]
    integration_results: IntegrationResults
    customer_context: CustomerContext
    history_summary: Optional[Dict[str, Any]] = None
