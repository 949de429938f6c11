"""
Intent classification and entity extraction for customer messages.

This module handles:
- Intent detection (orderTracking, productSearch, cartInquiry, etc.)
- Entity extraction (email address, order numbers)
- Sentiment and priority scoring
- Continuation of multi-turn exchanges from conversation memory
- Optional AI-assisted classification layered on top of the patterns
"""

import logging
import re
from typing import Any, Dict, List, Optional

from .conversation_memory import ConversationMemoryStore
from .models import (
    ClassificationOutcome,
    ExtractedEntities,
    Intent,
    IntentAnalysis,
    Priority,
    Sentiment,
)

logger = logging.getLogger(__name__)

PATTERN_CONFIDENCE = 0.2
ENTITY_SEED_CONFIDENCE = 0.8
KEYWORD_OVERRIDE_CONFIDENCE = 0.3
INHERITED_CONFIDENCE = 0.85
AI_CONFIDENCE = 0.2
FALLBACK_CONFIDENCE = 0.7


def _compile(patterns: List[str]) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


class EntityExtractor:
    """Extract structured values from customer messages."""

    EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

    # Examples: #1001, AB12345, 4821-XKCD
    ORDER_NUMBER_PATTERN = re.compile(r"#?\b([A-Z]{0,2}\d{4,}|\w{4,}-\w{4,})\b")

    def extract_email(self, message: str) -> Optional[str]:
        """Return the first email address in the message."""
        match = self.EMAIL_PATTERN.search(message)
        return match.group(0) if match else None

    def extract_order_numbers(self, message: str) -> List[str]:
        """
        Extract order-number-like tokens.

        Email addresses are removed first so their digits are not mistaken
        for order numbers.
        """
        text = self.EMAIL_PATTERN.sub(" ", message)
        numbers = []
        for match in self.ORDER_NUMBER_PATTERN.finditer(text):
            number = match.group(1)
            if number not in numbers:
                numbers.append(number)
        return numbers

    def extract(self, message: str, known_email: Optional[str] = None) -> ExtractedEntities:
        """
        Extract all entities from a message.

        Args:
            message: Customer message
            known_email: Email already known for this customer

        Returns:
            ExtractedEntities object
        """
        return ExtractedEntities(
            email=self.extract_email(message) or known_email,
            order_numbers=self.extract_order_numbers(message),
        )


class IntentClassifier:
    """Classify customer messages into intents, entities and sentiment."""

    # Evaluated in order; each group contributes at most once.
    INTENT_PATTERNS = {
        Intent.ORDER_TRACKING: _compile([
            r"where\s+is\s+my\s+order",
            r"track\s+my\s+order",
            r"track\s+order",
            r"order\s+status",
            r"order\s+#?(\w+)",
            r"shipping\s+status",
            r"when\s+will\s+my\s+order\s+arrive",
            r"delivery\s+status",
            r"hasn'?t\s+arrived",
            r"not\s+received",
            r"\btrack",
            r"\border",
            # Follow-up replies while an order lookup is pending
            r"my\s+email\s+(is|:)",
            r"email\s+(is|:)",
            r"it'?s\s+[a-zA-Z0-9._%+-]+@",
            r"here\s+(is|it|:)",
            r"^\s*[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\s*$",
        ]),
        Intent.PRODUCT_SEARCH: _compile([
            r"looking\s+for",
            r"need\s+help\s+finding",
            r"recommend",
            r"suggestion",
            r"what.*headphones",
            r"what.*speakers",
            r"what.*products",
            r"show\s+(me\s+)?(some\s+)?products",
            r"show\s+me",
            r"product\s+info",
            r"price\s+for",
            r"available\s+in",
            r"in\s+stock",
            r"\bbuy\b",
            r"purchase",
            r"shop\s+for",
            r"browse",
            r"catalog",
            r"collection",
            r"best\s+(selling|seller|rated)",
            r"^(show|display|list|get)\s+(all\s+)?(the\s+)?products?$",
            r"^products?$",
        ]),
        Intent.CART_INQUIRY: _compile([
            r"show\s+(me\s+)?(my\s+)?cart",
            r"what'?s\s+in\s+my\s+cart",
            r"view\s+cart",
            r"cart\s+items",
            r"shopping\s+cart",
            r"my\s+cart",
            r"checkout",
            r"items\s+in\s+cart",
            r"\bcart\b",
        ]),
        Intent.PRODUCT_QUESTION: _compile([
            r"tell\s+me\s+about",
            r"more\s+info(rmation)?\s+about",
            r"details\s+(about|on|for)",
            r"what\s+is\s+this",
            r"describe\s+this",
            r"specs\s+(for|on)",
            r"specifications",
            r"features\s+of",
            r"reviews\s+(for|of)",
            r"how\s+(much|does).*cost",
            r"price\s+of",
        ]),
        Intent.SUPPORT_ESCALATION: _compile([
            r"frustrated",
            r"angry",
            r"terrible\s+service",
            r"speak\s+to\s+(a\s+)?(manager|human|agent)",
            r"this\s+is\s+ridiculous",
            r"unacceptable",
            r"disappointed",
            r"complaint",
            r"refund",
            r"cancel\s+my",
            r"human\s+agent",
        ]),
        Intent.BILLING_INQUIRY: _compile([
            r"billing",
            r"charged\s+twice",
            r"payment\s+issue",
            r"account\s+problem",
            r"subscription",
            r"invoice",
            r"credit\s+card",
            r"refund",
        ]),
    }

    SENTIMENT_PATTERNS = {
        "negative": _compile([
            r"\bterrible\b", r"\bawful\b", r"\bhorrible\b", r"\bworst\b", r"\bhate\b",
            r"\bfrustrated\b", r"\bangry\b", r"\bdisappointed\b", r"\bunacceptable\b",
            r"\bridiculous\b", r"\bpathetic\b", r"\buseless\b",
        ]),
        "urgent": _compile([
            r"\burgent\b", r"\bemergency\b", r"\basap\b", r"\bimmediately\b",
            r"\bright\s+now\b", r"\bcritical\b",
        ]),
        "positive": _compile([
            r"\bgreat\b", r"\bexcellent\b", r"\bamazing\b", r"\bwonderful\b",
            r"\blove\b", r"\bperfect\b", r"\bfantastic\b", r"\bawesome\b",
        ]),
    }

    # Broad buckets used only when nothing else classified the message
    FALLBACK_BUCKETS = [
        (Intent.ORDER_TRACKING, re.compile(r"track|order|status|where|ship|delivery|package|arrive", re.IGNORECASE)),
        (Intent.PRODUCT_SEARCH, re.compile(r"product|item|catalog|shop|store|buy|purchase|show|looking|need|want", re.IGNORECASE)),
        (Intent.CART_INQUIRY, re.compile(r"cart|checkout", re.IGNORECASE)),
    ]

    def __init__(
        self,
        memory: Optional[ConversationMemoryStore] = None,
        ai_classifier=None,
        escalate_on_negative_sentiment: bool = False
    ):
        """
        Initialize intent classifier.

        Args:
            memory: Conversation memory used for continuation context
            ai_classifier: Optional IntentClassifierCapability
            escalate_on_negative_sentiment: Escalate any classified message
                with negative sentiment, not only strongly negative ones
        """
        self.memory = memory
        self.ai_classifier = ai_classifier
        self.escalate_on_negative_sentiment = escalate_on_negative_sentiment
        self.entity_extractor = EntityExtractor()

    async def analyze(
        self,
        message: str,
        known_email: Optional[str] = None,
        conversation_id: Optional[str] = None
    ) -> IntentAnalysis:
        """
        Analyze a message for intents, entities and sentiment.

        Never raises: any failure degrades to the pattern-only result.

        Args:
            message: Customer message
            known_email: Email already known for this customer
            conversation_id: Conversation the message belongs to

        Returns:
            IntentAnalysis for the message
        """
        logger.info(f"Analyzing message: {message[:50]}")

        try:
            analysis = self.analyze_patterns(message, known_email)
        except Exception as e:
            logger.error(f"Pattern analysis failed: {e}", exc_info=True)
            return IntentAnalysis(entities=ExtractedEntities(email=known_email))

        try:
            self._inherit_context(analysis, conversation_id)
            await self._apply_ai_classification(analysis, message)
            self._apply_sentiment(analysis, message)
            self._apply_fallback(analysis, message)
        except Exception as e:
            logger.error(f"Intent analysis degraded to baseline: {e}", exc_info=True)

        logger.info(
            f"Analysis complete: intents={[i.value for i in analysis.intents]}, "
            f"confidence={analysis.confidence:.2f}, sentiment={analysis.sentiment.value}"
        )
        return analysis

    def analyze_patterns(self, message: str, known_email: Optional[str] = None) -> IntentAnalysis:
        """
        Deterministic baseline: intent patterns, entities and keyword override.

        Args:
            message: Customer message
            known_email: Email already known for this customer

        Returns:
            IntentAnalysis without context, AI or sentiment adjustments
        """
        analysis = IntentAnalysis(entities=self.entity_extractor.extract(message, known_email))

        for intent, patterns in self.INTENT_PATTERNS.items():
            if any(pattern.search(message) for pattern in patterns):
                analysis.add_intent(intent, PATTERN_CONFIDENCE)

        found_email = self.entity_extractor.extract_email(message)
        if (found_email or analysis.entities.order_numbers) and not analysis.intents:
            logger.info("Entity detected with no intent - assuming orderTracking")
            analysis.intents.append(Intent.ORDER_TRACKING)
            analysis.confidence = ENTITY_SEED_CONFIDENCE
        elif found_email:
            # An email alongside other intents is still an order follow-up signal
            analysis.add_intent(Intent.ORDER_TRACKING, PATTERN_CONFIDENCE)

        message_lower = message.lower()
        if ("track" in message_lower or "order" in message_lower) and (
            not analysis.intents or analysis.intents[0] != Intent.ORDER_TRACKING
        ):
            logger.info("Prioritizing orderTracking based on keywords")
            if Intent.ORDER_TRACKING in analysis.intents:
                analysis.intents.remove(Intent.ORDER_TRACKING)
            analysis.intents.insert(0, Intent.ORDER_TRACKING)
            analysis.boost(KEYWORD_OVERRIDE_CONFIDENCE)

        return analysis

    def _inherit_context(self, analysis: IntentAnalysis, conversation_id: Optional[str]) -> None:
        if analysis.intents or self.memory is None:
            return

        context = self.memory.get(conversation_id)
        if context and context.waiting_for and context.active_intent:
            logger.info(
                f"No intent detected - continuing {context.active_intent.value} "
                f"(waiting for {context.waiting_for.value})"
            )
            analysis.intents.append(context.active_intent)
            analysis.confidence = INHERITED_CONFIDENCE

    async def _apply_ai_classification(self, analysis: IntentAnalysis, message: str) -> None:
        if self.ai_classifier is None:
            return

        labels = [intent.value for intent in Intent]
        try:
            outcome = await self.ai_classifier.classify_intents(message, labels)
        except Exception as e:
            outcome = ClassificationOutcome.failure(f"request raised: {e}")

        if not outcome.succeeded:
            logger.warning(f"AI intent detection failed: {outcome.error} - using pattern baseline")
            return

        ai_intents = [Intent(label) for label in outcome.labels if label in labels]
        if not ai_intents:
            return

        logger.info(f"AI detected intents: {[i.value for i in ai_intents]}")
        for intent in ai_intents:
            analysis.add_intent(intent)
        analysis.boost(AI_CONFIDENCE)

    def _apply_sentiment(self, analysis: IntentAnalysis, message: str) -> None:
        counts = {
            label: sum(1 for pattern in patterns if pattern.search(message))
            for label, patterns in self.SENTIMENT_PATTERNS.items()
        }
        negative, urgent, positive = counts["negative"], counts["urgent"], counts["positive"]

        if negative or urgent:
            analysis.sentiment = Sentiment.NEGATIVE
            if urgent:
                analysis.requires_escalation = True
                analysis.priority = Priority.URGENT
            elif negative >= 2:
                analysis.requires_escalation = True
                analysis.priority = Priority.HIGH
        elif positive:
            analysis.sentiment = Sentiment.POSITIVE

        explicit_request = analysis.has(Intent.SUPPORT_ESCALATION)
        implicit_request = (
            self.escalate_on_negative_sentiment
            and analysis.sentiment == Sentiment.NEGATIVE
            and bool(analysis.intents)
        )
        if explicit_request or implicit_request:
            analysis.requires_escalation = True
            if analysis.priority == Priority.MEDIUM:
                analysis.priority = Priority.HIGH

    def _apply_fallback(self, analysis: IntentAnalysis, message: str) -> None:
        if analysis.intents:
            return

        for intent, pattern in self.FALLBACK_BUCKETS:
            if pattern.search(message):
                logger.info(f"Fallback classification: {intent.value}")
                analysis.intents.append(intent)
                analysis.confidence = FALLBACK_CONFIDENCE
                return

    def summarize_history(self, messages: Any) -> Dict[str, Any]:
        """
        Summarize prior customer messages with the deterministic analysis.

        Args:
            messages: List of message dicts with 'sender_type' or 'role' and 'content'

        Returns:
            Summary of topics and sentiment across the conversation
        """
        summary = {
            "message_count": 0,
            "has_order_inquiries": False,
            "has_product_questions": False,
            "sentiment_history": [],
            "topics": [],
        }

        if not isinstance(messages, list):
            logger.warning(f"summarize_history expected a list, got {type(messages).__name__}")
            return summary

        summary["message_count"] = len(messages)
        for message in messages:
            sender = message.get("sender_type") or message.get("role")
            if sender != "user":
                continue

            content = message.get("content") or ""
            analysis = self.analyze_patterns(content)
            self._apply_sentiment(analysis, content)
            self._apply_fallback(analysis, content)

            summary["sentiment_history"].append(analysis.sentiment.value)
            summary["topics"].extend(i.value for i in analysis.intents)
            if analysis.has(Intent.ORDER_TRACKING):
                summary["has_order_inquiries"] = True
            if analysis.has(Intent.PRODUCT_SEARCH):
                summary["has_product_questions"] = True

        return summary
