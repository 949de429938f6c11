"""
Centralized prompts and fixed replies for the support pipeline.

This module keeps every model-facing prompt and every canned customer-facing
reply in one place:
- Intent classification prompt (used by the optional AI classifier)
- Reply system prompt (used when blending an AI reply into a weak response)
- Error fallback reply (used when the pipeline itself fails)
"""

from typing import List

# ============================================================================
# INTENT CLASSIFICATION PROMPT
# ============================================================================
# The model must answer with a bare JSON array drawn from the label list.

INTENT_LABEL_DESCRIPTIONS = {
    "orderTracking": "customer asking about order status, tracking, delivery",
    "productSearch": "customer looking for products, recommendations, browsing",
    "productQuestion": "asking details about a specific product",
    "cartInquiry": "asking about cart, checkout",
    "supportEscalation": "frustrated, wants human agent",
    "billingInquiry": "billing, payment, refund questions",
}


def build_intent_prompt(message: str, labels: List[str]) -> str:
    """
    Build the classification prompt for a customer message.

    Args:
        message: Customer message
        labels: Closed set of intent labels the model may return

    Returns:
        Prompt text
    """
    label_lines = "\n".join(
        f"- {label}: {INTENT_LABEL_DESCRIPTIONS.get(label, label)}" for label in labels
    )
    return f"""Analyze this customer message and identify the intents. Return ONLY a JSON array of intent names from this list:
{label_lines}

Customer message: "{message}"

Return format: ["intent1", "intent2"] or [] if no clear intent.
RESPOND ONLY WITH THE JSON ARRAY, NO OTHER TEXT."""


# ============================================================================
# REPLY SYSTEM PROMPT
# ============================================================================

REPLY_SYSTEM_PROMPT = """You are a customer support assistant for an online store.

CORE CAPABILITIES:
- Order status and delivery questions
- Product discovery and product details
- Cart and checkout questions
- Routing billing problems and complaints to the support team

RESPONSE GUIDELINES:
1. Be concise, friendly and specific
2. Never invent order numbers, tracking numbers, prices or stock levels
3. If you need an email address or order number to help, ask for it
4. If you don't know something specific, be honest about it and suggest speaking with a human agent

TONE:
- Professional yet warm
- Empathetic to customer frustration"""


# ============================================================================
# FIXED REPLIES
# ============================================================================

ERROR_FALLBACK_TEXT = (
    "I apologize, but I'm having trouble accessing some of our systems right now. "
    "Let me connect you with a human agent who can help you immediately."
)
