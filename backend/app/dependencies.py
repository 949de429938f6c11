"""
Application wiring.

Builds the support orchestrator and its adapters once from settings and
hands the shared instance to the routers.
"""

import logging
from typing import List, Optional

from app.config.settings import Settings, settings
from integrations import KustomerAdapter, OpenAIClient, ShopifyAdapter
from pipeline import (
    ConversationMemoryStore,
    IntegrationDispatcher,
    IntentClassifier,
    ResponseFormatter,
    ResponsePlanner,
    SupportOrchestrator,
)

logger = logging.getLogger(__name__)

_orchestrator: Optional[SupportOrchestrator] = None
_closeables: List = []


def build_orchestrator(config: Settings) -> SupportOrchestrator:
    """
    Build an orchestrator and its adapters from settings.

    Integrations without credentials are left unconfigured; the pipeline
    then degrades to not-found and canned replies for those capabilities.

    Args:
        config: Application settings

    Returns:
        Configured SupportOrchestrator
    """
    commerce = None
    if config.shopify_configured:
        commerce = ShopifyAdapter(
            config.shopify_store_domain,
            config.shopify_access_token,
            api_version=config.shopify_api_version,
            timeout=config.http_timeout_seconds,
        )
        _closeables.append(commerce)
    else:
        logger.warning("Shopify credentials not set - commerce lookups disabled")

    support_desk = None
    if config.kustomer_configured:
        support_desk = KustomerAdapter(
            config.kustomer_subdomain,
            config.kustomer_api_key,
            timeout=config.http_timeout_seconds,
        )
        _closeables.append(support_desk)
    else:
        logger.warning("Kustomer credentials not set - escalation tickets disabled")

    ai_client = None
    if config.llm_api_key:
        ai_client = OpenAIClient(
            config.llm_api_key,
            model=config.llm_model,
            base_url=config.llm_base_url,
            timeout=config.http_timeout_seconds,
        )
        _closeables.append(ai_client)
    else:
        logger.warning("LLM API key not set - AI classification and reply blending disabled")

    memory = ConversationMemoryStore(ttl_seconds=config.context_ttl_seconds)
    classifier = IntentClassifier(
        memory=memory,
        ai_classifier=ai_client if config.ai_classification_enabled else None,
        escalate_on_negative_sentiment=config.escalate_on_negative_sentiment,
    )

    return SupportOrchestrator(
        memory=memory,
        classifier=classifier,
        planner=ResponsePlanner(memory),
        dispatcher=IntegrationDispatcher(
            commerce=commerce,
            support_desk=support_desk,
            product_listing_limit=config.product_listing_limit,
        ),
        formatter=ResponseFormatter(store_url=commerce.store_url if commerce else None),
        reply_generator=ai_client,
        blend_threshold=config.ai_blend_threshold,
    )


def get_orchestrator() -> SupportOrchestrator:
    """Get or create the shared SupportOrchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        logger.info("Initializing SupportOrchestrator...")
        _orchestrator = build_orchestrator(settings)
    return _orchestrator


async def close_integrations() -> None:
    """Close adapter HTTP clients and drop the shared orchestrator."""
    global _orchestrator
    while _closeables:
        adapter = _closeables.pop()
        try:
            await adapter.aclose()
        except Exception as e:
            logger.warning(f"Failed to close {type(adapter).__name__}: {e}")
    _orchestrator = None
