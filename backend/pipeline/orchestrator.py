"""
Support pipeline orchestrator.

This module handles:
- Running each message through classifier, planner, dispatcher and formatter
- Blending an AI reply into low-confidence responses
- Converting any pipeline failure into a human-escalation reply
- Tracking which integrations are connected
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from .conversation_memory import ConversationMemoryStore
from .integration_dispatcher import IntegrationDispatcher
from .intent_classifier import IntentClassifier
from .models import (
    CustomerContext,
    FormattedResponse,
    IntegrationResults,
    IntentAnalysis,
    PipelineResult,
    QuickAction,
)
from .prompts import ERROR_FALLBACK_TEXT
from .response_formatter import ResponseFormatter
from .response_planner import ResponsePlanner

logger = logging.getLogger(__name__)

DEFAULT_BLEND_THRESHOLD = 0.7


class SupportOrchestrator:
    """
    Coordinates the per-message pipeline.

    Each call to process_message runs classification, planning, dispatch and
    formatting in order and always returns a PipelineResult.
    """

    def __init__(
        self,
        memory: ConversationMemoryStore,
        classifier: IntentClassifier,
        planner: ResponsePlanner,
        dispatcher: IntegrationDispatcher,
        formatter: ResponseFormatter,
        reply_generator=None,
        blend_threshold: float = DEFAULT_BLEND_THRESHOLD
    ):
        """
        Initialize orchestrator.

        Args:
            memory: Conversation memory shared by classifier and planner
            classifier: Intent classifier
            planner: Response planner
            dispatcher: Integration dispatcher
            formatter: Response formatter
            reply_generator: Optional ReplyGeneratorCapability for blending
            blend_threshold: Confidence below which an AI reply is blended in
        """
        self.memory = memory
        self.classifier = classifier
        self.planner = planner
        self.dispatcher = dispatcher
        self.formatter = formatter
        self.reply_generator = reply_generator
        self.blend_threshold = blend_threshold

        self.integration_status: Dict[str, Dict[str, Any]] = {
            "shopify": {"connected": False, "last_check": None},
            "kustomer": {"connected": False, "last_check": None},
            "ai": {"connected": False, "last_check": None},
        }

    async def process_message(
        self,
        message: Dict[str, Any],
        customer_context: Optional[CustomerContext] = None
    ) -> PipelineResult:
        """
        Process one customer message.

        Args:
            message: Dict with 'content' and optional 'conversation_id'
            customer_context: Caller-supplied customer context

        Returns:
            PipelineResult; never raises
        """
        customer_context = customer_context or CustomerContext()

        try:
            content = message.get("content") or ""
            conversation_id = message.get("conversation_id") or customer_context.conversation_id
            logger.info(f"Processing message for conversation {conversation_id}")

            analysis = await self.classifier.analyze(
                content,
                known_email=customer_context.email,
                conversation_id=conversation_id,
            )

            plan = self.planner.plan(analysis, content, conversation_id)

            results = await self.dispatcher.execute(
                plan.actions,
                customer_context,
                {**message, "conversation_id": conversation_id},
            )

            response = self.formatter.format(plan, results, content)
            response = await self._blend_ai_reply(response, content, customer_context)

            enriched = self.dispatcher.enrich_customer_context(customer_context, results)
            history_summary = None
            if customer_context.chat_history:
                history_summary = self.classifier.summarize_history(customer_context.chat_history)

            return PipelineResult(
                response=response,
                analysis=analysis,
                integration_results=results,
                customer_context=enriched,
                history_summary=history_summary,
            )

        except Exception as e:
            logger.error(f"Error processing message: {e}", exc_info=True)
            return self._error_fallback(customer_context)

    async def _blend_ai_reply(
        self,
        response: FormattedResponse,
        content: str,
        customer_context: CustomerContext
    ) -> FormattedResponse:
        if self.reply_generator is None:
            return response
        if response.text and response.confidence >= self.blend_threshold:
            return response

        try:
            ai_text = await self.reply_generator.generate_reply(content, customer_context.chat_history)
        except Exception as e:
            logger.warning(f"AI reply generation failed - keeping formatted response: {e}")
            return response

        if not ai_text:
            return response

        logger.info("Blending AI reply into low-confidence response")
        return FormattedResponse(
            text=ai_text,
            actions=response.actions,
            source="ai_blended",
            confidence=max(response.confidence, self.blend_threshold),
            integrations_used=response.integrations_used,
            extra=dict(response.extra),
        )

    @staticmethod
    def _error_fallback(customer_context: CustomerContext) -> PipelineResult:
        response = FormattedResponse(
            text=ERROR_FALLBACK_TEXT,
            actions=[QuickAction("escalate", "Connect with Agent", priority="high")],
            source="error_fallback",
            confidence=1.0,
        )
        # Intent list is a plain marker here, outside the closed intent set
        analysis = IntentAnalysis()
        analysis.intents = ["error"]
        return PipelineResult(
            response=response,
            analysis=analysis,
            integration_results=IntegrationResults(),
            customer_context=customer_context,
        )

    async def initialize_integrations(self) -> Dict[str, Dict[str, Any]]:
        """
        Probe every configured integration.

        A capability whose probe fails or raises is marked disconnected; the
        dispatcher then skips CRM actions rather than failing them.

        Returns:
            Integration status mapping
        """
        checked_at = datetime.now().isoformat()

        probes = {
            "shopify": self.dispatcher.commerce,
            "kustomer": self.dispatcher.support_desk,
            "ai": self.reply_generator or self.classifier.ai_classifier,
        }
        for name, adapter in probes.items():
            connected = False
            if adapter is not None:
                try:
                    connected = bool(await adapter.verify_connection())
                except Exception as e:
                    logger.warning(f"{name} connection check failed: {e}")
            if adapter is not None and not connected:
                logger.warning(f"{name} integration is not connected")
            self.integration_status[name] = {"connected": connected, "last_check": checked_at}

        self.dispatcher.support_desk_connected = self.integration_status["kustomer"]["connected"]
        connected = [name for name, status in self.integration_status.items() if status["connected"]]
        logger.info(f"Integrations initialized, connected: {connected}")
        return self.get_integration_status()

    async def refresh_integrations(self) -> Dict[str, Dict[str, Any]]:
        logger.info("Refreshing integrations...")
        return await self.initialize_integrations()

    def get_integration_status(self) -> Dict[str, Dict[str, Any]]:
        return {name: dict(status) for name, status in self.integration_status.items()}
