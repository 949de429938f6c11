"""
Customer support pipeline.

This module provides:
- Intent classification and entity extraction
- Short-lived conversation memory
- Response planning
- Integration dispatch
- Response formatting
- Pipeline orchestration
"""

from .conversation_memory import ConversationMemoryStore
from .integration_dispatcher import IntegrationDispatcher
from .intent_classifier import EntityExtractor, IntentClassifier
from .models import CustomerContext, Intent, IntentAnalysis, PipelineResult
from .orchestrator import SupportOrchestrator
from .response_formatter import ResponseFormatter
from .response_planner import ResponsePlanner

__all__ = [
    "ConversationMemoryStore",
    "IntegrationDispatcher",
    "EntityExtractor",
    "IntentClassifier",
    "CustomerContext",
    "Intent",
    "IntentAnalysis",
    "PipelineResult",
    "SupportOrchestrator",
    "ResponseFormatter",
    "ResponsePlanner",
]
