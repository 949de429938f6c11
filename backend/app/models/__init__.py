"""Models package."""
from app.models.schemas import (
    AnalysisModel,
    ChatHistoryEntry,
    ChatRequest,
    ChatResponse,
    QuickActionModel,
)

__all__ = [
    "AnalysisModel",
    "ChatHistoryEntry",
    "ChatRequest",
    "ChatResponse",
    "QuickActionModel",
]
