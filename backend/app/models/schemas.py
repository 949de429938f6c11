"""
Pydantic models for request/response schemas.
"""
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class ChatHistoryEntry(BaseModel):
    """Prior message in the conversation."""
    sender_type: str = Field(..., description="'user' or 'bot'")
    content: str = Field(..., description="Message text")


class ChatRequest(BaseModel):
    """Request model for chat endpoint."""
    message: str = Field(..., description="Customer message", min_length=1)
    conversation_id: Optional[str] = Field(default=None, description="Conversation identifier")
    email: Optional[str] = Field(default=None, description="Customer email, if already known")
    name: Optional[str] = Field(default=None, description="Customer name, if already known")
    chat_history: List[ChatHistoryEntry] = Field(default_factory=list, description="Prior messages")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Where is my order? My email is jane@example.com",
                "conversation_id": "conv_123",
                "chat_history": [],
            }
        }


class QuickActionModel(BaseModel):
    """Quick reply, link or handoff offered with a reply."""
    type: str
    label: str
    value: Optional[str] = None
    url: Optional[str] = None
    priority: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class AnalysisModel(BaseModel):
    """Intent analysis summary returned for debugging and analytics."""
    intents: List[str] = Field(default_factory=list)
    sentiment: str = "neutral"
    priority: str = "medium"
    requires_escalation: bool = False
    confidence: float = 0.0
    entities: Dict[str, Any] = Field(default_factory=dict)


class ChatResponse(BaseModel):
    """Response model for chat endpoint."""
    text: str = Field(..., description="Customer-facing reply")
    actions: List[QuickActionModel] = Field(default_factory=list, description="Quick actions")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Source, confidence, integrations used")
    analysis: Optional[AnalysisModel] = None
    history_summary: Optional[Dict[str, Any]] = Field(default=None, description="Topics and sentiment across prior messages")
    conversation_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "text": "I'll help you track your order! ...",
                "actions": [{"type": "quick_reply", "label": "I have my order number", "value": "My order number is "}],
                "metadata": {"source": "smart_integration", "confidence": 0.8, "integrations_used": []},
                "analysis": {"intents": ["orderTracking"], "sentiment": "neutral"},
                "conversation_id": "conv_123",
            }
        }
