"""
Chat router for the support pipeline.

This router:
1. Receives customer messages
2. Runs them through the SupportOrchestrator
3. Returns the reply with quick actions and metadata
4. Exposes integration status and conversation memory for operators
"""
from fastapi import APIRouter, Depends, HTTPException, status
from app.dependencies import get_orchestrator
from app.models.schemas import AnalysisModel, ChatRequest, ChatResponse, QuickActionModel
from pipeline import CustomerContext, SupportOrchestrator
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    orchestrator: SupportOrchestrator = Depends(get_orchestrator)
) -> ChatResponse:
    """
    Chat endpoint.

    The orchestrator never raises; internal failures come back as a
    human-escalation reply.

    Args:
        request: Chat request with the customer message and context

    Returns:
        ChatResponse with reply text, quick actions and metadata
    """
    logger.info(f"Chat request for conversation {request.conversation_id}")

    customer_context = CustomerContext(
        conversation_id=request.conversation_id,
        email=request.email,
        name=request.name,
        chat_history=[entry.model_dump() for entry in request.chat_history],
    )

    result = await orchestrator.process_message(
        {"content": request.message, "conversation_id": request.conversation_id},
        customer_context,
    )

    response = result.response.to_dict()
    analysis = result.analysis.to_dict() if result.analysis else None

    return ChatResponse(
        text=response["text"],
        actions=[QuickActionModel(**action) for action in response["actions"]],
        metadata=response["metadata"],
        analysis=AnalysisModel(**analysis) if analysis else None,
        history_summary=result.history_summary,
        conversation_id=request.conversation_id,
    )


@router.get("/integrations/status")
async def integration_status(
    orchestrator: SupportOrchestrator = Depends(get_orchestrator)
) -> dict:
    """
    Connection status of each integration.

    Returns:
        Mapping of integration name to {connected, last_check}
    """
    return orchestrator.get_integration_status()


@router.post("/integrations/refresh")
async def refresh_integrations(
    orchestrator: SupportOrchestrator = Depends(get_orchestrator)
) -> dict:
    """
    Re-probe every integration.

    Returns:
        Updated integration status
    """
    try:
        return await orchestrator.refresh_integrations()
    except Exception as e:
        logger.error(f"Integration refresh failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Integration refresh failed",
        )


@router.get("/context/{conversation_id}")
async def get_context(
    conversation_id: str,
    orchestrator: SupportOrchestrator = Depends(get_orchestrator)
) -> dict:
    """
    Get live conversation memory.

    Args:
        conversation_id: Conversation identifier

    Returns:
        Stored context for the conversation
    """
    context = orchestrator.memory.get(conversation_id)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active context for conversation {conversation_id}",
        )
    return context.to_dict()
