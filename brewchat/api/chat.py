"""Chat API endpoints."""
import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from brewchat.api.schemas import CamelModel, OrderLineResponse
from brewchat.core.config import settings
from brewchat.core.dependencies import get_orchestrator, get_principal, get_session_store
from brewchat.core.errors import NotFound, TurnTimeout
from brewchat.services.agent.orchestrator import AgentOrchestrator
from brewchat.services.ordering.summary import format_draft_summary
from brewchat.services.session.models import ChatMessage, MessageRole
from brewchat.services.session.store import SessionStore

router = APIRouter()
logger = logging.getLogger(__name__)


class ChatRequest(CamelModel):
    """Inbound chat message."""
    session_id: Optional[str] = None
    message: str = Field(..., min_length=1, max_length=2000)


class ChatResponse(CamelModel):
    """Agent reply for one turn."""
    session_id: str
    reply: str
    mode: str
    draft_summary: Optional[str] = None
    draft_status: Optional[str] = None


class MessageResponse(CamelModel):
    role: str
    content: str
    created_at: datetime


class DraftResponse(CamelModel):
    draft_id: str
    status: str
    items: List[OrderLineResponse] = []
    subtotal: float
    summary: str


class SessionResponse(CamelModel):
    """Conversation state for client re-hydration."""
    session_id: str
    mode: str
    messages: List[MessageResponse] = []
    draft: Optional[DraftResponse] = None
    updated_at: datetime


@router.post("/api/chat", response_model=ChatResponse, response_model_by_alias=True)
async def chat(
    chat_request: ChatRequest,
    principal: str = Depends(get_principal),
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
):
    """Run one conversational turn."""
    logger.info(
        f"[CHAT] Request received - Session: {chat_request.session_id or 'new'}, "
        f"Principal: {principal}, Message length: {len(chat_request.message)}"
    )
    try:
        result = await asyncio.wait_for(
            orchestrator.handle_turn(principal, chat_request.message, chat_request.session_id),
            timeout=settings.turn_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error(
            f"[CHAT] Turn timed out after {settings.turn_timeout_seconds}s - "
            f"Session: {chat_request.session_id or 'new'}"
        )
        raise TurnTimeout("The turn took too long; anything already done has been kept.")

    return ChatResponse(
        session_id=result.session_id,
        reply=result.reply,
        mode=result.mode.value,
        draft_summary=result.draft_summary,
        draft_status=result.draft_status,
    )


@router.get("/api/sessions/{session_id}", response_model=SessionResponse, response_model_by_alias=True)
async def get_session(
    session_id: str,
    principal: str = Depends(get_principal),
    store: SessionStore = Depends(get_session_store),
):
    """Get the caller's session; tool traffic is not included."""
    session = await store.load(session_id)
    if session is None or session.owner != principal:
        raise NotFound(f"Session {session_id} not found")

    draft = None
    if session.draft is not None:
        draft = DraftResponse(
            draft_id=session.draft.draft_id,
            status=session.draft.status.value,
            items=[OrderLineResponse.from_line(line) for line in session.draft.items],
            subtotal=session.draft.subtotal,
            summary=format_draft_summary(session.draft, settings.tax_rate),
        )
    return SessionResponse(
        session_id=session.id,
        mode=session.mode.value,
        messages=[
            MessageResponse(role=m.role.value, content=m.content, created_at=m.created_at)
            for m in session.messages
            if _is_conversational(m)
        ],
        draft=draft,
        updated_at=session.updated_at,
    )


def _is_conversational(message: ChatMessage) -> bool:
    return message.role != MessageRole.TOOL and message.tool_call is None
