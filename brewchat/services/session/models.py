"""Session models."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from brewchat.services.agent.modes import AgentMode
from brewchat.services.ordering.models import OrderDraft


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    USER = "user"
    AGENT = "agent"
    TOOL = "tool"


class ToolCallPayload(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: Optional[Dict[str, Any]] = None
    raw_arguments: Optional[str] = None  # Kept when arguments were not valid JSON


class ToolResultPayload(BaseModel):
    """Outcome of a tool invocation, as shown back to the model."""

    tool_call_id: str
    name: str
    ok: bool
    data: Optional[Dict[str, Any]] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None


class ChatMessage(BaseModel):
    """One entry in a session's history. Never modified once appended."""

    role: MessageRole
    content: str = ""
    tool_call: Optional[ToolCallPayload] = None
    tool_result: Optional[ToolResultPayload] = None
    position: int = -1  # Assigned by the session store on append
    created_at: datetime = Field(default_factory=utcnow)


class Session(BaseModel):
    """Durable per-conversation state."""

    id: str
    owner: str
    mode: AgentMode = AgentMode.RECOMMENDATION
    messages: List[ChatMessage] = []
    draft: Optional[OrderDraft] = None
    draft_sequence: int = 0
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def active_draft(self) -> Optional[OrderDraft]:
        """The draft if it is still building or awaiting confirmation."""
        if self.draft is not None and self.draft.is_active:
            return self.draft
        return None

    def next_draft_id(self) -> str:
        """Id the next new draft will get; derived from state, so retries agree."""
        return f"{self.id}:{self.draft_sequence + 1}"

    def set_draft(self, draft: Optional[OrderDraft]) -> None:
        """Attach a draft, advancing the sequence when a new draft starts."""
        if draft is not None and (self.draft is None or draft.draft_id != self.draft.draft_id):
            if self.active_draft is not None:
                raise ValueError("session already has an active draft")
            self.draft_sequence += 1
        self.draft = draft

    def switch_mode(self, mode: AgentMode) -> bool:
        """
        Move the session to another agent mode.

        Leaving ORDERING is only allowed once there is no active draft.

        Returns:
            True if the mode changed
        """
        if mode == self.mode:
            return False
        if mode == AgentMode.RECOMMENDATION and self.active_draft is not None:
            raise ValueError("cannot leave ordering mode while a draft is active")
        self.mode = mode
        return True

    def append_message(self, message: ChatMessage) -> ChatMessage:
        """Append a message, assigning its sequence position."""
        stored = message.model_copy(update={"position": len(self.messages)})
        self.messages.append(stored)
        return stored
