from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


MessageRole = Literal["user", "assistant", "system"]
SessionStatus = Literal["active", "resolved", "escalated"]
ActionType = Literal["schedule_call", "send_email", "create_task", "escalate"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SuggestedAction(BaseModel):
    type: ActionType
    description: str
    data: Optional[dict[str, Any]] = None


class ChatMessage(BaseModel):
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
    contact_id: Optional[int] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChatSession(BaseModel):
    id: str
    contact_id: int
    loan_application_id: Optional[int] = None
    messages: list[ChatMessage] = Field(default_factory=list)
    status: SessionStatus = "active"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    tags: list[str] = Field(default_factory=lambda: ["new", "active"])
    summary: Optional[str] = None


class AIResponse(BaseModel):
    message: str
    confidence: float
    suggested_actions: list[SuggestedAction] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    degraded: bool = False  # True when the provider failed and a canned reply was used
