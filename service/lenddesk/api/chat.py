"""
AI Loan Advisor chat API.

Borrower-facing chat widget endpoints. Sessions are keyed by a
client-supplied id; the first message of a session must carry contactId.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from slowapi import Limiter
from slowapi.util import get_remote_address

from lenddesk.agents.schemas import AIResponse
from lenddesk.config import get_settings
from lenddesk.services.chat_session import ChatSessionManager, get_chat_session_manager
from lenddesk.services.session_store import SessionNotFoundError

# Rate limiter for expensive endpoints
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/ai/chat", tags=["chat"])


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class ChatMessageRequest(CamelModel):
    session_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, description="Borrower message")
    contact_id: Optional[int] = None
    loan_application_id: Optional[int] = None


class SessionRequest(CamelModel):
    session_id: str = Field(..., min_length=1)


class SuggestedActionOut(CamelModel):
    type: str
    description: str
    data: Optional[dict] = None


class AIResponseOut(CamelModel):
    message: str
    confidence: float
    suggested_actions: list[SuggestedActionOut]
    next_steps: list[str]
    degraded: bool = False

    @classmethod
    def from_response(cls, response: AIResponse) -> "AIResponseOut":
        return cls(
            message=response.message,
            confidence=response.confidence,
            suggested_actions=[SuggestedActionOut(**a.model_dump()) for a in response.suggested_actions],
            next_steps=response.next_steps,
            degraded=response.degraded
        )


class ChatMessageOut(CamelModel):
    role: str
    content: str
    timestamp: datetime
    contact_id: Optional[int] = None
    metadata: dict = Field(default_factory=dict)


class ChatMessageResponse(CamelModel):
    success: bool = True
    response: AIResponseOut
    message: str = "Message processed successfully"


@router.post("/message", response_model=ChatMessageResponse, response_model_by_alias=True)
@limiter.limit(get_settings().chat_rate_limit)
async def send_message(
    request: Request,  # Required for rate limiter
    chat_request: ChatMessageRequest,
    manager: ChatSessionManager = Depends(get_chat_session_manager)
):
    """
    Send a borrower message and get the advisor's reply.

    A provider outage still returns 200 with `degraded: true` and an
    `escalate` suggested action.
    """
    try:
        response = await manager.process_message(
            chat_request.session_id,
            chat_request.message,
            contact_id=chat_request.contact_id,
            loan_application_id=chat_request.loan_application_id
        )
    except SessionNotFoundError:
        raise HTTPException(
            status_code=404,
            detail="Session not found and no contactId provided"
        )

    return ChatMessageResponse(response=AIResponseOut.from_response(response))


@router.get("/history/{session_id}")
async def get_history(
    session_id: str,
    manager: ChatSessionManager = Depends(get_chat_session_manager)
):
    """Visible transcript of a session. Ended or unknown sessions return an empty list."""
    history = await manager.get_chat_history(session_id)
    return {
        "success": True,
        "history": [
            ChatMessageOut(**m.model_dump()).model_dump(mode="json", by_alias=True)
            for m in history
        ],
        "message": "Chat history retrieved"
    }


@router.post("/summarize")
async def summarize(
    session_request: SessionRequest,
    manager: ChatSessionManager = Depends(get_chat_session_manager)
):
    try:
        summary = await manager.summarize_session(session_request.session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")

    return {
        "success": True,
        "summary": summary,
        "message": "Session summarized successfully"
    }


@router.post("/end-session")
async def end_session(
    session_request: SessionRequest,
    manager: ChatSessionManager = Depends(get_chat_session_manager)
):
    """Resolve the session, summarize it, and drop it from the session store."""
    summary = await manager.end_session(session_request.session_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Session not found")

    return {
        "success": True,
        "summary": summary,
        "message": "Session ended successfully"
    }
