"""
AI Loan Advisor - chat session manager.

Keeps per-session transcripts and runs one request/response turn against the
configured completion provider. Provider failures never escape a chat turn:
the borrower gets a canned reply and the session is flagged for escalation.

Usage:
    from lenddesk.services.chat_session import get_chat_session_manager

    manager = get_chat_session_manager()
    response = await manager.process_message("sess-1", "What rates do DSCR loans have?", contact_id=42)
    print(response.message, response.suggested_actions)
"""

import re
from datetime import datetime, timezone
from typing import Optional

from lenddesk.agents.prompts import (
    DEGRADED_REPLY,
    EMPTY_REPLY,
    EMPTY_SUMMARY,
    LOAN_ADVISOR_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_UNAVAILABLE,
)
from lenddesk.agents.schemas import AIResponse, ChatMessage, ChatSession, SuggestedAction
from lenddesk.logging_config import get_logger
from lenddesk.services.completion import CompletionProvider, get_completion_provider
from lenddesk.services.response_analyzer import KeywordResponseAnalyzer, ResponseAnalyzer
from lenddesk.services.session_store import SessionNotFoundError, SessionStore, get_session_store

logger = get_logger("chat")

CONTEXT_WINDOW = 5  # transcript entries sent with each turn
CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 1000
SUMMARY_TEMPERATURE = 0.3
SUMMARY_MAX_TOKENS = 200
DEGRADED_CONFIDENCE = 0.3


def clean_reply(message: str) -> str:
    """Collapse blank lines, trim, and drop markdown bold markers."""
    message = re.sub(r'\n\s*\n', '\n', message)
    message = message.strip()
    return re.sub(r'\*\*(.*?)\*\*', r'\1', message)


def set_status(session: ChatSession, status: str):
    """Move the session to `status`; the status tag follows it."""
    if session.status in session.tags:
        session.tags.remove(session.status)
    session.status = status
    if status not in session.tags:
        session.tags.append(status)


def degraded_response() -> AIResponse:
    return AIResponse(
        message=DEGRADED_REPLY,
        confidence=DEGRADED_CONFIDENCE,
        suggested_actions=[SuggestedAction(
            type="escalate",
            description="Transfer to human agent due to technical issue"
        )],
        next_steps=["Resolve technical issue", "Continue conversation"],
        degraded=True
    )


class ChatSessionManager:
    """Orchestrates advisor chat turns over a session store and a completion provider."""

    def __init__(
        self,
        provider: Optional[CompletionProvider] = None,
        store: Optional[SessionStore] = None,
        analyzer: Optional[ResponseAnalyzer] = None,
        system_prompt: str = LOAN_ADVISOR_SYSTEM_PROMPT
    ):
        self.provider = provider or get_completion_provider()
        self.store = store or get_session_store()
        self.analyzer = analyzer or KeywordResponseAnalyzer()
        self.system_prompt = system_prompt

    async def _get_or_create(
        self,
        session_id: str,
        contact_id: Optional[int],
        loan_application_id: Optional[int]
    ) -> ChatSession:
        session = await self.store.get(session_id)
        if session:
            if loan_application_id and not session.loan_application_id:
                session.loan_application_id = loan_application_id
            return session

        if contact_id is None:
            raise SessionNotFoundError(session_id)

        logger.info(f"Creating chat session {session_id} for contact {contact_id}")
        return ChatSession(id=session_id, contact_id=contact_id, loan_application_id=loan_application_id)

    def _context_messages(self, session: ChatSession) -> list[dict]:
        recent = [m for m in session.messages if m.role != "system"][-CONTEXT_WINDOW:]
        return [{"role": m.role, "content": m.content} for m in recent]

    async def _generate_response(self, session: ChatSession, user_message: str) -> AIResponse:
        try:
            reply = await self.provider.complete(
                self.system_prompt,
                self._context_messages(session),
                temperature=CHAT_TEMPERATURE,
                max_tokens=CHAT_MAX_TOKENS
            )
        except Exception as e:
            logger.error(f"Provider {getattr(self.provider, 'name', 'completion')} failed for session {session.id}: {e}")
            return degraded_response()

        reply = reply or EMPTY_REPLY
        return AIResponse(
            message=clean_reply(reply),
            confidence=self.analyzer.calculate_confidence(reply, user_message),
            suggested_actions=self.analyzer.extract_suggested_actions(reply, user_message),
            next_steps=self.analyzer.extract_next_steps(reply)
        )

    async def process_message(
        self,
        session_id: str,
        user_message: str,
        contact_id: Optional[int] = None,
        loan_application_id: Optional[int] = None
    ) -> AIResponse:
        """
        Run one chat turn.

        Creates the session on first use (contact_id required then).
        Raises SessionNotFoundError for an unknown session without contact_id;
        provider errors come back as a degraded response instead.
        """
        session = await self._get_or_create(session_id, contact_id, loan_application_id)

        session.messages.append(ChatMessage(
            role="user",
            content=user_message,
            contact_id=session.contact_id
        ))

        response = await self._generate_response(session, user_message)

        session.messages.append(ChatMessage(
            role="assistant",
            content=response.message,
            contact_id=session.contact_id,
            metadata={
                "confidence": response.confidence,
                "suggested_actions": [a.model_dump() for a in response.suggested_actions],
                "degraded": response.degraded
            }
        ))

        if session.status == "active" and any(a.type == "escalate" for a in response.suggested_actions):
            logger.info(f"Escalating chat session {session_id}")
            set_status(session, "escalated")

        session.updated_at = datetime.now(timezone.utc)
        await self.store.put(session)

        return response

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        return await self.store.get(session_id)

    async def get_chat_history(self, session_id: str) -> list[ChatMessage]:
        """Visible transcript; empty for unknown or ended sessions."""
        session = await self.store.get(session_id)
        if not session:
            return []
        return [m for m in session.messages if m.role != "system"]

    async def summarize_session(self, session_id: str) -> str:
        """2-3 sentence summary of the whole conversation, stored on the session."""
        session = await self.store.get(session_id)
        if not session:
            raise SessionNotFoundError(session_id)

        transcript = "\n".join(
            f"{m.role}: {m.content}" for m in session.messages if m.role != "system"
        )

        try:
            summary = await self.provider.complete(
                SUMMARY_SYSTEM_PROMPT,
                [{"role": "user", "content": f"Conversation to summarize:\n{transcript}"}],
                temperature=SUMMARY_TEMPERATURE,
                max_tokens=SUMMARY_MAX_TOKENS
            )
        except Exception as e:
            logger.error(f"Session summarization error for {session_id}: {e}")
            return SUMMARY_UNAVAILABLE

        summary = summary or EMPTY_SUMMARY
        session.summary = summary
        await self.store.put(session)
        return summary

    async def end_session(self, session_id: str) -> Optional[str]:
        """
        Resolve the session, summarize it and drop it from the store.

        Returns the summary, or None if there was no such session.
        """
        session = await self.store.get(session_id)
        if not session:
            return None

        set_status(session, "resolved")
        session.updated_at = datetime.now(timezone.utc)
        await self.store.put(session)

        summary = await self.summarize_session(session_id)
        await self.store.delete(session_id)

        logger.info(f"Chat session {session_id} ended with {len(session.messages)} messages")
        return summary

    async def evict_expired(self) -> int:
        """Delete sessions idle past the store TTL. Returns how many were removed."""
        expired = await self.store.list_expired()
        for session_id in expired:
            await self.store.delete(session_id)
        if expired:
            logger.info(f"Evicted {len(expired)} idle chat sessions")
        return len(expired)


# Singleton instance
_chat_session_manager: Optional[ChatSessionManager] = None


def get_chat_session_manager() -> ChatSessionManager:
    global _chat_session_manager
    if _chat_session_manager is None:
        _chat_session_manager = ChatSessionManager()
    return _chat_session_manager
