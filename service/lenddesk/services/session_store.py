"""
Chat session storage.

Sessions live behind a small store interface so the advisor can run on a
process-local map (single instance, tests) or on Supabase (shared between
instances). Both expire sessions by idle time; `ChatSessionManager.evict_expired`
does the actual deletion.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from lenddesk.agents.schemas import ChatSession
from lenddesk.config import Settings, get_settings
from lenddesk.supabase_client import get_supabase_admin


class SessionNotFoundError(Exception):
    """No chat session with this id."""

    def __init__(self, session_id: str):
        super().__init__(f"Chat session not found: {session_id}")
        self.session_id = session_id


class SessionStore(Protocol):
    async def get(self, session_id: str) -> Optional[ChatSession]:
        ...

    async def put(self, session: ChatSession) -> None:
        ...

    async def delete(self, session_id: str) -> None:
        ...

    async def list_expired(self, now: Optional[datetime] = None) -> list[str]:
        """Ids of sessions idle for longer than the TTL."""
        ...


class InMemorySessionStore:
    """Process-local sessions. Lost on restart."""

    def __init__(self, ttl: timedelta = timedelta(minutes=120)):
        self.ttl = ttl
        self._sessions: dict[str, ChatSession] = {}

    async def get(self, session_id: str) -> Optional[ChatSession]:
        return self._sessions.get(session_id)

    async def put(self, session: ChatSession) -> None:
        self._sessions[session.id] = session

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def list_expired(self, now: Optional[datetime] = None) -> list[str]:
        cutoff = (now or datetime.now(timezone.utc)) - self.ttl
        return [sid for sid, session in self._sessions.items() if session.updated_at < cutoff]

    def __len__(self) -> int:
        return len(self._sessions)


class SupabaseSessionStore:
    """Sessions in the `ai_chat_session` table; the transcript is a JSON column."""

    TABLE = "ai_chat_session"

    def __init__(self, ttl: timedelta = timedelta(minutes=120), supabase=None):
        self.ttl = ttl
        self.supabase = supabase or get_supabase_admin()

    async def get(self, session_id: str) -> Optional[ChatSession]:
        result = self.supabase.table(self.TABLE).select("payload").eq(
            "session_id", session_id
        ).limit(1).execute()

        if not result.data:
            return None
        return ChatSession.model_validate(result.data[0]["payload"])

    async def put(self, session: ChatSession) -> None:
        self.supabase.table(self.TABLE).upsert({
            "session_id": session.id,
            "contact_id": session.contact_id,
            "status": session.status,
            "payload": session.model_dump(mode="json"),
            "updated_at": session.updated_at.isoformat()
        }, on_conflict="session_id").execute()

    async def delete(self, session_id: str) -> None:
        self.supabase.table(self.TABLE).delete().eq("session_id", session_id).execute()

    async def list_expired(self, now: Optional[datetime] = None) -> list[str]:
        cutoff = (now or datetime.now(timezone.utc)) - self.ttl
        result = self.supabase.table(self.TABLE).select("session_id").lt(
            "updated_at", cutoff.isoformat()
        ).execute()
        return [row["session_id"] for row in result.data or []]


def build_session_store(settings: Settings) -> SessionStore:
    ttl = timedelta(minutes=settings.chat_session_ttl_minutes)
    if settings.session_store_backend == "memory":
        return InMemorySessionStore(ttl=ttl)
    if settings.session_store_backend == "supabase":
        return SupabaseSessionStore(ttl=ttl)
    raise ValueError(f"Unknown session store backend: {settings.session_store_backend}")


# Singleton instance
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store is None:
        _session_store = build_session_store(get_settings())
    return _session_store
