"""
Contact persistence.

The CRM owns the contact table; the import pipeline only needs
insert-if-absent keyed by the normalized LinkedIn profile URL.
"""

from typing import Any, Optional, Protocol

from ..logging_config import get_logger
from ..supabase_client import get_supabase_admin

logger = get_logger("contacts")


class ContactRepository(Protocol):
    async def insert_if_absent(self, contact: dict[str, Any]) -> bool:
        """Insert the contact unless one with the same linkedin_url exists. True if inserted."""
        ...


class SupabaseContactRepository:
    """Contacts stored in the `contact` table."""

    TABLE = "contact"

    def __init__(self, supabase=None):
        self.supabase = supabase or get_supabase_admin()

    def _exists(self, owner_id: Optional[str], linkedin_url: str) -> bool:
        query = self.supabase.table(self.TABLE).select("contact_id").eq("linkedin_url", linkedin_url)
        if owner_id:
            query = query.eq("owner_id", owner_id)
        existing = query.limit(1).execute()
        return bool(existing.data)

    async def insert_if_absent(self, contact: dict[str, Any]) -> bool:
        linkedin_url = contact.get("linkedin_url")
        if linkedin_url and self._exists(contact.get("owner_id"), linkedin_url):
            logger.debug(f"Duplicate contact for {linkedin_url}")
            return False

        self.supabase.table(self.TABLE).insert(contact).execute()
        return True


# Singleton instance
_contact_repository: Optional[SupabaseContactRepository] = None


def get_contact_repository() -> SupabaseContactRepository:
    global _contact_repository
    if _contact_repository is None:
        _contact_repository = SupabaseContactRepository()
    return _contact_repository
