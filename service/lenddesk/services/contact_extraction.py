"""
LinkedIn Contact Extraction

Turns the viewer's LinkedIn connections into CRM contact candidates:
fetch each profile, guess an email, scan for phone numbers, enrich,
and persist with dedup on the profile URL.

Usage:
    from lenddesk.services.contact_extraction import get_contact_extraction_service

    service = get_contact_extraction_service()
    tally = await service.batch_import(access_token, on_progress=print)
    print(tally.imported, tally.failed, tally.duplicates)
"""

import asyncio
import inspect
from dataclasses import dataclass, field, asdict
from typing import Any, Awaitable, Callable, Optional, Union

from ..config import get_settings
from ..logging_config import get_logger
from ..utils import normalize_linkedin_url
from .contact_heuristics import extract_phones, guess_email
from .contact_store import ContactRepository, get_contact_repository
from .enrichment import EnrichmentService, get_enrichment_service
from .linkedin_client import LinkedInClient, Profile, get_linkedin_client

logger = get_logger("contact_extraction")

ProgressCallback = Callable[[float, str], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class ContactExtraction:
    """Derived contact data for one profile. Never mutated after creation."""
    profile: Profile
    extracted_email: str
    email_confidence: float
    extracted_phones: tuple[str, ...] = field(default_factory=tuple)
    phone_confidence: float = 0.0
    enriched_data: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict:
        return {
            "name": self.profile.full_name,
            "email": self.extracted_email or None,
            "email_confidence": self.email_confidence,
            "phones": list(self.extracted_phones),
            "phone_confidence": self.phone_confidence,
            "company": self.profile.company_name or None,
            "title": self.profile.current_position.title if self.profile.current_position else None,
            "linkedin_url": self.profile.public_profile_url,
        }


@dataclass
class ImportTally:
    """Counters for one batch import run."""
    imported: int = 0
    failed: int = 0
    duplicates: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def build_contact_row(
    extraction: ContactExtraction,
    owner_id: Optional[str] = None,
    organization_id: Optional[str] = None
) -> dict[str, Any]:
    """Map an extraction onto a CRM contact row."""
    profile = extraction.profile
    phones = list(extraction.extracted_phones)
    position = profile.current_position

    return {
        "owner_id": owner_id,
        "organization_id": organization_id,
        "type": "lead",
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        # The email lookup answers for the viewer, not the connection; only a fallback
        "email": extraction.extracted_email or profile.email or None,
        "mobile_phone": phones[0] if phones else None,
        "business_phone": phones[1] if len(phones) > 1 else None,
        "company": position.company_name if position else None,
        "job_title": position.title if position else None,
        "linkedin_url": normalize_linkedin_url(profile.public_profile_url or ""),
        "profile_image_url": profile.profile_picture,
        "industry": profile.industry,
        "location": profile.location,
        "notes": f"Imported from LinkedIn. {profile.headline or ''}".strip(),
        "tags": ["linkedin-import", "auto-extracted"],
        "custom_fields": {
            "linkedin_id": profile.id,
            "email_confidence": extraction.email_confidence,
            "phone_confidence": extraction.phone_confidence,
            "connections": profile.connections,
            "enriched_data": extraction.enriched_data,
        },
        "source": "linkedin",
        "status": "active",
    }


async def _report(on_progress: Optional[ProgressCallback], progress: float, message: str):
    if on_progress is None:
        return
    result = on_progress(round(progress, 1), message)
    if inspect.isawaitable(result):
        await result


class ContactExtractionService:
    """Drives profile fetch, heuristics, enrichment and persistence."""

    def __init__(
        self,
        linkedin: Optional[LinkedInClient] = None,
        enrichment: Optional[EnrichmentService] = None,
        repository: Optional[ContactRepository] = None,
        batch_size: Optional[int] = None
    ):
        self.linkedin = linkedin or get_linkedin_client()
        self.enrichment = enrichment or get_enrichment_service()
        self.repository = repository or get_contact_repository()
        self.batch_size = batch_size or get_settings().import_batch_size

    async def list_connections(self, access_token: str) -> list[str]:
        return await self.linkedin.list_connections(access_token)

    async def fetch_profile(self, connection_ref: str, access_token: str) -> Profile:
        return await self.linkedin.fetch_profile(connection_ref, access_token)

    async def enrich(self, profile: Profile) -> Optional[dict[str, Any]]:
        """Enrichment lookup; any failure means no enrichment."""
        try:
            return await self.enrichment.enrich(profile)
        except Exception as e:
            logger.warning(f"Enrichment error for {profile.id}: {e}")
            return None

    async def extract_from_profile(self, profile: Profile) -> ContactExtraction:
        email, email_confidence = guess_email(profile)
        phones, phone_confidence = extract_phones(profile)
        enriched_data = await self.enrich(profile)

        return ContactExtraction(
            profile=profile,
            extracted_email=email,
            email_confidence=email_confidence,
            extracted_phones=tuple(phones),
            phone_confidence=phone_confidence,
            enriched_data=enriched_data
        )

    async def extract_contact(self, connection_ref: str, access_token: str) -> Optional[ContactExtraction]:
        """Extraction for one connection, or None if anything upstream failed."""
        try:
            profile = await self.fetch_profile(connection_ref, access_token)
            return await self.extract_from_profile(profile)
        except Exception as e:
            logger.error(f"Error extracting contact {connection_ref}: {e}")
            return None

    async def extract_contacts(
        self,
        access_token: str,
        connection_ids: Optional[list[str]] = None
    ) -> list[ContactExtraction]:
        """Extract all (or the selected) connections without persisting them."""
        refs = await self.list_connections(access_token)
        if connection_ids:
            wanted = set(connection_ids)
            refs = [ref for ref in refs if ref in wanted]

        extractions = []
        for start in range(0, len(refs), self.batch_size):
            batch = refs[start:start + self.batch_size]
            results = await asyncio.gather(*(self.extract_contact(ref, access_token) for ref in batch))
            extractions.extend(r for r in results if r is not None)
        return extractions

    async def save_extraction(
        self,
        extraction: ContactExtraction,
        owner_id: Optional[str] = None,
        organization_id: Optional[str] = None
    ) -> bool:
        """Persist one extraction. True if inserted, False if it was a duplicate."""
        row = build_contact_row(extraction, owner_id, organization_id)
        return await self.repository.insert_if_absent(row)

    async def save_extracted_contacts(
        self,
        extractions: list[ContactExtraction],
        owner_id: Optional[str] = None,
        organization_id: Optional[str] = None
    ) -> int:
        """Persist extractions, returning how many were new. Errors are logged and skipped."""
        saved = 0
        for extraction in extractions:
            try:
                if await self.save_extraction(extraction, owner_id, organization_id):
                    saved += 1
            except Exception as e:
                logger.error(f"Error saving contact {extraction.profile.id}: {e}")
        return saved

    async def batch_import(
        self,
        access_token: str,
        on_progress: Optional[ProgressCallback] = None,
        owner_id: Optional[str] = None,
        organization_id: Optional[str] = None
    ) -> ImportTally:
        """
        Import every connection as a contact.

        Connections are processed in batches of `batch_size`: profiles within
        a batch are fetched concurrently, batches run one after another.
        A failure for one profile is counted and never aborts the run; only a
        failure to list connections propagates.
        """
        tally = ImportTally()

        await _report(on_progress, 10, "Fetching LinkedIn connections...")
        refs = await self.list_connections(access_token)
        total = len(refs)
        await _report(on_progress, 20, f"Found {total} connections. Extracting details...")

        for start in range(0, total, self.batch_size):
            batch = refs[start:start + self.batch_size]
            extractions = await asyncio.gather(
                *(self.extract_contact(ref, access_token) for ref in batch)
            )

            for extraction in extractions:
                if extraction is None:
                    tally.failed += 1
                    continue
                try:
                    if await self.save_extraction(extraction, owner_id, organization_id):
                        tally.imported += 1
                    else:
                        tally.duplicates += 1
                except Exception as e:
                    logger.error(f"Error saving contact {extraction.profile.id}: {e}")
                    tally.failed += 1

            done = start + len(batch)
            await _report(on_progress, 20 + done / total * 70, f"Processed contacts {start + 1} to {done} of {total}")

        logger.info(
            f"Batch import finished: imported={tally.imported}, "
            f"failed={tally.failed}, duplicates={tally.duplicates}"
        )
        await _report(on_progress, 100, "Import complete!")
        return tally


# Singleton instance
_contact_extraction_service: Optional[ContactExtractionService] = None


def get_contact_extraction_service() -> ContactExtractionService:
    global _contact_extraction_service
    if _contact_extraction_service is None:
        _contact_extraction_service = ContactExtractionService()
    return _contact_extraction_service
