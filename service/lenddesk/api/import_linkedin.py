"""
LinkedIn Import API.

OAuth connect flow plus contact extraction from the user's connections.
The batch import streams progress as Server-Sent Events.
"""

import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lenddesk.logging_config import get_logger
from lenddesk.middleware.auth import verify_token, get_user_id, get_organization_id
from lenddesk.services.contact_extraction import (
    ContactExtractionService,
    get_contact_extraction_service,
)
from lenddesk.services.contact_heuristics import extract_phones, guess_email
from lenddesk.services.linkedin_client import (
    CurrentPosition,
    LinkedInClient,
    Profile,
    UpstreamError,
    get_linkedin_client,
)
from lenddesk.supabase_client import get_supabase_admin

router = APIRouter(prefix="/linkedin", tags=["linkedin"])
logger = get_logger("linkedin_import")

# Keep references to background tasks to prevent garbage collection
_background_tasks: set = set()


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class ImportContactsRequest(CamelModel):
    access_token: str = Field(..., min_length=1)


class ExtractContactsRequest(CamelModel):
    access_token: str = Field(..., min_length=1)
    connection_ids: list[str] = Field(default_factory=list)


class EnrichContactRequest(CamelModel):
    first_name: str
    last_name: str
    company: Optional[str] = None
    linkedin_url: Optional[str] = None


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.get("/connect")
async def connect_linkedin(
    token_payload: dict = Depends(verify_token),
    linkedin: LinkedInClient = Depends(get_linkedin_client)
):
    """LinkedIn OAuth login URL for the current user."""
    user_id = get_user_id(token_payload)
    return {"authUrl": linkedin.build_authorization_url(user_id)}


@router.get("/callback")
async def linkedin_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    linkedin: LinkedInClient = Depends(get_linkedin_client)
):
    """OAuth callback: exchange the code and remember the token for the user."""
    if not code or not state:
        return RedirectResponse("/contacts?error=linkedin_auth_failed")

    try:
        user_id = linkedin.parse_state(state)
        access_token = await linkedin.exchange_code_for_token(code)
    except (ValueError, UpstreamError) as e:
        logger.error(f"LinkedIn callback error: {e}")
        return RedirectResponse("/contacts?error=linkedin_auth_failed")

    get_supabase_admin().table("linkedin_token").upsert({
        "owner_id": user_id,
        "access_token": access_token
    }, on_conflict="owner_id").execute()

    return RedirectResponse("/contacts?linkedin=connected")


@router.post("/import-contacts")
async def import_contacts(
    import_request: ImportContactsRequest,
    token_payload: dict = Depends(verify_token),
    service: ContactExtractionService = Depends(get_contact_extraction_service)
):
    """
    Import all LinkedIn connections as contacts.

    Streams `{progress, message}` events, then `{complete: true, results}`
    or `{error}` if the connection list could not be fetched.
    """
    user_id = get_user_id(token_payload)
    organization_id = get_organization_id(token_payload)
    queue: asyncio.Queue = asyncio.Queue()

    async def on_progress(progress: float, message: str):
        await queue.put({"progress": progress, "message": message})

    async def run_import():
        try:
            tally = await service.batch_import(
                import_request.access_token,
                on_progress=on_progress,
                owner_id=user_id,
                organization_id=organization_id
            )
            await queue.put({"complete": True, "results": tally.to_dict()})
        except Exception as e:
            logger.error(f"Import contacts error for user {user_id}: {e}")
            await queue.put({"error": "Import failed"})
        finally:
            await queue.put(None)

    task = asyncio.create_task(run_import())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    async def event_stream():
        while True:
            event = await queue.get()
            if event is None:
                break
            yield _sse(event)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"}
    )


@router.post("/extract-contacts")
async def extract_contacts(
    extract_request: ExtractContactsRequest,
    token_payload: dict = Depends(verify_token),
    service: ContactExtractionService = Depends(get_contact_extraction_service)
):
    """Extract contacts (optionally only the given connections) and save the new ones."""
    user_id = get_user_id(token_payload)
    organization_id = get_organization_id(token_payload)

    try:
        extractions = await service.extract_contacts(
            extract_request.access_token,
            connection_ids=extract_request.connection_ids or None
        )
    except UpstreamError as e:
        raise HTTPException(status_code=502, detail=f"Failed to extract contacts: {e.message}")

    saved = await service.save_extracted_contacts(extractions, user_id, organization_id)

    return {
        "success": True,
        "extracted": len(extractions),
        "saved": saved,
        "contacts": [e.to_dict() for e in extractions]
    }


@router.post("/enrich-contact")
async def enrich_contact(
    enrich_request: EnrichContactRequest,
    token_payload: dict = Depends(verify_token),
    service: ContactExtractionService = Depends(get_contact_extraction_service)
):
    """Guess email/phones and run enrichment for a name + company typed in by hand."""
    profile = Profile(
        id="",
        first_name=enrich_request.first_name,
        last_name=enrich_request.last_name,
        current_position=CurrentPosition(company_name=enrich_request.company) if enrich_request.company else None,
        public_profile_url=enrich_request.linkedin_url
    )

    email, email_confidence = guess_email(profile)
    phones, phone_confidence = extract_phones(profile)
    enriched_data = await service.enrich(profile)

    return {
        "success": True,
        "email": email,
        "emailConfidence": email_confidence,
        "phones": phones,
        "phoneConfidence": phone_confidence,
        "enrichedData": enriched_data
    }
