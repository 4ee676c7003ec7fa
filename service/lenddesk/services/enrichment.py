"""
Enrichment Service

External data enrichment using People Data Labs API.
"""

from typing import Any, Optional

import httpx

from ..config import get_settings
from ..logging_config import get_logger
from .linkedin_client import Profile

logger = get_logger("enrichment")


class EnrichmentService:
    """Looks up extra data for a profile. Never raises: no data is just None."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = get_settings()
        self.client = http_client or httpx.AsyncClient(timeout=self.settings.http_timeout_seconds)

    def _build_params(self, profile: Profile) -> dict:
        """
        Build PDL query params from what the profile has.

        Prefer the public profile URL, then email; fall back to name (+ company).
        """
        params = {}

        url = profile.public_profile_url or ""
        if "/in/" in url:
            params["profile"] = url
        elif url:
            logger.debug(f"Skipping non-profile LinkedIn URL: {url}")

        # A fetched profile's email may be the viewer's; never pair it with a URL
        if profile.email and not params:
            params["email"] = profile.email

        if not params and profile.first_name and profile.last_name:
            params["first_name"] = profile.first_name
            params["last_name"] = profile.last_name
            if profile.company_name:
                params["company"] = profile.company_name

        return params

    async def _call_pdl_api(self, params: dict) -> Optional[dict]:
        """Call People Data Labs person enrichment API."""
        response = await self.client.get(
            f"{self.settings.pdl_base_url}/person/enrich",
            headers={"X-Api-Key": self.settings.pdl_api_key},
            params=params,
        )

        if response.status_code == 200:
            return response.json()
        elif response.status_code == 404:
            return None  # Person not found
        else:
            raise Exception(f"PDL API error: {response.status_code} - {response.text[:200]}")

    async def enrich(self, profile: Profile) -> Optional[dict[str, Any]]:
        """
        Enrich a profile with external data.

        Returns the PDL person record, or None when the API key is missing,
        there is nothing to look up by, the person is unknown, or the call
        fails.
        """
        if not self.settings.pdl_api_key:
            return None

        params = self._build_params(profile)
        if not params:
            return None

        try:
            pdl_data = await self._call_pdl_api(params)
        except Exception as e:
            logger.warning(f"Enrichment failed for profile {profile.id}: {e}")
            return None

        if not pdl_data:
            return None

        # PDL wraps the person in a "data" object
        person = pdl_data.get("data", pdl_data)
        if not isinstance(person, dict):
            return None
        return self._compact(person)

    def _safe_list(self, value) -> list:
        """
        PDL returns a list for real data, True for "exists but hidden",
        False/None for nothing. Only real lists count.
        """
        if isinstance(value, list):
            return value
        return []

    def _safe_str(self, value) -> Optional[str]:
        if isinstance(value, str) and value:
            return value
        return None

    def _compact(self, data: dict) -> dict[str, Any]:
        """Keep the fields a loan officer cares about, dropping PDL's hidden markers."""
        result: dict[str, Any] = {"source": "pdl"}

        for key in ("full_name", "job_title", "job_company_name", "industry",
                    "location_name", "linkedin_url", "mobile_phone"):
            value = self._safe_str(data.get(key))
            if value:
                result[key] = value

        skills = [s for s in self._safe_list(data.get("skills")) if isinstance(s, str) and s]
        if skills:
            result["skills"] = skills[:5]

        emails = []
        for email in self._safe_list(data.get("emails"))[:3]:
            if isinstance(email, dict) and self._safe_str(email.get("address")):
                emails.append(email["address"])
        if emails:
            result["emails"] = emails

        profiles = {}
        for item in self._safe_list(data.get("profiles")):
            if not isinstance(item, dict):
                continue
            network = self._safe_str(item.get("network"))
            url = self._safe_str(item.get("url"))
            if network and url and network != "linkedin":
                profiles[network] = url if url.startswith("http") else f"https://{url}"
        if profiles:
            result["profiles"] = profiles

        return result


# Singleton instance
_enrichment_service: Optional[EnrichmentService] = None


def get_enrichment_service() -> EnrichmentService:
    global _enrichment_service
    if _enrichment_service is None:
        _enrichment_service = EnrichmentService()
    return _enrichment_service
