"""
LinkedIn API client.

Thin async wrapper over the LinkedIn v2 REST API: OAuth code exchange,
the viewer's connection list, and per-connection profile detail.
"""

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from lenddesk.config import get_settings
from lenddesk.logging_config import get_logger

logger = get_logger("linkedin")

OAUTH_SCOPES = "r_liteprofile r_emailaddress w_member_social r_1st_connections_size"
CONNECTIONS_PAGE_SIZE = 50


class UpstreamError(Exception):
    """LinkedIn answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"LinkedIn API error: {status_code} - {message}")
        self.status_code = status_code
        self.message = message


@dataclass
class CurrentPosition:
    title: str = ""
    company_name: str = ""
    start_date: Optional[str] = None


@dataclass
class Profile:
    """External network identity. Read-only within this service."""
    id: str
    first_name: str = ""
    last_name: str = ""
    headline: Optional[str] = None
    summary: Optional[str] = None
    location: Optional[str] = None
    industry: Optional[str] = None
    profile_picture: Optional[str] = None
    public_profile_url: Optional[str] = None
    email: Optional[str] = None
    current_position: Optional[CurrentPosition] = None
    connections: Optional[int] = None
    phone_numbers: list[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def company_name(self) -> str:
        return self.current_position.company_name if self.current_position else ""


def _localized(value: Any) -> Optional[str]:
    """
    Read a LinkedIn localized field.

    The API returns either a plain string or
    {"localized": {"en_US": "..."}, "preferredLocale": {...}}.
    """
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        localized = value.get("localized")
        if isinstance(localized, dict) and localized:
            if "en_US" in localized:
                return localized["en_US"]
            return next(iter(localized.values()))
    return None


def profile_from_api(profile_id: str, profile_data: dict, email: Optional[str] = None) -> Profile:
    """Map a /people response onto a Profile."""
    position = None
    positions = profile_data.get("positions")
    if isinstance(positions, dict):
        positions = positions.get("values") or positions.get("elements")
    if isinstance(positions, list) and positions:
        current = positions[0] or {}
        company = current.get("company") or {}
        position = CurrentPosition(
            title=_localized(current.get("title")) or "",
            company_name=(_localized(current.get("companyName"))
                          or (company.get("name") if isinstance(company, dict) else None)
                          or ""),
            start_date=str(current["startDate"]) if current.get("startDate") else None,
        )

    vanity_name = profile_data.get("vanityName")
    public_url = profile_data.get("publicProfileUrl")
    if not public_url and vanity_name:
        public_url = f"https://www.linkedin.com/in/{vanity_name}"

    picture = profile_data.get("profilePicture")
    if isinstance(picture, dict):
        picture = picture.get("displayImage")

    phone_numbers = []
    phones = profile_data.get("phoneNumbers")
    if isinstance(phones, dict):
        phones = phones.get("values") or phones.get("elements")
    for entry in phones if isinstance(phones, list) else []:
        number = (entry.get("phoneNumber") or entry.get("number")) if isinstance(entry, dict) else entry
        if isinstance(number, str) and number:
            phone_numbers.append(number)

    connections = profile_data.get("numConnections")
    return Profile(
        id=profile_id,
        first_name=profile_data.get("localizedFirstName") or _localized(profile_data.get("firstName")) or "",
        last_name=profile_data.get("localizedLastName") or _localized(profile_data.get("lastName")) or "",
        headline=profile_data.get("localizedHeadline") or _localized(profile_data.get("headline")),
        summary=_localized(profile_data.get("summary")),
        location=_localized(profile_data.get("location")),
        industry=profile_data.get("localizedIndustry") or _localized(profile_data.get("industry")),
        profile_picture=picture if isinstance(picture, str) else None,
        public_profile_url=public_url,
        email=email,
        current_position=position,
        connections=connections if isinstance(connections, int) else None,
        phone_numbers=phone_numbers,
    )


def _connection_ref(element: Any) -> Optional[str]:
    """A connection element is either a URN/id string or {"to": ...}."""
    if isinstance(element, str):
        ref = element
    elif isinstance(element, dict):
        ref = element.get("to") or element.get("id")
        if isinstance(ref, dict):
            ref = ref.get("id")
    else:
        return None
    if not isinstance(ref, str) or not ref:
        return None
    # urn:li:person:abc123 -> abc123
    return ref.rsplit(":", 1)[-1]


class LinkedInClient:
    """Client for the LinkedIn REST API. One instance per process."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = get_settings()
        self.client = http_client or httpx.AsyncClient(timeout=self.settings.http_timeout_seconds)

    def _headers(self, access_token: str) -> dict:
        return {
            "Authorization": f"Bearer {access_token}",
            "X-Restli-Protocol-Version": "2.0.0",
        }

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def build_authorization_url(self, user_id: str) -> str:
        """LinkedIn login URL; `state` carries the user id back to the callback."""
        state = base64.urlsafe_b64encode(json.dumps({"user_id": user_id}).encode()).decode()
        params = {
            "response_type": "code",
            "client_id": self.settings.linkedin_client_id,
            "redirect_uri": self.redirect_uri,
            "state": state,
            "scope": OAUTH_SCOPES,
        }
        return f"{self.settings.linkedin_oauth_base_url}/authorization?{urlencode(params)}"

    @property
    def redirect_uri(self) -> str:
        return f"{self.settings.app_url.rstrip('/')}/linkedin/callback"

    @staticmethod
    def parse_state(state: str) -> str:
        """Decode the OAuth state back to the user id. Raises ValueError on garbage."""
        try:
            payload = json.loads(base64.urlsafe_b64decode(state.encode()).decode())
        except (ValueError, UnicodeDecodeError) as e:
            raise ValueError(f"Invalid OAuth state: {e}") from e
        user_id = payload.get("user_id") if isinstance(payload, dict) else None
        if not user_id:
            raise ValueError("OAuth state has no user_id")
        return str(user_id)

    async def exchange_code_for_token(self, code: str) -> str:
        response = await self.client.post(
            f"{self.settings.linkedin_oauth_base_url}/accessToken",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "client_id": self.settings.linkedin_client_id,
                "client_secret": self.settings.linkedin_client_secret,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if response.status_code != 200:
            raise UpstreamError(response.status_code, response.text[:200])

        access_token = response.json().get("access_token")
        if not access_token:
            raise UpstreamError(response.status_code, "No access_token in response")
        return access_token

    # ------------------------------------------------------------------
    # Connections and profiles
    # ------------------------------------------------------------------

    async def list_connections(self, access_token: str) -> list[str]:
        """
        Fetch the viewer's first-degree connections.

        Pages through `q=viewer` until a short page or `paging.total` is hit.
        Returns connection refs (member ids).
        """
        refs: list[str] = []
        start = 0

        while True:
            response = await self.client.get(
                f"{self.settings.linkedin_api_base_url}/connections",
                params={"q": "viewer", "start": start, "count": CONNECTIONS_PAGE_SIZE},
                headers=self._headers(access_token),
            )
            if not response.is_success:
                raise UpstreamError(response.status_code, response.text[:200])

            data = response.json()
            elements = data.get("elements") or []
            for element in elements:
                ref = _connection_ref(element)
                if ref:
                    refs.append(ref)

            start += len(elements)
            total = (data.get("paging") or {}).get("total")
            if len(elements) < CONNECTIONS_PAGE_SIZE or (isinstance(total, int) and start >= total):
                break

        logger.info(f"Fetched {len(refs)} connections")
        return refs

    async def fetch_profile(self, connection_ref: str, access_token: str) -> Profile:
        """
        Fetch profile detail and the email lookup, merged into one Profile.

        The email lookup is scoped to the token, so for connections it
        returns the viewer's own address; callers treat it as a fallback.

        A failed profile call raises UpstreamError; a failed email lookup
        only leaves `email` empty.
        """
        profile_response = await self.client.get(
            f"{self.settings.linkedin_api_base_url}/people/(id:{connection_ref})",
            headers=self._headers(access_token),
        )
        if not profile_response.is_success:
            raise UpstreamError(profile_response.status_code, profile_response.text[:200])

        email = await self._fetch_email(connection_ref, access_token)
        return profile_from_api(connection_ref, profile_response.json(), email=email)

    async def _fetch_email(self, connection_ref: str, access_token: str) -> Optional[str]:
        try:
            response = await self.client.get(
                f"{self.settings.linkedin_api_base_url}/emailAddress",
                params={"q": "members", "projection": "(elements*(handle~))"},
                headers=self._headers(access_token),
            )
        except httpx.HTTPError as e:
            logger.warning(f"Email lookup failed for {connection_ref}: {e}")
            return None

        if not response.is_success:
            logger.debug(f"Email lookup for {connection_ref} returned {response.status_code}")
            return None

        elements = response.json().get("elements") or []
        if not elements:
            return None
        handle = elements[0].get("handle~") or {}
        email = handle.get("emailAddress")
        return email if isinstance(email, str) and email else None

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()


# Singleton instance
_linkedin_client: Optional[LinkedInClient] = None


def get_linkedin_client() -> LinkedInClient:
    global _linkedin_client
    if _linkedin_client is None:
        _linkedin_client = LinkedInClient()
    return _linkedin_client
