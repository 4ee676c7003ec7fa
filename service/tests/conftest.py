"""
Shared test fakes.

Run with: pytest -v   (from the repository root)
"""

import os

# Settings are cached on first use; set test values before any lenddesk import.
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("CHAT_RATE_LIMIT", "1000/minute")
os.environ.setdefault("PDL_API_KEY", "")

import pytest

from lenddesk.services.linkedin_client import CurrentPosition, Profile, UpstreamError


def make_profile(
    profile_id: str = "abc123",
    first_name: str = "Jane",
    last_name: str = "Doe",
    company: str | None = "Acme Lending LLC",
    title: str = "Managing Partner",
    **kwargs
) -> Profile:
    position = CurrentPosition(title=title, company_name=company) if company else None
    kwargs.setdefault("public_profile_url", f"https://www.linkedin.com/in/{profile_id}")
    return Profile(
        id=profile_id,
        first_name=first_name,
        last_name=last_name,
        current_position=position,
        **kwargs
    )


class FakeProvider:
    """CompletionProvider double: canned replies, or raises when `error` is set."""

    name = "fake"

    def __init__(self, replies=None, error: Exception | None = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls: list[dict] = []

    async def complete(self, system_prompt, messages, *, temperature=0.7, max_tokens=1000):
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": [dict(m) for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return "Happy to help with your DSCR loan. What is the property's monthly rent?"


class FakeLinkedIn:
    """LinkedInClient double backed by a dict of profiles."""

    def __init__(self, profiles=None, failing=(), list_error: Exception | None = None):
        self.profiles = {p.id: p for p in (profiles or [])}
        self.refs = list(self.profiles)
        self.failing = set(failing)
        self.list_error = list_error
        self.fetched: list[str] = []

    async def list_connections(self, access_token):
        if self.list_error:
            raise self.list_error
        return list(self.refs)

    async def fetch_profile(self, connection_ref, access_token):
        self.fetched.append(connection_ref)
        if connection_ref in self.failing or connection_ref not in self.profiles:
            raise UpstreamError(500, f"boom for {connection_ref}")
        return self.profiles[connection_ref]


class FakeEnrichment:
    def __init__(self, data=None, error: Exception | None = None):
        self.data = data
        self.error = error
        self.calls = 0

    async def enrich(self, profile):
        self.calls += 1
        if self.error:
            raise self.error
        return self.data


class FakeContactRepository:
    """insert-if-absent on linkedin_url, like the Supabase repository."""

    def __init__(self, existing_urls=(), error_for=()):
        self.rows: list[dict] = []
        self.existing_urls = set(existing_urls)
        self.error_for = set(error_for)

    async def insert_if_absent(self, contact):
        url = contact.get("linkedin_url")
        if url in self.error_for:
            raise RuntimeError("insert failed")
        if url and url in self.existing_urls:
            return False
        if url:
            self.existing_urls.add(url)
        self.rows.append(contact)
        return True


@pytest.fixture
def fake_provider():
    return FakeProvider()
