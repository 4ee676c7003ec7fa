"""
Tests for the LinkedIn API client against a mocked transport.

Run with: pytest service/tests/test_linkedin_client.py -v
"""

import asyncio
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from lenddesk.services.linkedin_client import (
    CONNECTIONS_PAGE_SIZE,
    LinkedInClient,
    UpstreamError,
    profile_from_api,
)

PROFILE_JSON = {
    "localizedFirstName": "Jane",
    "localizedLastName": "Doe",
    "localizedHeadline": "Managing Partner at Acme Lending | 555-123-4567",
    "vanityName": "janedoe",
    "positions": {
        "values": [
            {"title": "Managing Partner", "companyName": {"localized": {"en_US": "Acme Lending LLC"}}}
        ]
    },
    "numConnections": 500,
}

EMAIL_JSON = {"elements": [{"handle~": {"emailAddress": "jane@acmelending.com"}}]}


def make_client(handler) -> LinkedInClient:
    return LinkedInClient(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def connection_page(ids, total=None):
    body = {"elements": [{"to": f"urn:li:person:{i}"} for i in ids]}
    if total is not None:
        body["paging"] = {"total": total}
    return body


class TestListConnections:

    def test_single_short_page(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=connection_page(["a1", "b2"]))

        refs = asyncio.run(make_client(handler).list_connections("tok"))

        assert refs == ["a1", "b2"]
        assert len(seen) == 1
        query = parse_qs(urlparse(str(seen[0].url)).query)
        assert query["q"] == ["viewer"]
        assert query["start"] == ["0"]
        assert seen[0].headers["Authorization"] == "Bearer tok"

    def test_pages_until_short_page(self):
        starts = []

        def handler(request: httpx.Request) -> httpx.Response:
            start = int(request.url.params["start"])
            starts.append(start)
            if start == 0:
                return httpx.Response(200, json=connection_page(
                    [f"p{i}" for i in range(CONNECTIONS_PAGE_SIZE)]
                ))
            return httpx.Response(200, json=connection_page(["last"]))

        refs = asyncio.run(make_client(handler).list_connections("tok"))

        assert starts == [0, CONNECTIONS_PAGE_SIZE]
        assert len(refs) == CONNECTIONS_PAGE_SIZE + 1
        assert refs[-1] == "last"

    def test_stops_at_paging_total(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=connection_page(
                [f"p{i}" for i in range(CONNECTIONS_PAGE_SIZE)], total=CONNECTIONS_PAGE_SIZE
            ))

        refs = asyncio.run(make_client(handler).list_connections("tok"))

        assert len(calls) == 1
        assert len(refs) == CONNECTIONS_PAGE_SIZE

    def test_plain_string_elements(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"elements": ["urn:li:person:xyz", "", None]})

        refs = asyncio.run(make_client(handler).list_connections("tok"))
        assert refs == ["xyz"]

    def test_non_success_raises_upstream_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="expired token")

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(make_client(handler).list_connections("tok"))

        assert exc_info.value.status_code == 401
        assert "expired token" in exc_info.value.message


class TestFetchProfile:

    def test_profile_and_email_merged(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/v2/people/"):
                assert "abc123" in request.url.path
                return httpx.Response(200, json=PROFILE_JSON)
            if request.url.path == "/v2/emailAddress":
                return httpx.Response(200, json=EMAIL_JSON)
            return httpx.Response(404)

        profile = asyncio.run(make_client(handler).fetch_profile("abc123", "tok"))

        assert profile.id == "abc123"
        assert profile.full_name == "Jane Doe"
        assert profile.company_name == "Acme Lending LLC"
        assert profile.current_position.title == "Managing Partner"
        assert profile.public_profile_url == "https://www.linkedin.com/in/janedoe"
        assert profile.email == "jane@acmelending.com"
        assert profile.connections == 500

    def test_missing_email_is_not_an_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/v2/people/"):
                return httpx.Response(200, json=PROFILE_JSON)
            return httpx.Response(403, text="scope not granted")

        profile = asyncio.run(make_client(handler).fetch_profile("abc123", "tok"))

        assert profile.first_name == "Jane"
        assert profile.email is None

    def test_email_network_error_is_not_an_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/v2/people/"):
                return httpx.Response(200, json=PROFILE_JSON)
            raise httpx.ConnectError("connection refused", request=request)

        profile = asyncio.run(make_client(handler).fetch_profile("abc123", "tok"))
        assert profile.email is None

    def test_profile_failure_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/v2/people/"):
                return httpx.Response(500, text="upstream exploded")
            return httpx.Response(200, json=EMAIL_JSON)

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(make_client(handler).fetch_profile("abc123", "tok"))
        assert exc_info.value.status_code == 500


class TestProfileFromApi:

    def test_localized_fields(self):
        profile = profile_from_api("p1", {
            "firstName": {"localized": {"en_US": "Omar"}},
            "lastName": {"localized": {"fr_FR": "Haddad"}},
        })
        assert profile.first_name == "Omar"
        assert profile.last_name == "Haddad"
        assert profile.current_position is None
        assert profile.company_name == ""

    def test_phone_numbers_mapped(self):
        profile = profile_from_api("p1", {
            "phoneNumbers": {"values": [
                {"phoneNumber": "(512) 555-0199", "phoneType": "mobile"},
                {"number": "512.555.0100"},
                {"phoneType": "work"},
            ]}
        })
        assert profile.phone_numbers == ["(512) 555-0199", "512.555.0100"]

    def test_no_phone_numbers(self):
        assert profile_from_api("p1", {}).phone_numbers == []

    def test_explicit_public_url_wins_over_vanity_name(self):
        profile = profile_from_api("p1", {
            "publicProfileUrl": "https://www.linkedin.com/in/omar-h",
            "vanityName": "something-else",
        })
        assert profile.public_profile_url == "https://www.linkedin.com/in/omar-h"


class TestOAuth:

    def test_authorization_url_and_state_round_trip(self):
        client = make_client(lambda request: httpx.Response(200))
        url = client.build_authorization_url("user-42")

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.path.endswith("/authorization")
        assert query["response_type"] == ["code"]
        assert query["redirect_uri"] == [client.redirect_uri]
        assert "r_emailaddress" in query["scope"][0]
        assert LinkedInClient.parse_state(query["state"][0]) == "user-42"

    def test_garbage_state_raises_value_error(self):
        with pytest.raises(ValueError):
            LinkedInClient.parse_state("not-base64-json!!")

    def test_exchange_code_for_token(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "li-token", "expires_in": 5184000})

        token = asyncio.run(make_client(handler).exchange_code_for_token("the-code"))

        assert token == "li-token"
        assert seen[0].url.path.endswith("/accessToken")
        assert b"code=the-code" in seen[0].content

    def test_exchange_failure_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "invalid_grant"})

        with pytest.raises(UpstreamError):
            asyncio.run(make_client(handler).exchange_code_for_token("stale"))

    def test_exchange_without_token_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        with pytest.raises(UpstreamError):
            asyncio.run(make_client(handler).exchange_code_for_token("the-code"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
