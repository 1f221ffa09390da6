"""Tests for identity record lookup and role/contact normalization."""
import asyncio

import httpx
import pytest

from sign_server.identity import (
    AdaloIdentityResolver,
    TrustedIdentity,
    normalize_allowed_meetings,
    normalize_contact,
    normalize_role,
)


def _resolver(client: httpx.AsyncClient) -> AdaloIdentityResolver:
    return AdaloIdentityResolver(
        client,
        api_base="https://api.adalo.com/v0",
        app_id="app-1",
        collection_id="coll-1",
        api_key="adalo-test-key",
    )


@pytest.mark.parametrize("value", [1, 1.0, "1", " 1 ", "1.0", True])
def test_normalize_role_host(value):
    assert normalize_role(value) == 1


@pytest.mark.parametrize("value", [None, 0, "0", "", "host", "2", 2, False, [1], {"v": 1}])
def test_normalize_role_attendee(value):
    assert normalize_role(value) == 0


def test_normalize_contact():
    assert normalize_contact("  host@example.com ") == "host@example.com"
    assert normalize_contact("   ") is None
    assert normalize_contact("") is None
    assert normalize_contact(None) is None


@pytest.mark.parametrize("value", [False, True, 0, 12345, {}, [], ["h@x.com"]])
def test_normalize_contact_ignores_non_strings(value):
    assert normalize_contact(value) is None


def test_normalize_allowed_meetings():
    assert normalize_allowed_meetings(None) is None
    assert normalize_allowed_meetings("111, 222;333  444") == ("111", "222", "333", "444")
    assert normalize_allowed_meetings([987654321, "123 456"]) == ("987654321", "123456")
    assert normalize_allowed_meetings("") == ()


def test_resolve_host_record(upstream):
    upstream.records = [{"id": 7, "UUID": "user-abc-123456", "Role": "1", "ZoomEmail": " h@x.com "}]
    identity = asyncio.run(_resolver(upstream.client()).resolve("  user-abc-123456 "))
    assert identity == TrustedIdentity(role=1, zoom_email="h@x.com", allowed_meetings=None)
    assert identity.is_host

    (req,) = upstream.requests_to("api.adalo.com")
    assert req.method == "GET"
    assert req.url.path == "/v0/apps/app-1/collections/coll-1"
    assert req.url.params["filterKey"] == "UUID"
    assert req.url.params["filterValue"] == "user-abc-123456"
    assert req.url.params["limit"] == "1"
    assert req.headers["Authorization"] == "Bearer adalo-test-key"


def test_resolve_ignores_app_role(upstream):
    upstream.records = [{"UUID": "user-abc-123456", "Role": 0, "AppRole": 1, "ZoomEmail": "h@x.com"}]
    identity = asyncio.run(_resolver(upstream.client()).resolve("user-abc-123456"))
    assert identity.role == 0


def test_resolve_missing_role_is_attendee(upstream):
    upstream.records = [{"UUID": "user-abc-123456"}]
    identity = asyncio.run(_resolver(upstream.client()).resolve("user-abc-123456"))
    assert identity == TrustedIdentity(role=0, zoom_email=None)


def test_resolve_reads_allowed_meetings(upstream):
    upstream.records = [{"UUID": "user-abc-123456", "Role": 1, "AllowedMeetings": "987654321,111"}]
    identity = asyncio.run(_resolver(upstream.client()).resolve("user-abc-123456"))
    assert identity.allowed_meetings == ("987654321", "111")


def test_resolve_no_records_returns_none(upstream):
    upstream.records = []
    assert asyncio.run(_resolver(upstream.client()).resolve("user-abc-123456")) is None


def test_resolve_upstream_failure_returns_none(upstream):
    upstream.adalo_status = 403
    assert asyncio.run(_resolver(upstream.client()).resolve("user-abc-123456")) is None


def test_resolve_unparseable_body_returns_none():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")))
    assert asyncio.run(_resolver(client).resolve("user-abc-123456")) is None


def test_resolve_blank_uuid_makes_no_call(upstream):
    assert asyncio.run(_resolver(upstream.client()).resolve("   ")) is None
    assert upstream.requests == []


def test_resolve_transport_error_propagates():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(boom))
    with pytest.raises(httpx.ConnectError):
        asyncio.run(_resolver(client).resolve("user-abc-123456"))
