"""
Pytest configuration for sign_server. Required env is set before any sign_server import;
upstream APIs are replaced by an httpx.MockTransport (FakeUpstream).
"""
import os

os.environ["SIGN_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ZOOM_MEETING_SDK_KEY"] = "test-sdk-key"
os.environ["ZOOM_MEETING_SDK_SECRET"] = "test-sdk-secret-0123456789abcdef-0123456789"
os.environ["ADALO_API_KEY"] = "adalo-test-key"
os.environ["ADALO_APP_ID"] = "app-1"
os.environ["ADALO_COLLECTION_ID"] = "coll-1"
os.environ["ZOOM_CLIENT_ID"] = "zoom-client"
os.environ["ZOOM_CLIENT_SECRET"] = "zoom-client-secret"
os.environ["ZOOM_ACCOUNT_ID"] = "acct-1"
for _name in ("SIGN_EXP_SECONDS", "ENFORCE_ALLOWED_MEETINGS", "AUDIT_API_TOKEN", "TRUST_PROXY", "CORS_ALLOWLIST"):
    os.environ.pop(_name, None)

import httpx
import pytest


class FakeUpstream:
    """Adalo + Zoom OAuth + Zoom ZAK endpoints. Records every request it receives."""

    def __init__(self):
        self.records: list[dict] = []
        self.adalo_status = 200
        self.oauth_status = 200
        self.oauth_body: dict | str = {"access_token": "zoom-access-token", "expires_in": 3600}
        self.zak_status = 200
        self.zak_body: dict | str = {"token": "zak-token-abc"}
        self.zak_error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == "api.adalo.com":
            if self.adalo_status != 200:
                return httpx.Response(self.adalo_status, text="adalo error")
            return httpx.Response(200, json={"records": self.records})
        if host == "zoom.us":
            if self.oauth_status != 200:
                return httpx.Response(self.oauth_status, text="invalid_client")
            if isinstance(self.oauth_body, str):
                return httpx.Response(200, text=self.oauth_body)
            return httpx.Response(200, json=self.oauth_body)
        if host == "api.zoom.us":
            if self.zak_error is not None:
                raise self.zak_error
            if self.zak_status != 200:
                return httpx.Response(self.zak_status, text="zoom error")
            if isinstance(self.zak_body, str):
                return httpx.Response(200, text=self.zak_body)
            return httpx.Response(200, json=self.zak_body)
        return httpx.Response(404)

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def upstream():
    return FakeUpstream()
