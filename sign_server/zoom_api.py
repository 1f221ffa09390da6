"""
Zoom REST access for host elevation: server-to-server OAuth token cache and ZAK fetch.

The access token cache is owned by one AccessTokenCache instance (created at app startup).
Refreshes are not serialized: two concurrent requests may both refresh and both tokens remain
valid until their own expiry, which is harmless.
"""
import enum
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from sign_server.errors import UpstreamAuthError, UpstreamError, UpstreamTokenError

logger = logging.getLogger(__name__)

# Refresh this many seconds before the upstream expiry
SAFETY_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class CachedAccessToken:
    token: str
    expires_at: float

    def is_fresh(self, now: float, margin: float = SAFETY_MARGIN_SECONDS) -> bool:
        return now < self.expires_at - margin


class AccessTokenCache:
    """Holds one OAuth access token (account_credentials grant); replaced, never mutated, on refresh."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        token_url: str,
        client_id: str,
        client_secret: str,
        account_id: str,
        clock: Callable[[], float] = time.time,
        safety_margin: float = SAFETY_MARGIN_SECONDS,
    ):
        self._http = http
        self._token_url = token_url
        self._auth = httpx.BasicAuth(client_id, client_secret)
        self._account_id = account_id
        self._clock = clock
        self._safety_margin = safety_margin
        self._cached: CachedAccessToken | None = None

    @property
    def cached(self) -> CachedAccessToken | None:
        return self._cached

    def invalidate(self) -> None:
        self._cached = None

    async def get_access_token(self) -> str:
        now = self._clock()
        cached = self._cached
        if cached is not None and cached.is_fresh(now, self._safety_margin):
            return cached.token

        r = await self._http.post(
            self._token_url,
            params={"grant_type": "account_credentials", "account_id": self._account_id},
            auth=self._auth,
        )
        if not r.is_success:
            raise UpstreamAuthError(r.status_code, r.text)

        try:
            data = r.json()
            token = data["access_token"]
            expires_in = float(data.get("expires_in", 0))
        except (TypeError, KeyError, ValueError, AttributeError, OverflowError):
            raise UpstreamAuthError(r.status_code, "malformed token response")
        if not isinstance(token, str) or not math.isfinite(expires_in):
            raise UpstreamAuthError(r.status_code, "malformed token response")
        expires_in = int(expires_in)
        self._cached = CachedAccessToken(token=token, expires_at=now + expires_in)
        logger.info("Refreshed Zoom access token (expires_in=%s)", expires_in)
        return token


class ElevationStatus(enum.Enum):
    OK = "ok"
    EMPTY_TOKEN = "empty_token"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class ElevationResult:
    """Outcome of a ZAK fetch; only OK carries a usable token."""

    status: ElevationStatus
    token: str | None = None
    reason: str | None = None

    @classmethod
    def ok(cls, token: str) -> "ElevationResult":
        return cls(ElevationStatus.OK, token=token)

    @classmethod
    def empty(cls) -> "ElevationResult":
        return cls(ElevationStatus.EMPTY_TOKEN, reason="empty or invalid token")

    @classmethod
    def failed(cls, reason: str) -> "ElevationResult":
        return cls(ElevationStatus.FETCH_FAILED, reason=reason)


class ZakFetcher:
    """Fetches a ZAK (host elevation token) for a Zoom user id or email."""

    def __init__(self, http: httpx.AsyncClient, token_cache: AccessTokenCache, *, api_base: str):
        self._http = http
        self._token_cache = token_cache
        self._api_base = api_base.rstrip("/")

    async def get_zak(self, user_id: str = "me") -> str | None:
        """Raw token field of the response; may be empty or missing. Raises UpstreamError on failure."""
        access_token = await self._token_cache.get_access_token()
        r = await self._http.get(
            f"{self._api_base}/users/{quote(user_id, safe='@')}/token",
            params={"type": "zak"},
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
        )
        if not r.is_success:
            raise UpstreamTokenError(r.status_code, r.text)
        data = r.json()
        return data.get("token") if isinstance(data, dict) else None

    async def fetch(self, user_id: str) -> ElevationResult:
        try:
            token = await self.get_zak(user_id)
        except (UpstreamError, httpx.HTTPError, ValueError) as e:
            logger.error("ZAK fetch failed for %s: %s", user_id, e)
            return ElevationResult.failed(str(e))
        except Exception as e:
            # Elevation never blocks meeting entry
            logger.exception("Unexpected error fetching ZAK for %s", user_id)
            return ElevationResult.failed(f"{type(e).__name__}: {e}")
        if isinstance(token, str) and token.strip():
            return ElevationResult.ok(token)
        logger.warning("ZAK response for %s had no usable token", user_id)
        return ElevationResult.empty()
