"""
Meeting SDK sign server.
POST /sign issues a signature whose role comes from the identity store; hosts also get a ZAK.
Port 4000 by default (PORT).
"""
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from sign_server import config
from sign_server.audit import router as audit_router
from sign_server.database import init_db
from sign_server.identity import AdaloIdentityResolver
from sign_server.pipeline import SignPipeline
from sign_server.security import install_http_security
from sign_server.sign_endpoint import router as sign_router
from sign_server.zoom_api import AccessTokenCache, ZakFetcher

logger = logging.getLogger(__name__)


def build_pipeline(http: httpx.AsyncClient) -> SignPipeline:
    """Wire resolver, token cache and ZAK fetcher from configuration around one HTTP client."""
    resolver = AdaloIdentityResolver(
        http,
        api_base=config.ADALO_API_BASE,
        app_id=config.ADALO_APP_ID,
        collection_id=config.ADALO_COLLECTION_ID,
        api_key=config.ADALO_API_KEY,
    )
    token_cache = AccessTokenCache(
        http,
        token_url=config.ZOOM_OAUTH_TOKEN_URL,
        client_id=config.ZOOM_CLIENT_ID,
        client_secret=config.ZOOM_CLIENT_SECRET,
        account_id=config.ZOOM_ACCOUNT_ID,
    )
    return SignPipeline(
        resolver,
        ZakFetcher(http, token_cache, api_base=config.ZOOM_API_BASE),
        sdk_key=config.SDK_KEY,
        sdk_secret=config.SDK_SECRET,
        ttl_seconds=config.SIGN_EXP_SECONDS,
        enforce_allowed_meetings=config.ENFORCE_ALLOWED_MEETINGS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to start on missing configuration; create audit tables; share one HTTP client."""
    missing = config.missing_required()
    if missing:
        for name in missing:
            logger.error("Missing env var: %s", name)
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")
    init_db()
    async with httpx.AsyncClient(timeout=config.UPSTREAM_TIMEOUT_SECONDS) as http:
        app.state.pipeline = build_pipeline(http)
        logger.info("Sign server ready (ttl=%ss, allow-list=%s)", config.SIGN_EXP_SECONDS, config.ENFORCE_ALLOWED_MEETINGS)
        yield


app = FastAPI(title="Sign Server", version="1.0.0", lifespan=lifespan)
install_http_security(app, config.CORS_ALLOWLIST)
app.include_router(sign_router, tags=["sign"])
app.include_router(audit_router)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "sign_server"}


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "sign_server.main:app",
        host="0.0.0.0",
        port=config.PORT,
    )
