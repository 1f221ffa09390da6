"""
Sign server configuration. Secrets come from the environment only; nothing sensitive in this file.
The app refuses to start while any REQUIRED_ENV value is missing (see main.lifespan).
"""
import os
from collections.abc import Mapping

REQUIRED_ENV = (
    "ZOOM_MEETING_SDK_KEY",
    "ZOOM_MEETING_SDK_SECRET",
    "ADALO_API_KEY",
    "ADALO_APP_ID",
    "ADALO_COLLECTION_ID",
    "ZOOM_CLIENT_ID",
    "ZOOM_CLIENT_SECRET",
    "ZOOM_ACCOUNT_ID",
)

# Meeting SDK app credentials: key goes into the claims, secret signs them (HS256)
SDK_KEY = os.environ.get("ZOOM_MEETING_SDK_KEY", "")
SDK_SECRET = os.environ.get("ZOOM_MEETING_SDK_SECRET", "")

# Identity store (Adalo collection holding the user records)
ADALO_API_BASE = os.environ.get("ADALO_API_BASE", "https://api.adalo.com/v0").rstrip("/")
ADALO_API_KEY = os.environ.get("ADALO_API_KEY", "")
ADALO_APP_ID = os.environ.get("ADALO_APP_ID", "")
ADALO_COLLECTION_ID = os.environ.get("ADALO_COLLECTION_ID", "")

# Server-to-server OAuth app used to fetch ZAKs for hosts
ZOOM_OAUTH_TOKEN_URL = os.environ.get("ZOOM_OAUTH_TOKEN_URL", "https://zoom.us/oauth/token")
ZOOM_API_BASE = os.environ.get("ZOOM_API_BASE", "https://api.zoom.us/v2").rstrip("/")
ZOOM_CLIENT_ID = os.environ.get("ZOOM_CLIENT_ID", "")
ZOOM_CLIENT_SECRET = os.environ.get("ZOOM_CLIENT_SECRET", "")
ZOOM_ACCOUNT_ID = os.environ.get("ZOOM_ACCOUNT_ID", "")

# Meeting SDK rejects signatures living less than 30 minutes or more than 48 hours
SIGN_EXP_MIN_SECONDS = 1800
SIGN_EXP_MAX_SECONDS = 172800


def clamp_ttl(seconds: int) -> int:
    """Bound the signature lifetime to what the Meeting SDK accepts."""
    return max(SIGN_EXP_MIN_SECONDS, min(SIGN_EXP_MAX_SECONDS, seconds))


SIGN_EXP_SECONDS = clamp_ttl(int(os.environ.get("SIGN_EXP_SECONDS", "3600")))

# Outbound calls (identity lookup, OAuth, ZAK). Bounded so a stuck upstream cannot hang a request.
UPSTREAM_TIMEOUT_SECONDS = float(os.environ.get("UPSTREAM_TIMEOUT_SECONDS", "10"))

# Browser origins allowed to call POST /sign (comma-separated). Empty = same-origin / non-browser only.
CORS_ALLOWLIST = [o.strip() for o in os.environ.get("CORS_ALLOWLIST", "").split(",") if o.strip()]

# Per-IP rate limit: RATE_LIMIT_MAX requests per RATE_LIMIT_WINDOW_SECONDS (default 60 per 10 min)
RATE_LIMIT_MAX = int(os.environ.get("RATE_LIMIT_MAX", "60"))
RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", "600"))

# Behind one reverse proxy: take the client IP from X-Forwarded-For
TRUST_PROXY = os.environ.get("TRUST_PROXY", "").strip().lower() in ("1", "true", "yes")

# Reject hosts/attendees whose record does not list the requested meeting (403)
ENFORCE_ALLOWED_MEETINGS = os.environ.get("ENFORCE_ALLOWED_MEETINGS", "").strip().lower() in ("1", "true", "yes")

# Audit log storage (SQLite by default). No credentials or tokens are ever written.
DATABASE_URL = os.environ.get("SIGN_DATABASE_URL", "sqlite:///./sign_server.db")

# Bearer token for GET /audit; unset disables the endpoint
AUDIT_API_TOKEN = os.environ.get("AUDIT_API_TOKEN", "").strip() or None

PORT = int(os.environ.get("PORT", "4000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def missing_required(environ: Mapping[str, str] = os.environ) -> list[str]:
    """Names of required variables that are unset or blank."""
    return [name for name in REQUIRED_ENV if not (environ.get(name) or "").strip()]
