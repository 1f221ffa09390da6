"""
Identity resolution against the Adalo user collection.
The record's Role attribute is the only source of the meeting role; AppRole and anything the
client sends are ignored.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

ROLE_ATTENDEE = 0
ROLE_HOST = 1

_MEETING_SEPARATORS = re.compile(r"[,;\s]+")


@dataclass(frozen=True)
class TrustedIdentity:
    role: int
    zoom_email: str | None = None
    # None = record carries no allow-list
    allowed_meetings: tuple[str, ...] | None = None

    @property
    def is_host(self) -> bool:
        return self.role == ROLE_HOST


def normalize_role(value: Any) -> int:
    """1 only when the value reads as the number 1 (1, 1.0, "1", " 1 ", True); else 0."""
    if value is None:
        return ROLE_ATTENDEE
    if isinstance(value, bool):
        return ROLE_HOST if value else ROLE_ATTENDEE
    if isinstance(value, (int, float)):
        return ROLE_HOST if value == 1 else ROLE_ATTENDEE
    if isinstance(value, str):
        try:
            return ROLE_HOST if float(value.strip()) == 1 else ROLE_ATTENDEE
        except ValueError:
            return ROLE_ATTENDEE
    return ROLE_ATTENDEE


def normalize_contact(value: Any) -> str | None:
    """Only a non-blank string is a contact; False, 0, lists and objects are not."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def normalize_allowed_meetings(value: Any) -> tuple[str, ...] | None:
    """Accept a list of ids or a comma/whitespace separated string. Spaces inside ids are dropped."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        items = [str(v).replace(" ", "") for v in value if v is not None]
    else:
        items = _MEETING_SEPARATORS.split(str(value))
    return tuple(i.strip() for i in items if i and i.strip())


class AdaloIdentityResolver:
    """Looks a user up by UUID in one Adalo collection (limit 1)."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_base: str,
        app_id: str,
        collection_id: str,
        api_key: str,
    ):
        self._http = http
        self._url = f"{api_base.rstrip('/')}/apps/{app_id}/collections/{collection_id}"
        self._api_key = api_key

    async def resolve(self, uuid: str) -> TrustedIdentity | None:
        """
        Return the caller's trusted identity, or None when the lookup fails or finds nothing.
        Callers must not distinguish the two cases. Transport errors propagate.
        """
        safe_uuid = str(uuid).strip()
        if not safe_uuid:
            return None
        logger.info("Fetching identity record for uuid=%s", safe_uuid)

        r = await self._http.get(
            self._url,
            params={"filterKey": "UUID", "filterValue": safe_uuid, "limit": 1},
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
        )
        if not r.is_success:
            logger.error("Identity lookup failed: status=%s body=%s", r.status_code, r.text[:500])
            return None

        try:
            data = r.json()
        except ValueError:
            data = {}
        records = data.get("records") if isinstance(data, dict) else None
        if not isinstance(records, list) or not records or not isinstance(records[0], dict):
            logger.warning("No identity record for uuid=%s", safe_uuid)
            return None

        record = records[0]
        logger.info(
            "Identity record: id=%s UUID=%s Role=%s ZoomEmail=%s",
            record.get("id"),
            record.get("UUID"),
            record.get("Role"),
            record.get("ZoomEmail"),
        )
        identity = TrustedIdentity(
            role=normalize_role(record.get("Role")),
            zoom_email=normalize_contact(record.get("ZoomEmail")),
            allowed_meetings=normalize_allowed_meetings(record.get("AllowedMeetings")),
        )
        logger.info(
            "Normalized role=%s zoom_email_present=%s", identity.role, identity.zoom_email is not None
        )
        return identity
