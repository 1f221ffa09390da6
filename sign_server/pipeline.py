"""
Authorization and signing pipeline for POST /sign.

validate -> resolve identity -> (allow-list) -> build claims -> sign -> maybe elevate
-> (demote + re-sign) -> respond.

A failed or empty ZAK fetch never blocks the meeting: the caller is demoted to attendee and the
claims are re-signed with the same iat/exp.
"""
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import ValidationError

from sign_server.errors import (
    InternalSignError,
    InvalidBodyError,
    MeetingForbiddenError,
    SignError,
    UnknownIdentityError,
)
from sign_server.identity import ROLE_ATTENDEE, ROLE_HOST, AdaloIdentityResolver, TrustedIdentity
from sign_server.schemas import SignRequest
from sign_server.signing import Claims, build_claims, sign_claims
from sign_server.zoom_api import ElevationResult, ElevationStatus, ZakFetcher

logger = logging.getLogger(__name__)


@dataclass
class SignedResponse:
    signature: str
    sdk_key: str
    role: int
    zak: str | None = None
    demoted: bool = False
    uuid: str | None = None
    meeting_number: str | None = None

    def to_dict(self) -> dict:
        body = {"signature": self.signature, "sdkKey": self.sdk_key}
        if self.role == ROLE_HOST and isinstance(self.zak, str) and self.zak.strip():
            body["zak"] = self.zak
        return body


def parse_sign_request(raw_body: bytes) -> SignRequest:
    """Parse and validate the JSON body. Raises InvalidBodyError (400)."""
    try:
        data = json.loads(raw_body) if raw_body else {}
    except (ValueError, UnicodeDecodeError, RecursionError):
        # RecursionError: nesting too deep for the decoder
        raise InvalidBodyError([{"type": "json_invalid", "loc": [], "msg": "Body is not valid JSON"}])
    if not isinstance(data, dict):
        raise InvalidBodyError([{"type": "model_type", "loc": [], "msg": "Body must be a JSON object"}])
    try:
        return SignRequest.model_validate(data)
    except ValidationError as e:
        raise InvalidBodyError(e.errors(include_url=False, include_context=False, include_input=False))


def check_meeting_allowed(identity: TrustedIdentity, meeting_number: str) -> None:
    """Allow-list enforcement: the record must list the meeting. No list means no meetings."""
    if not identity.allowed_meetings or meeting_number not in identity.allowed_meetings:
        raise MeetingForbiddenError()


def apply_elevation(claims: Claims, result: ElevationResult) -> tuple[Claims, str | None]:
    """Keep host claims with the ZAK on OK; otherwise demote to attendee and drop any token."""
    if result.status is ElevationStatus.OK:
        return claims, result.token
    return claims.demoted(), None


class SignPipeline:
    def __init__(
        self,
        resolver: AdaloIdentityResolver,
        zak_fetcher: ZakFetcher,
        *,
        sdk_key: str,
        sdk_secret: str,
        ttl_seconds: int,
        enforce_allowed_meetings: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self._resolver = resolver
        self._zak_fetcher = zak_fetcher
        self._sdk_key = sdk_key
        self._sdk_secret = sdk_secret
        self._ttl_seconds = ttl_seconds
        self._enforce_allowed_meetings = enforce_allowed_meetings
        self._clock = clock

    async def handle(self, raw_body: bytes) -> SignedResponse:
        """
        Returns the signed response or raises a SignError:
        InvalidBodyError (400), UnknownIdentityError (401), MeetingForbiddenError (403),
        InternalSignError (500) for anything unexpected.
        """
        try:
            return await self._sign(parse_sign_request(raw_body))
        except SignError:
            raise
        except Exception:
            logger.exception("Sign request failed")
            raise InternalSignError()

    async def _sign(self, req: SignRequest) -> SignedResponse:
        mn = str(req.meeting_number)
        logger.info("Sign request: uuid=%s meeting=%s video_webrtc_mode=%s", req.uuid, mn, req.video_webrtc_mode)

        identity = await self._resolver.resolve(req.uuid)
        if identity is None:
            logger.warning("Unknown user for uuid=%s", req.uuid)
            raise UnknownIdentityError()

        if self._enforce_allowed_meetings:
            try:
                check_meeting_allowed(identity, mn)
            except MeetingForbiddenError:
                logger.warning("Meeting %s not in allow-list for uuid=%s", mn, req.uuid)
                raise

        claims = build_claims(
            app_key=self._sdk_key,
            meeting_number=mn,
            role=identity.role,
            video_webrtc_mode=req.video_webrtc_mode,
            ttl_seconds=self._ttl_seconds,
            now=self._clock(),
        )
        signature = sign_claims(claims, self._sdk_secret)

        zak = None
        demoted = False
        if identity.is_host and identity.zoom_email:
            result = await self._zak_fetcher.fetch(identity.zoom_email)
            claims, zak = apply_elevation(claims, result)
            if claims.role == ROLE_ATTENDEE:
                demoted = True
                signature = sign_claims(claims, self._sdk_secret)
                logger.warning("Demoted uuid=%s to attendee (%s)", req.uuid, result.status.value)
        else:
            logger.info("Skipping ZAK fetch (role=%s, zoom_email_present=%s)", identity.role, bool(identity.zoom_email))

        logger.info("Signed uuid=%s final_role=%s has_zak=%s", req.uuid, claims.role, zak is not None)
        return SignedResponse(
            signature=signature,
            sdk_key=self._sdk_key,
            role=claims.role,
            zak=zak,
            demoted=demoted,
            uuid=req.uuid,
            meeting_number=mn,
        )
