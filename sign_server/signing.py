"""
Meeting SDK signature: claims model and HS256 signing.
sign_claims is pure; identical claims and secret always give identical signatures.
"""
import dataclasses
from dataclasses import dataclass

import jwt

ALGORITHM = "HS256"
_HEADER = {"typ": "JWT"}


@dataclass(frozen=True)
class Claims:
    app_key: str
    meeting_number: str
    role: int
    iat: int
    exp: int
    video_webrtc_mode: int = 1

    def to_payload(self) -> dict:
        return {
            "appKey": self.app_key,
            "sdkKey": self.app_key,
            "mn": self.meeting_number,
            "role": self.role,
            "iat": self.iat,
            "exp": self.exp,
            "tokenExp": self.exp,
            "video_webrtc_mode": self.video_webrtc_mode,
        }

    def demoted(self) -> "Claims":
        """Same claims as attendee. iat/exp are kept so the expiry window does not drift."""
        return dataclasses.replace(self, role=0)


def build_claims(
    *,
    app_key: str,
    meeting_number: int | str,
    role: int,
    video_webrtc_mode: int,
    ttl_seconds: int,
    now: float,
) -> Claims:
    iat = int(now)
    return Claims(
        app_key=app_key,
        meeting_number=str(meeting_number),
        role=role,
        iat=iat,
        exp=iat + ttl_seconds,
        video_webrtc_mode=video_webrtc_mode,
    )


def sign_claims(claims: Claims, secret: str) -> str:
    token = jwt.encode(claims.to_payload(), secret, algorithm=ALGORITHM, headers=_HEADER)
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return token


def decode_signature(signature: str, secret: str, *, verify_exp: bool = True) -> dict:
    """Verify and decode a signature issued by sign_claims. Raises jwt.InvalidTokenError."""
    return jwt.decode(
        signature,
        secret,
        algorithms=[ALGORITHM],
        options={"verify_exp": verify_exp},
    )
