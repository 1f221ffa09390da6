"""
Errors raised while handling a sign request.
SignError subclasses map to an HTTP status and a JSON body; UpstreamError subclasses never reach
the caller (the pipeline absorbs them and demotes the role instead).
"""
from typing import Any


class SignError(Exception):
    """A rejection that is reported to the caller with a specific status."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        return {"error": self.message}


class InvalidBodyError(SignError):
    status_code = 400
    message = "Invalid body"

    def __init__(self, details: list[dict[str, Any]] | None = None):
        super().__init__()
        self.details = details or []

    def to_response(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details}


class UnknownIdentityError(SignError):
    """No record for the uuid, or the lookup failed. Deliberately indistinguishable."""

    status_code = 401
    message = "Unknown user"


class MeetingForbiddenError(SignError):
    status_code = 403
    message = "Meeting not allowed"


class InternalSignError(SignError):
    status_code = 500
    message = "Internal server error"


class UpstreamError(Exception):
    """Non-success response from a Zoom endpoint. Carries status and body for logs only."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{self.__class__.__name__}: {status_code} {body}")


class UpstreamAuthError(UpstreamError):
    """OAuth account-credentials exchange failed."""


class UpstreamTokenError(UpstreamError):
    """ZAK request failed."""
