"""Error taxonomy shared by every request path.

Each error carries a human-readable ``message`` that is safe to show to the
caller, the HTTP status it maps to, and a ``severity`` class:

* ``warning`` - the caller can fix the request and retry.
* ``error`` - an upstream or transient failure.
* ``fatal`` - the deployment itself is misconfigured.
"""

from __future__ import annotations

from typing import Literal

Severity = Literal["warning", "error", "fatal"]


class ServiceError(RuntimeError):
    """Base error rendered as ``{"error": message}`` at the request boundary."""

    status_code: int = 500
    severity: Severity = "error"
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Raised when request input is missing or malformed."""

    status_code = 400
    severity = "warning"
    default_message = "Invalid request."


class ConflictError(ServiceError):
    """Raised when registering an email that already has an account."""

    status_code = 400
    severity = "warning"
    default_message = "An account with this email already exists."


class Unauthorized(ServiceError):
    """Raised for missing, invalid or expired credentials."""

    status_code = 401
    severity = "warning"
    default_message = "Unauthorized."


class InvalidRequest(ServiceError):
    """Raised when the upstream provider rejects the request itself."""

    status_code = 400
    severity = "warning"
    default_message = "Invalid request for TTS generation. Adjust text or voice and retry."


class QuotaExceeded(ServiceError):
    """Raised when a request would push an identity past its daily limit."""

    status_code = 429
    severity = "warning"

    def __init__(self, used: int, limit: int) -> None:
        self.used = used
        self.limit = limit
        super().__init__(
            f"Daily character limit reached ({used}/{limit}). Try again tomorrow."
        )


class RateLimited(ServiceError):
    """Raised when the upstream provider throttles us."""

    status_code = 429
    severity = "error"
    default_message = "Rate limit reached. Try again shortly."


class UpstreamUnavailable(ServiceError):
    """Raised for network failures, unexpected statuses and empty audio."""

    status_code = 502
    severity = "error"
    default_message = "The speech provider could not generate audio right now."


class ServerMisconfigured(ServiceError):
    """Raised when a required credential or secret is missing."""

    status_code = 500
    severity = "fatal"
    default_message = "Server is misconfigured."


__all__ = [
    "ConflictError",
    "InvalidRequest",
    "QuotaExceeded",
    "RateLimited",
    "ServerMisconfigured",
    "ServiceError",
    "Severity",
    "Unauthorized",
    "UpstreamUnavailable",
    "ValidationError",
]
