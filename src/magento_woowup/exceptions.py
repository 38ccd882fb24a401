"""Error taxonomy for the Magento to WoowUp sync."""

from typing import Any, Dict, Optional


class SyncError(Exception):
    """Base class for every error raised by the sync."""


class ConfigurationError(SyncError):
    """Raised when the sync cannot be wired from the given configuration."""


class RemoteFault(SyncError):
    """
    Fault raised by the source RPC transport.

    Args:
        message: Fault string reported by the remote API
        code: Remote fault code, if any
    """

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(message)


class TransientRemoteFault(RemoteFault):
    """Fault that may succeed on a later attempt (retryable per policy)."""


class SessionExpiredFault(TransientRemoteFault):
    """The remote session token is no longer valid; a new login is needed."""


class PermanentRemoteFault(RemoteFault):
    """Fault that never succeeds on retry, e.g. an authentication failure."""


class DestinationApiError(SyncError):
    """
    Error response from the destination API.

    The destination reports failures with a machine-readable ``code`` and
    either a ``payload.errors`` list or a ``message`` field.
    """

    def __init__(
        self,
        status_code: Optional[int],
        code: Optional[str] = None,
        message: str = "",
        body: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.body = body or {}
        super().__init__(f"[{status_code}] {code}: {message}")

    @classmethod
    def from_body(cls, status_code: Optional[int], body: Any) -> "DestinationApiError":
        """Decode a destination error body in either of its two shapes."""
        if not isinstance(body, dict):
            return cls(status_code, None, str(body or ""), {})

        code = body.get("code")
        message = ""
        payload = body.get("payload")
        if isinstance(payload, dict) and payload.get("errors"):
            errors = payload["errors"]
            message = str(errors[0]) if isinstance(errors, list) else str(errors)
        elif body.get("message"):
            message = str(body["message"])
        elif isinstance(body.get("errors"), list) and body["errors"]:
            message = str(body["errors"][0])

        return cls(status_code, code, message, body)
