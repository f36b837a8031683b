"""Exception hierarchy shared by stores, the sync coordinator and the AI gateway."""

from __future__ import annotations

from typing import Any, Optional


class FieldOpsError(Exception):
    """Base error. ``code`` is machine-readable, ``details`` carries context."""

    default_code = "FIELDOPS_000"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(FieldOpsError):
    """A required key or credential is missing; raised before any network call."""

    default_code = "CONFIG_001"


class InvalidRecordError(FieldOpsError):
    """A record failed a field-presence or format check before being stored."""

    default_code = "RECORD_001"


# -- persistence ---------------------------------------------------------------

class RemoteConnectionError(FieldOpsError):
    """Remote session could not be established (network, auth or consent)."""

    default_code = "REMOTE_001"


class StoreError(FieldOpsError):
    """A strict read or a write against a record store failed."""

    default_code = "STORE_001"


class RemoteStoreError(StoreError):
    """A single remote read or write failed."""

    default_code = "REMOTE_002"


class UnsupportedOperationError(FieldOpsError):
    """The authoritative backend does not implement this operation for the collection."""

    default_code = "REMOTE_003"


# -- AI ------------------------------------------------------------------------

class AIServiceError(FieldOpsError):
    """The AI provider failed after all retries or rejected the request."""

    default_code = "AI_001"


class MalformedAIOutputError(AIServiceError):
    """json-mode output could not be parsed or did not match the skill schema."""

    default_code = "AI_002"

    def __init__(self, message: str, raw: str = "", **kwargs: Any):
        details = kwargs.pop("details", {}) or {}
        if raw:
            details["raw"] = raw[:500]
        super().__init__(message, details=details, **kwargs)
