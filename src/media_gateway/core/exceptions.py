"""Exception hierarchy for the media gateway."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


DEFAULT_SUGGESTIONS = ["Try again later", "Contact support if the issue persists"]


class ErrorKind(str, Enum):
    """Client-facing error taxonomy with the status code each kind carries."""

    MALFORMED_INPUT = "malformed_input"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    REMOTE_SCHEMA_VIOLATION = "remote_schema_violation"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    INTERNAL_UNEXPECTED = "internal_unexpected"

    @property
    def status_code(self) -> int:
        return _KIND_STATUS[self]


_KIND_STATUS = {
    ErrorKind.MALFORMED_INPUT: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.REMOTE_SCHEMA_VIOLATION: 400,
    ErrorKind.REMOTE_UNAVAILABLE: 500,
    ErrorKind.INTERNAL_UNEXPECTED: 500,
}


class MediaGatewayError(Exception):
    """Base exception for all media gateway errors."""


class ConfigurationError(MediaGatewayError):
    """Error raised for invalid or missing configuration."""


class TransportError(MediaGatewayError):
    """Error raised by a transport when a remote call fails.

    ``status_code`` is set when the remote answered with a non-2xx status and
    left ``None`` when no response was received at all (timeouts, refused
    connections).
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}


class SchemaValidationError(MediaGatewayError):
    """Error raised when data does not match a structural contract."""

    def __init__(
        self,
        operation: Any,
        violations: List[str],
        kind: ErrorKind = ErrorKind.REMOTE_SCHEMA_VIOLATION,
    ):
        self.operation = operation
        self.violations = list(violations)
        self.kind = kind
        label = getattr(operation, "value", operation)
        super().__init__(
            self.violations[0] if self.violations else f"invalid data format for {label}"
        )


class NormalizedError(MediaGatewayError):
    """The only error shape surfaced to callers of the pipeline."""

    def __init__(
        self,
        status_code: int,
        message: str,
        kind: ErrorKind = ErrorKind.INTERNAL_UNEXPECTED,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.kind = kind
        self.suggestions = (
            list(suggestions) if suggestions is not None else list(DEFAULT_SUGGESTIONS)
        )

    @property
    def identity(self) -> tuple:
        return (self.status_code, self.message)

    def to_payload(self) -> Dict[str, Any]:
        """Flat body handed to the boundary layer."""
        return {"message": self.message, "suggestions": list(self.suggestions)}

    def __repr__(self) -> str:
        return (
            f"NormalizedError(status_code={self.status_code}, "
            f"message={self.message!r}, kind={self.kind.value})"
        )
