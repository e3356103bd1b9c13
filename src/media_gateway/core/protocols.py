"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Protocol

from .models import OutboundRequest, RemoteResponse, UploadFile
from .observability import LogContext


class TransportProtocol(Protocol):
    """Protocol for the client used to reach the signer and the CDN.

    Implementations return the response for 2xx statuses and raise
    ``TransportError`` otherwise.
    """

    async def send(self, request: OutboundRequest) -> RemoteResponse:
        """Send a request and return the remote response."""
        ...


class ResponseSink(Protocol):
    """Protocol for the boundary object that writes a reply to the caller."""

    def deliver(self, status_code: int, payload: Dict[str, Any]) -> None:
        """Write one reply."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class SignatureService(ABC):
    """Abstract service obtaining upload credentials."""

    @abstractmethod
    async def get_signature(
        self, file: UploadFile, context: Optional[LogContext] = None
    ) -> str:
        """Return the URL-encoded credential bundle for one upload."""
        ...


class UploadService(ABC):
    """Abstract service pushing a file to the CDN."""

    @abstractmethod
    async def upload_image(
        self,
        credential_bundle: str,
        file: UploadFile,
        context: Optional[LogContext] = None,
    ) -> Any:
        """Upload a file authorized by a credential bundle."""
        ...
