"""Classification and normalization of pipeline failures.

Every failure that leaves the pipeline goes through two steps: ``classify``
sorts the raised value into one of four failure shapes, and
``ErrorNormalizer.resolve`` maps that shape onto a ``NormalizedError``.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union, assert_never

from pydantic import ValidationError

from .exceptions import (
    ErrorKind,
    NormalizedError,
    SchemaValidationError,
    TransportError,
)
from .models import Operation
from .observability import LogContext
from .protocols import LoggerProtocol
from .schemas import describe_violations


@dataclass(frozen=True)
class AlreadyNormalized:
    error: NormalizedError


@dataclass(frozen=True)
class SchemaFailure:
    violations: List[str]
    kind: ErrorKind


@dataclass(frozen=True)
class RemoteStatusFailure:
    status_code: int
    body: Any


@dataclass(frozen=True)
class UnexpectedFailure:
    message: str
    kind: ErrorKind


Failure = Union[AlreadyNormalized, SchemaFailure, RemoteStatusFailure, UnexpectedFailure]


STATUS_TABLE = {
    400: (400, ErrorKind.MALFORMED_INPUT),
    401: (401, ErrorKind.UNAUTHORIZED),
    403: (403, ErrorKind.FORBIDDEN),
    404: (404, ErrorKind.NOT_FOUND),
    500: (500, ErrorKind.REMOTE_UNAVAILABLE),
    501: (500, ErrorKind.REMOTE_UNAVAILABLE),
    502: (500, ErrorKind.REMOTE_UNAVAILABLE),
    503: (500, ErrorKind.REMOTE_UNAVAILABLE),
    504: (500, ErrorKind.REMOTE_UNAVAILABLE),
}

_EMBEDDED_MESSAGE = re.compile(r'"message"\s*:\s*"((?:[^"\\]|\\.)*)"')


def classify(raw: BaseException) -> Failure:
    """Sort a raised value into one of the four failure shapes."""
    if isinstance(raw, NormalizedError):
        return AlreadyNormalized(raw)
    if isinstance(raw, SchemaValidationError):
        return SchemaFailure(raw.violations, raw.kind)
    if isinstance(raw, ValidationError):
        return SchemaFailure(describe_violations(raw), ErrorKind.MALFORMED_INPUT)
    if isinstance(raw, TransportError):
        if raw.status_code is not None:
            return RemoteStatusFailure(raw.status_code, raw.body)
        return UnexpectedFailure(str(raw), ErrorKind.REMOTE_UNAVAILABLE)
    return UnexpectedFailure(str(raw), ErrorKind.INTERNAL_UNEXPECTED)


def map_remote_status(status_code: int) -> Tuple[int, ErrorKind]:
    """Map a remote status onto the client-facing status and error kind."""
    if status_code in STATUS_TABLE:
        return STATUS_TABLE[status_code]
    if 400 <= status_code < 500:
        return status_code, ErrorKind.MALFORMED_INPUT
    if status_code >= 500:
        return status_code, ErrorKind.REMOTE_UNAVAILABLE
    return status_code, ErrorKind.INTERNAL_UNEXPECTED


def _decode_remote_body(body: Any) -> Any:
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            return body
    return body


def extract_remote_message(body: Any) -> Optional[str]:
    """Pull the ``message`` field out of a remote error body."""
    decoded = _decode_remote_body(body)
    if isinstance(decoded, dict):
        message = decoded.get("message")
        if isinstance(message, str) and message:
            return message
        return None
    if isinstance(decoded, str):
        match = _EMBEDDED_MESSAGE.search(decoded)
        if match and match.group(1):
            return match.group(1)
    return None


def extract_remote_suggestions(body: Any) -> Optional[List[str]]:
    """Pull remediation hints out of a remote error body, if it has any."""
    decoded = _decode_remote_body(body)
    if isinstance(decoded, dict):
        suggestions = decoded.get("suggestions")
        if (
            isinstance(suggestions, list)
            and suggestions
            and all(isinstance(item, str) for item in suggestions)
        ):
            return suggestions
    return None


class ErrorNormalizer:
    """Maps any raised failure onto the client-facing ``NormalizedError``."""

    def __init__(self, logger: LoggerProtocol):
        self._logger = logger

    def normalize(
        self,
        raw: BaseException,
        operation: Operation,
        context: Optional[LogContext] = None,
    ) -> NormalizedError:
        """Classify and normalize a raised failure. Idempotent."""
        return self.resolve(classify(raw), operation, context)

    def resolve(
        self,
        failure: Failure,
        operation: Operation,
        context: Optional[LogContext] = None,
    ) -> NormalizedError:
        label = operation.value
        context = context or LogContext(operation=label, component="error_normalizer")

        match failure:
            case AlreadyNormalized(error=error):
                self._logger.error(
                    f"Error in {label}: {error.message}",
                    context,
                    status_code=error.status_code,
                )
                return error

            case SchemaFailure(violations=violations, kind=kind):
                message = violations[0] if violations else f"invalid data format for {label}"
                self._logger.error(
                    f"Invalid data for {label}: {message}",
                    context,
                    violations=len(violations),
                )
                return NormalizedError(400, message, kind=kind)

            case RemoteStatusFailure(status_code=remote_status, body=body):
                message = (
                    extract_remote_message(body)
                    or f"API request failed with status {remote_status}"
                )
                status_code, kind = map_remote_status(remote_status)
                self._logger.error(
                    f"Failed to {label}: {remote_status} - {message}",
                    context,
                    remote_status=remote_status,
                )
                return NormalizedError(
                    status_code,
                    message,
                    kind=kind,
                    suggestions=extract_remote_suggestions(body),
                )

            case UnexpectedFailure(message=message, kind=kind):
                message = message or f"An unexpected error occurred during {label}"
                self._logger.error(f"Error in {label}: {message}", context)
                return NormalizedError(500, message, kind=kind)

            case _:
                assert_never(failure)
