"""Operation-keyed response contracts and the parser that applies them."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Type, Union, assert_never
from urllib.parse import parse_qsl

from pydantic import BaseModel, Field, StrictStr, ValidationError

from .exceptions import ErrorKind, SchemaValidationError
from .models import CredentialBundle, RemoteResponse, ServiceOperation

FORM_URLENCODED = "application/x-www-form-urlencoded"
JSON_CONTENT = "application/json"

SUCCESS_STATUSES = (200, 201)


class MessageBody(BaseModel):
    """Minimal body every remote answer carries."""

    message: StrictStr


class ErrorBody(MessageBody):
    """Shared error contract for every non-success status."""

    suggestions: Optional[List[StrictStr]] = None


class UploadImageBody(MessageBody):
    """Success body returned by the CDN proxy."""

    url: StrictStr = Field(min_length=1)


class SignatureBody(CredentialBundle):
    """Success body returned by the signing authority."""

    upload_preset: StrictStr = Field(min_length=1)
    timestamp: StrictStr = Field(min_length=1)
    signature: StrictStr = Field(min_length=1)
    api_key: StrictStr = Field(min_length=1)


def _field_messages(label: str) -> Dict[str, str]:
    required = f"{label} is required for Cloudinary upload"
    return {
        "missing": required,
        "string_too_short": required,
        "string_type": f"{label} must be a string",
    }


CREDENTIAL_FIELD_MESSAGES = {
    "upload_preset": _field_messages("Upload preset"),
    "timestamp": _field_messages("Timestamp"),
    "signature": _field_messages("Signature"),
    "api_key": _field_messages("API key"),
}

UPLOAD_FIELD_MESSAGES = {
    "url": {
        "missing": "Upload response is missing the image URL",
        "string_too_short": "Upload response is missing the image URL",
        "string_type": "Image URL must be a string",
    },
}


@dataclass(frozen=True)
class ResponseContract:
    """Success contract of one service operation."""

    body_model: Type[BaseModel]
    content_type: str
    content_type_message: str
    field_messages: Dict[str, Dict[str, str]] = field(default_factory=dict)
    violation_kind: ErrorKind = ErrorKind.REMOTE_SCHEMA_VIOLATION


SIGNATURE_CONTRACT = ResponseContract(
    body_model=SignatureBody,
    content_type=FORM_URLENCODED,
    content_type_message="Signature response must be form-encoded",
    field_messages=CREDENTIAL_FIELD_MESSAGES,
    violation_kind=ErrorKind.MALFORMED_INPUT,
)

UPLOAD_IMAGE_CONTRACT = ResponseContract(
    body_model=UploadImageBody,
    content_type=JSON_CONTENT,
    content_type_message="Upload response must be JSON",
    field_messages=UPLOAD_FIELD_MESSAGES,
)


@dataclass(frozen=True)
class ParsedSuccess:
    """A remote response that matched its operation's success contract."""

    operation: ServiceOperation
    status_code: int
    headers: Dict[str, str]
    body: BaseModel
    raw_body: Any


@dataclass(frozen=True)
class ParsedError:
    """A remote response that matched the shared error contract."""

    operation: ServiceOperation
    status_code: int
    headers: Dict[str, str]
    body: ErrorBody


ParsedResponse = Union[ParsedSuccess, ParsedError]


def contract_for(operation: ServiceOperation) -> ResponseContract:
    """Select the success contract for a service operation."""
    match operation:
        case ServiceOperation.GENERATE_SIGNATURE:
            return SIGNATURE_CONTRACT
        case ServiceOperation.UPLOAD_IMAGE:
            return UPLOAD_IMAGE_CONTRACT
        case _:
            assert_never(operation)


def describe_violations(
    exc: ValidationError, field_messages: Optional[Dict[str, Dict[str, str]]] = None
) -> List[str]:
    """Turn pydantic errors into human readable constraint descriptions."""
    field_messages = field_messages or {}
    violations = []
    for error in exc.errors():
        loc = error.get("loc", ())
        name = str(loc[0]) if loc else ""
        message = field_messages.get(name, {}).get(error["type"])
        if message is None:
            location = ".".join(str(part) for part in loc)
            message = f"{location}: {error['msg']}" if location else error["msg"]
        violations.append(message)
    return violations


def decode_body(operation: ServiceOperation, response: RemoteResponse) -> Any:
    """Decode a string body as form pairs or JSON according to Content-Type."""
    body = response.body
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if not isinstance(body, str):
        return body

    if response.media_type == FORM_URLENCODED:
        return dict(parse_qsl(body, keep_blank_values=True))

    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(
            operation, [f"Response body for {operation.value} is not valid JSON"]
        ) from exc


def parse(
    operation: ServiceOperation, raw: Union[RemoteResponse, Mapping[str, Any]]
) -> ParsedResponse:
    """
    Validate a raw remote response against the operation's contracts.

    Status 200 and 201 select the operation's success contract, every other
    status selects the shared error contract.

    Raises:
        SchemaValidationError: If the response matches neither contract.
    """
    if not isinstance(raw, RemoteResponse):
        try:
            raw = RemoteResponse.model_validate(raw)
        except ValidationError as exc:
            raise SchemaValidationError(operation, describe_violations(exc)) from exc

    body = decode_body(operation, raw)

    if raw.status_code not in SUCCESS_STATUSES:
        try:
            error_body = ErrorBody.model_validate(body)
        except ValidationError as exc:
            raise SchemaValidationError(operation, describe_violations(exc)) from exc
        return ParsedError(
            operation=operation,
            status_code=raw.status_code,
            headers=dict(raw.headers),
            body=error_body,
        )

    contract = contract_for(operation)
    violations: List[str] = []
    parsed_body = None
    try:
        parsed_body = contract.body_model.model_validate(body)
    except ValidationError as exc:
        violations.extend(describe_violations(exc, contract.field_messages))

    if raw.media_type != contract.content_type:
        violations.append(contract.content_type_message)

    if violations:
        raise SchemaValidationError(operation, violations, kind=contract.violation_kind)

    return ParsedSuccess(
        operation=operation,
        status_code=raw.status_code,
        headers=dict(raw.headers),
        body=parsed_body,
        raw_body=raw.body,
    )


def decode_credential_bundle(encoded: str) -> CredentialBundle:
    """
    Decompose a URL-encoded credential bundle into its four fields.

    Raises:
        SchemaValidationError: With kind MALFORMED_INPUT if any field is
            missing or empty.
    """
    pairs = dict(parse_qsl(encoded or "", keep_blank_values=True))
    try:
        bundle = SignatureBody.model_validate(pairs)
    except ValidationError as exc:
        raise SchemaValidationError(
            ServiceOperation.UPLOAD_IMAGE,
            describe_violations(exc, CREDENTIAL_FIELD_MESSAGES),
            kind=ErrorKind.MALFORMED_INPUT,
        ) from exc
    return CredentialBundle(**bundle.model_dump())
