# tests/core/test_error_handling.py

import json

import pytest
from pydantic import ValidationError

from media_gateway.core.errors import (
    AlreadyNormalized,
    ErrorNormalizer,
    RemoteStatusFailure,
    SchemaFailure,
    UnexpectedFailure,
    classify,
    extract_remote_message,
    extract_remote_suggestions,
    map_remote_status,
)
from media_gateway.core.exceptions import (
    DEFAULT_SUGGESTIONS,
    ErrorKind,
    NormalizedError,
    SchemaValidationError,
    TransportError,
)
from media_gateway.core.models import ControlOperation, CredentialBundle, ServiceOperation
from media_gateway.testing import FakeLogger


@pytest.fixture
def logger():
    return FakeLogger()


@pytest.fixture
def normalizer(logger):
    return ErrorNormalizer(logger)


def _raw_validation_error():
    try:
        CredentialBundle.model_validate(
            {"timestamp": "111", "signature": "sig", "api_key": "key"}
        )
    except ValidationError as exc:
        return exc
    raise AssertionError("expected a validation error")


# --- Tests for classify ---

def test_classify_shapes():
    normalized = NormalizedError(401, "bad key")
    assert classify(normalized) == AlreadyNormalized(normalized)

    schema_error = SchemaValidationError(ServiceOperation.UPLOAD_IMAGE, ["Signature is required for Cloudinary upload"])
    assert classify(schema_error) == SchemaFailure(
        ["Signature is required for Cloudinary upload"], ErrorKind.REMOTE_SCHEMA_VIOLATION
    )

    assert classify(_raw_validation_error()) == SchemaFailure(
        ["upload_preset: Field required"], ErrorKind.MALFORMED_INPUT
    )

    remote = TransportError("boom", status_code=503, body="down")
    assert classify(remote) == RemoteStatusFailure(503, "down")

    assert classify(TransportError("Request to x timed out")) == UnexpectedFailure(
        "Request to x timed out", ErrorKind.REMOTE_UNAVAILABLE
    )
    assert classify(RuntimeError("oops")) == UnexpectedFailure(
        "oops", ErrorKind.INTERNAL_UNEXPECTED
    )


# --- Tests for ErrorNormalizer ---

def test_normalize_is_idempotent(normalizer):
    first = normalizer.normalize(RuntimeError("oops"), ControlOperation.UPLOAD)
    second = normalizer.normalize(first, ControlOperation.UPLOAD)

    assert second is first
    assert second.status_code == 500
    assert second.message == "oops"


def test_schema_failure_reports_first_violation(normalizer):
    error = SchemaValidationError(
        ServiceOperation.GENERATE_SIGNATURE,
        ["Signature is required for Cloudinary upload", "API key is required for Cloudinary upload"],
    )

    normalized = normalizer.normalize(error, ServiceOperation.GENERATE_SIGNATURE)

    assert normalized.status_code == 400
    assert normalized.message == "Signature is required for Cloudinary upload"
    assert normalized.kind == ErrorKind.REMOTE_SCHEMA_VIOLATION
    assert normalized.suggestions == DEFAULT_SUGGESTIONS


def test_schema_failure_without_violations_uses_fallback(normalizer):
    normalized = normalizer.resolve(
        SchemaFailure([], ErrorKind.REMOTE_SCHEMA_VIOLATION), ServiceOperation.UPLOAD_IMAGE
    )

    assert normalized.status_code == 400
    assert normalized.message == "invalid data format for CLOUDINARY UPLOAD IMAGE"


def test_raw_validation_error_is_malformed_input(normalizer):
    normalized = normalizer.normalize(_raw_validation_error(), ServiceOperation.UPLOAD_IMAGE)

    assert normalized.status_code == 400
    assert normalized.kind == ErrorKind.MALFORMED_INPUT
    assert normalized.message == "upload_preset: Field required"


@pytest.mark.parametrize(
    "remote_status,expected_status,expected_kind",
    [
        (400, 400, ErrorKind.MALFORMED_INPUT),
        (401, 401, ErrorKind.UNAUTHORIZED),
        (403, 403, ErrorKind.FORBIDDEN),
        (404, 404, ErrorKind.NOT_FOUND),
        (500, 500, ErrorKind.REMOTE_UNAVAILABLE),
        (501, 500, ErrorKind.REMOTE_UNAVAILABLE),
        (502, 500, ErrorKind.REMOTE_UNAVAILABLE),
        (503, 500, ErrorKind.REMOTE_UNAVAILABLE),
        (504, 500, ErrorKind.REMOTE_UNAVAILABLE),
        (409, 409, ErrorKind.MALFORMED_INPUT),
        (418, 418, ErrorKind.MALFORMED_INPUT),
        (429, 429, ErrorKind.MALFORMED_INPUT),
        (505, 505, ErrorKind.REMOTE_UNAVAILABLE),
    ],
)
def test_remote_status_mapping(normalizer, remote_status, expected_status, expected_kind):
    assert map_remote_status(remote_status) == (expected_status, expected_kind)

    error = TransportError(
        "Request failed", status_code=remote_status, body={"message": "remote says no"}
    )
    normalized = normalizer.normalize(error, ServiceOperation.GENERATE_SIGNATURE)

    assert normalized.status_code == expected_status
    assert normalized.kind == expected_kind
    assert normalized.message == "remote says no"


def test_remote_status_without_message_uses_fallback(normalizer):
    error = TransportError("Request failed", status_code=502, body="<html>Bad Gateway</html>")

    normalized = normalizer.normalize(error, ServiceOperation.UPLOAD_IMAGE)

    assert normalized.status_code == 500
    assert normalized.message == "API request failed with status 502"


def test_remote_suggestions_are_carried_over(normalizer):
    body = json.dumps({"message": "quota exceeded", "suggestions": ["Upgrade your plan"]})
    error = TransportError("Request failed", status_code=429, body=body)

    normalized = normalizer.normalize(error, ServiceOperation.UPLOAD_IMAGE)

    assert normalized.suggestions == ["Upgrade your plan"]
    assert normalized.to_payload() == {
        "message": "quota exceeded",
        "suggestions": ["Upgrade your plan"],
    }


def test_transport_error_without_status_is_remote_unavailable(normalizer):
    normalized = normalizer.normalize(
        TransportError("Request to https://cdn.test timed out"), ServiceOperation.UPLOAD_IMAGE
    )

    assert normalized.status_code == 500
    assert normalized.kind == ErrorKind.REMOTE_UNAVAILABLE
    assert normalized.message == "Request to https://cdn.test timed out"


def test_unexpected_error(normalizer):
    normalized = normalizer.normalize(KeyError("missing"), ControlOperation.UPLOAD)

    assert normalized.status_code == 500
    assert normalized.kind == ErrorKind.INTERNAL_UNEXPECTED
    assert normalized.message == "'missing'"


def test_unexpected_error_without_message_uses_fallback(normalizer):
    normalized = normalizer.normalize(RuntimeError(), ControlOperation.UPLOAD)

    assert normalized.message == "An unexpected error occurred during upload"


def test_normalization_logs_operation(normalizer, logger):
    error = TransportError("Request failed", status_code=401, body={"message": "bad key"})

    normalizer.normalize(error, ServiceOperation.GENERATE_SIGNATURE)

    errors = logger.get_logs("ERROR")
    assert len(errors) == 1
    assert errors[0]["operation"] == "CLOUDINARY GENERATE SIGNATURE"
    assert errors[0]["component"] == "error_normalizer"
    assert errors[0]["remote_status"] == 401
    assert "bad key" in errors[0]["message"]


# --- Tests for remote body extraction ---

@pytest.mark.parametrize(
    "body,expected",
    [
        ({"message": "from dict"}, "from dict"),
        ('{"message": "from json"}', "from json"),
        (b'{"message": "from bytes"}', "from bytes"),
        ('upstream said {"message": "embedded", "code": 7 and then broke', "embedded"),
        ({"message": ""}, None),
        ({"error": "no message"}, None),
        ("plain text", None),
        (None, None),
    ],
)
def test_extract_remote_message(body, expected):
    assert extract_remote_message(body) == expected


def test_extract_remote_suggestions():
    assert extract_remote_suggestions({"suggestions": ["a", "b"]}) == ["a", "b"]
    assert extract_remote_suggestions({"suggestions": []}) is None
    assert extract_remote_suggestions({"suggestions": ["a", 1]}) is None
    assert extract_remote_suggestions("not json") is None
