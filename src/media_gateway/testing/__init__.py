"""Testing utilities and fakes for the media gateway."""

from .fakes import (
    SIGNATURE_URL,
    UPLOAD_URL,
    UPLOAD_PRESET,
    FakeTransport,
    FakeResponseSink,
    FakeLogger,
    signature_response,
    cdn_response,
    error_response,
    create_test_image,
    create_test_file,
    create_test_config,
    setup_test_gateway_environment,
)

__all__ = [
    "SIGNATURE_URL",
    "UPLOAD_URL",
    "UPLOAD_PRESET",
    "FakeTransport",
    "FakeResponseSink",
    "FakeLogger",
    "signature_response",
    "cdn_response",
    "error_response",
    "create_test_image",
    "create_test_file",
    "create_test_config",
    "setup_test_gateway_environment",
]
