"""Core components of the media gateway."""

from .logging_config import get_component_logger, setup_logger
from .exceptions import (
    DEFAULT_SUGGESTIONS,
    ConfigurationError,
    ErrorKind,
    MediaGatewayError,
    NormalizedError,
    SchemaValidationError,
    TransportError,
)
from .models import (
    ControlOperation,
    CredentialBundle,
    Operation,
    OutboundRequest,
    PipelineRun,
    RemoteResponse,
    RunStatus,
    ServiceOperation,
    UploadFile,
    UploadResult,
)
from .config import GatewayConfig
from .errors import ErrorNormalizer, classify
from .cache import RecentResultCache
from .pipeline import ExecutionPipeline
from .services import MediaUploadService, SignatureClient, UploadClient
from .factories import GatewayFactory

__all__ = [
    "setup_logger",
    "get_component_logger",
    "DEFAULT_SUGGESTIONS",
    "ErrorKind",
    "MediaGatewayError",
    "ConfigurationError",
    "TransportError",
    "SchemaValidationError",
    "NormalizedError",
    "ServiceOperation",
    "ControlOperation",
    "Operation",
    "RunStatus",
    "UploadFile",
    "CredentialBundle",
    "RemoteResponse",
    "OutboundRequest",
    "UploadResult",
    "PipelineRun",
    "GatewayConfig",
    "ErrorNormalizer",
    "classify",
    "RecentResultCache",
    "ExecutionPipeline",
    "SignatureClient",
    "UploadClient",
    "MediaUploadService",
    "GatewayFactory",
]
