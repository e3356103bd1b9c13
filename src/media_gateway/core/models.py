"""Shared data models for the media gateway."""

import time
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, StrictStr


class ServiceOperation(str, Enum):
    """Operations that call a remote and carry a response contract."""

    GENERATE_SIGNATURE = "CLOUDINARY GENERATE SIGNATURE"
    UPLOAD_IMAGE = "CLOUDINARY UPLOAD IMAGE"


class ControlOperation(str, Enum):
    """Operations that orchestrate or guard; never schema-validated."""

    UPLOAD = "upload"
    VALIDATE_FILE = "validate file"


Operation = Union[ServiceOperation, ControlOperation]


class RunStatus(str, Enum):
    """Outcome of a single pipeline run."""

    SUCCESS = "success"
    ERROR = "error"
    INCONCLUSIVE = "inconclusive"


class UploadFile(BaseModel):
    """An already-extracted file handed over by the boundary layer."""

    filename: str
    content_type: str
    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)


class CredentialBundle(BaseModel):
    """Single-use signed parameters authorizing one upload."""

    upload_preset: StrictStr
    timestamp: StrictStr
    signature: StrictStr
    api_key: StrictStr


class RemoteResponse(BaseModel):
    """Uniform envelope returned by the signer and the CDN."""

    status_code: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def media_type(self) -> str:
        """Content-Type without parameters such as charset."""
        content_type = self.header("Content-Type") or ""
        return content_type.split(";")[0].strip().lower()


class OutboundRequest(BaseModel):
    """Request handed to a transport."""

    method: str = "POST"
    url: str
    form: Dict[str, str] = Field(default_factory=dict)
    multipart: bool = False
    headers: Dict[str, str] = Field(default_factory=dict)


class UploadResult(BaseModel):
    """Result returned to the boundary layer after a successful upload."""

    message: str
    url: str


class PipelineRun(BaseModel):
    """Ephemeral state of one pipeline invocation."""

    operation: str
    started_at: float = Field(default_factory=time.time)
    status: RunStatus = RunStatus.INCONCLUSIVE
    elapsed_ms: float = 0.0

    def settle(self, status: RunStatus) -> None:
        self.status = status
        self.elapsed_ms = (time.time() - self.started_at) * 1000
