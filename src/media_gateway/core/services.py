"""Signature, upload and orchestration services."""

import base64
from typing import Optional
from urllib.parse import urlencode

from .cache import fingerprint
from .exceptions import ErrorKind, MediaGatewayError, SchemaValidationError
from .models import (
    ControlOperation,
    CredentialBundle,
    OutboundRequest,
    ServiceOperation,
    UploadFile,
    UploadResult,
)
from .observability import LogContext
from .pipeline import ExecutionPipeline
from .protocols import (
    LoggerProtocol,
    ResponseSink,
    SignatureService,
    TransportProtocol,
    UploadService,
)
from .schemas import FORM_URLENCODED, UploadImageBody, decode_credential_bundle

UPLOAD_SUCCESS_MESSAGE = "Image uploaded successfully"


def request_fingerprint(file: UploadFile) -> str:
    """Content hash identifying one upload request in dedup keys."""
    return fingerprint(
        {
            "filename": file.filename,
            "content_type": file.content_type,
            "payload": file.payload,
        }
    )


class SignatureClient(SignatureService):
    """Obtains a one-time credential bundle from the signing authority."""

    def __init__(
        self,
        transport: TransportProtocol,
        pipeline: ExecutionPipeline,
        endpoint: str,
        upload_preset: str,
        logger: LoggerProtocol,
    ):
        self._transport = transport
        self._pipeline = pipeline
        self._endpoint = endpoint
        self._upload_preset = upload_preset
        self._logger = logger

    def build_request(self, file: UploadFile) -> OutboundRequest:
        """URL-encoded request carrying the upload preset and the filename."""
        return OutboundRequest(
            url=self._endpoint,
            form={"upload_preset": self._upload_preset, "filename": file.filename},
            headers={"Content-Type": FORM_URLENCODED},
        )

    async def get_signature(
        self, file: UploadFile, context: Optional[LogContext] = None
    ) -> str:
        """
        Request a signature for ``file``.

        Returns:
            The validated response body, itself a URL-encoded credential
            bundle, passed through verbatim.
        """
        if context is None:
            context = LogContext(component="signature_client")
        context = context.with_operation(
            ServiceOperation.GENERATE_SIGNATURE.value
        ).with_metadata(filename=file.filename)
        self._logger.info("Requesting signature", context)

        request = self.build_request(file)

        async def send():
            response = await self._transport.send(request)
            if 200 < response.status_code < 300:
                raise MediaGatewayError(
                    f"Unexpected response status code {response.status_code} "
                    "from signing authority"
                )
            return response

        parsed = await self._pipeline.execute(
            ServiceOperation.GENERATE_SIGNATURE,
            send,
            validate_success=True,
            context=context,
        )

        if isinstance(parsed.raw_body, str):
            return parsed.raw_body
        return urlencode(parsed.body.model_dump())


class UploadClient(UploadService):
    """Pushes a file plus its credential bundle to the CDN."""

    def __init__(
        self,
        transport: TransportProtocol,
        pipeline: ExecutionPipeline,
        endpoint: str,
        logger: LoggerProtocol,
    ):
        self._transport = transport
        self._pipeline = pipeline
        self._endpoint = endpoint
        self._logger = logger

    @staticmethod
    def to_data_uri(file: UploadFile) -> str:
        encoded = base64.b64encode(file.payload).decode("ascii")
        return f"data:{file.content_type};base64,{encoded}"

    def build_request(
        self, credentials: CredentialBundle, file: UploadFile
    ) -> OutboundRequest:
        """Multipart request with the signed parameters and the file."""
        return OutboundRequest(
            url=self._endpoint,
            form={
                "upload_preset": credentials.upload_preset,
                "signature": credentials.signature,
                "timestamp": credentials.timestamp,
                "api_key": credentials.api_key,
                "content_type": file.content_type,
                "file": self.to_data_uri(file),
            },
            multipart=True,
        )

    async def upload_image(
        self,
        credential_bundle: str,
        file: UploadFile,
        context: Optional[LogContext] = None,
    ) -> UploadImageBody:
        """Upload ``file`` and return the CDN's ``{message, url}`` body."""
        if context is None:
            context = LogContext(component="upload_client")
        context = context.with_operation(
            ServiceOperation.UPLOAD_IMAGE.value
        ).with_metadata(filename=file.filename, size=file.size)

        async def send():
            credentials = decode_credential_bundle(credential_bundle)
            self._logger.info("Uploading image to CDN", context)
            return await self._transport.send(self.build_request(credentials, file))

        parsed = await self._pipeline.execute(
            ServiceOperation.UPLOAD_IMAGE, send, validate_success=True, context=context
        )
        return parsed.body


class MediaUploadService:
    """Top-level upload operation: validate, sign, then upload."""

    def __init__(
        self,
        signature_service: SignatureService,
        upload_service: UploadService,
        pipeline: ExecutionPipeline,
        logger: LoggerProtocol,
    ):
        self._signature_service = signature_service
        self._upload_service = upload_service
        self._pipeline = pipeline
        self._logger = logger

    @property
    def pipeline(self) -> ExecutionPipeline:
        return self._pipeline

    async def _check_file(self, file: UploadFile) -> None:
        if not file.filename:
            raise SchemaValidationError(
                ControlOperation.VALIDATE_FILE,
                ["File name is required"],
                kind=ErrorKind.MALFORMED_INPUT,
            )
        if not file.payload:
            raise SchemaValidationError(
                ControlOperation.VALIDATE_FILE,
                ["File payload is empty"],
                kind=ErrorKind.MALFORMED_INPUT,
            )

    async def upload(
        self, file: UploadFile, sink: Optional[ResponseSink] = None
    ) -> UploadResult:
        """
        Upload ``file`` through the sign-then-upload sequence.

        The upload never starts before the signature has been validated.
        ``sink`` receives the success body or the normalized error once per
        distinct file and outcome. Every run of one upload logs under the
        same correlation id.

        Raises:
            NormalizedError: For any failure along the way.
        """
        context = LogContext(component="media_upload_service").with_metadata(
            filename=file.filename
        )

        async def work() -> UploadResult:
            await self._pipeline.execute(
                ControlOperation.VALIDATE_FILE,
                lambda: self._check_file(file),
                context=context,
            )
            credential_bundle = await self._signature_service.get_signature(
                file, context
            )
            body = await self._upload_service.upload_image(
                credential_bundle, file, context
            )
            return UploadResult(message=UPLOAD_SUCCESS_MESSAGE, url=body.url)

        return await self._pipeline.execute(
            ControlOperation.UPLOAD,
            work,
            sink=sink,
            context=context,
            request_key=request_fingerprint(file),
        )
