"""httpx-backed transport used to reach the signer and the CDN."""

from typing import Optional

import httpx

from .exceptions import TransportError
from .models import OutboundRequest, RemoteResponse


class HttpxTransport:
    """Sends ``OutboundRequest`` objects with an ``httpx.AsyncClient``.

    Non-2xx answers raise ``TransportError`` carrying the remote status and
    body. Timeouts and connection failures raise ``TransportError`` without a
    status.
    """

    def __init__(
        self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None
    ):
        self.timeout = timeout
        self._client = client

    def _create_http_client(self) -> httpx.AsyncClient:
        """Create a configured HTTP client."""
        return httpx.AsyncClient(timeout=self.timeout)

    async def _dispatch(
        self, client: httpx.AsyncClient, request: OutboundRequest
    ) -> httpx.Response:
        if request.multipart:
            # (None, value) tuples make httpx emit plain multipart form fields
            files = {key: (None, value) for key, value in request.form.items()}
            headers = {
                key: value
                for key, value in request.headers.items()
                if key.lower() != "content-type"
            }
            return await client.request(
                request.method, request.url, files=files, headers=headers
            )
        return await client.request(
            request.method, request.url, data=request.form, headers=request.headers
        )

    async def send(self, request: OutboundRequest) -> RemoteResponse:
        """Send a request and wrap the answer in a ``RemoteResponse``."""
        try:
            if self._client is not None:
                response = await self._dispatch(self._client, request)
            else:
                async with self._create_http_client() as client:
                    response = await self._dispatch(client, request)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {request.url} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {request.url} failed: {e}") from e

        remote = self.to_remote_response(response)
        if not response.is_success:
            raise TransportError(
                f"Request failed with status code {response.status_code}",
                status_code=response.status_code,
                body=remote.body,
                headers=remote.headers,
            )
        return remote

    @staticmethod
    def to_remote_response(response: httpx.Response) -> RemoteResponse:
        """Convert an httpx response into the gateway's envelope."""
        return RemoteResponse(
            status_code=response.status_code,
            headers=dict(response.headers.items()),
            body=response.text,
        )
