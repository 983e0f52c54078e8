"""httpx-backed transport for token endpoint requests."""

from __future__ import annotations

import logging

import httpx

from codegrant.models.network import NetworkResponse
from codegrant.transport.base import Transport

logger = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """Sends requests through a shared httpx.AsyncClient.

    Every httpx.HTTPError (connect failures, timeouts, protocol errors) is
    returned as the transport-error variant of NetworkResponse.
    """

    def __init__(
        self, timeout: float = 30.0, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize the transport.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Optional preconfigured client; closed with the transport
        """
        self.timeout = timeout
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def perform(self, request: httpx.Request) -> NetworkResponse:
        logger.debug(f"Sending {request.method} request to {request.url}")

        try:
            response = await self._http_client.send(request)
        except httpx.HTTPError as e:
            logger.warning(f"HTTP error during {request.method} {request.url}: {e}")
            return NetworkResponse.from_error(e)

        logger.debug(f"Received HTTP {response.status_code} from {request.url}")
        return NetworkResponse.from_httpx(response)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
