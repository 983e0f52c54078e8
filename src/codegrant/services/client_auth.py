"""Client authentication for token endpoint requests (RFC 6749 Section 2.3.1).

A client authenticator receives the built token request and returns it with
client credentials attached, or raises ClientAuthenticationError.
"""

from __future__ import annotations

import base64
import logging
from typing import Protocol
from urllib.parse import parse_qsl, quote_plus

import httpx

from codegrant.models.errors import ClientAuthenticationError

logger = logging.getLogger(__name__)


class ClientAuthenticator(Protocol):
    """Protocol for proving the client's identity to the token endpoint."""

    async def authorize(self, request: httpx.Request) -> httpx.Request:
        """Attach client credentials to a token request.

        Args:
            request: Token request built by the grant flow

        Returns:
            The request to send, with credentials attached

        Raises:
            ClientAuthenticationError: If credentials cannot be provided
        """
        ...


def _require_secret(client_id: str, client_secret: str | None) -> str:
    if not client_secret:
        raise ClientAuthenticationError(f"No client secret available for {client_id}")
    return client_secret


class ClientSecretBasic:
    """HTTP Basic authentication with the form-encoded client id and secret."""

    def __init__(self, client_id: str, client_secret: str | None):
        self.client_id = client_id
        self.client_secret = client_secret

    async def authorize(self, request: httpx.Request) -> httpx.Request:
        secret = _require_secret(self.client_id, self.client_secret)

        credentials = f"{quote_plus(self.client_id)}:{quote_plus(secret)}"
        encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        request.headers["Authorization"] = f"Basic {encoded}"

        logger.debug(f"Attached client_secret_basic credentials for {self.client_id}")
        return request


class ClientSecretPost:
    """Client id and secret sent as form fields in the request body."""

    def __init__(self, client_id: str, client_secret: str | None):
        self.client_id = client_id
        self.client_secret = client_secret

    async def authorize(self, request: httpx.Request) -> httpx.Request:
        secret = _require_secret(self.client_id, self.client_secret)

        form_data = dict(parse_qsl(request.content.decode("utf-8")))
        form_data["client_id"] = self.client_id
        form_data["client_secret"] = secret

        headers = {
            key: value
            for key, value in request.headers.items()
            if key.lower() != "content-length"
        }

        logger.debug(f"Attached client_secret_post credentials for {self.client_id}")
        return httpx.Request(
            request.method, request.url, data=form_data, headers=headers
        )
