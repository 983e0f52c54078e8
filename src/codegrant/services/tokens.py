"""Access token response handling (RFC 6749 Sections 5.1 and 5.2).

Turns the outcome of a token endpoint exchange into an AccessTokenResponse
or a typed error.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from codegrant.models.error_response import ErrorResponse, flatten_json_object
from codegrant.models.errors import (
    AccessTokenParseError,
    MalformedResponseError,
    OAuth2ProtocolError,
    TransportError,
    UnexpectedStatusError,
)
from codegrant.models.network import NetworkResponse
from codegrant.models.tokens import AccessTokenResponse

logger = logging.getLogger(__name__)


class AccessTokenResponseHandler:
    """Parses token endpoint responses.

    Checks run in a fixed order:
    1. Transport failure
    2. Body must be a JSON object
    3. RFC 6749 error body, whatever the status code
    4. Status code must be 2xx
    5. Required token fields must be present

    Handling has no side effects beyond logging.
    """

    def handle(self, response: NetworkResponse) -> AccessTokenResponse:
        """Produce an access token from a completed HTTP exchange.

        Args:
            response: Outcome of the token request

        Returns:
            AccessTokenResponse: Parsed successful token response

        Raises:
            TransportError: If the exchange itself failed
            MalformedResponseError: If the body is absent or not a JSON object
            OAuth2ProtocolError: If the body is an RFC 6749 error response
            UnexpectedStatusError: If the status is not 2xx and no error body exists
            AccessTokenParseError: If required token fields are missing
        """
        if response.error is not None:
            raise TransportError(
                f"HTTP error during token exchange: {response.error}",
                original=response.error,
            ) from response.error

        payload = self._parse_body(response.body)

        error_response = ErrorResponse.from_parameters(flatten_json_object(payload))
        if error_response is not None:
            logger.warning(
                f"Token exchange failed with {response.status_code}: "
                f"{error_response.error} - {error_response.error_description}"
            )
            raise OAuth2ProtocolError(error_response)

        if not response.is_success_status:
            raise UnexpectedStatusError(response.status_code)

        try:
            token_response = AccessTokenResponse.model_validate(payload)
        except ValidationError as e:
            raise AccessTokenParseError(f"Invalid access token response: {e}") from e

        logger.info("Token exchange successful")
        return token_response

    def _parse_body(self, body: bytes | None) -> dict[str, Any]:
        if not body:
            raise MalformedResponseError("Token response has no body")

        try:
            payload = json.loads(body)
        except (ValueError, RecursionError) as e:
            raise MalformedResponseError(
                f"Token response is not valid JSON: {e}"
            ) from e

        if not isinstance(payload, dict):
            raise MalformedResponseError("Token response is not a JSON object")

        return payload
