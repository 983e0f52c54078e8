"""Exception hierarchy for the authorization code grant.

Every failure of an authentication attempt is one of these types, so callers
can decide whether to retry, re-prompt the user, or abort.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from codegrant.models.error_response import ErrorResponse


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.0 related errors."""

    pass


class TransportError(OAuth2Error):
    """Raised when the HTTP exchange with the token endpoint failed.

    The transport's own exception is kept on ``original`` and chained as
    ``__cause__``.
    """

    def __init__(self, message: str, original: BaseException | None = None):
        super().__init__(message)
        self.original = original


class OAuth2ProtocolError(OAuth2Error):
    """Raised when the server answered with an RFC 6749 error response."""

    def __init__(self, response: ErrorResponse):
        self.response = response
        message = f"OAuth 2.0 error: {response.error}"
        if response.error_description:
            message += f" ({response.error_description})"
        if response.error_uri:
            message += f" See: {response.error_uri}"
        super().__init__(message)


class MalformedResponseError(OAuth2Error):
    """Raised when a response body is missing or is not a JSON object."""

    pass


class UnexpectedStatusError(OAuth2Error):
    """Raised on a non-2xx token endpoint response without an error body."""

    def __init__(self, status_code: int):
        super().__init__(f"Unexpected HTTP status {status_code}")
        self.status_code = status_code


class AccessTokenParseError(OAuth2Error):
    """Raised when a 2xx token response lacks the required token fields."""

    pass


class AccessTokenValidationError(OAuth2Error):
    """Raised by access token validators that reject a granted token."""

    pass


class AuthorizationError(OAuth2Error):
    """Raised when the user authorization step fails."""

    pass


class UserAuthCancelledError(AuthorizationError):
    """Raised when the user gives up on the authorization step."""

    pass


class AuthorizationResponseError(OAuth2Error):
    """Raised when authorization response is malformed or invalid."""

    pass


class StateValidationError(AuthorizationResponseError):
    """Raised when OAuth state parameter validation fails.

    This indicates a state mismatch, which could indicate a CSRF attack
    or authorization server issue.
    """

    pass


class ClientAuthenticationError(OAuth2Error):
    """Raised when the client authenticator cannot authorize the token request."""

    pass


class FlowDiscardedError(OAuth2Error):
    """Raised when a pending step resolves after its flow was discarded."""

    pass
