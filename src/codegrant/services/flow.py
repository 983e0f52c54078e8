"""Authorization code grant orchestration (RFC 6749 Section 4.1).

Runs one authentication attempt as a linear pipeline:

1. Build the authorization request
2. Present it through the user agent and wait for the redirect
3. Parse the redirect into an authorization response
4. Validate the anti-CSRF state
5. Build the access token request
6. Authenticate the client
7. Perform the token request
8. Parse and validate the access token response

Every step either hands its result to the next one or raises, ending the
attempt. Nothing is retried here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from types import TracebackType
from typing import Self

import httpx

from codegrant.models.config import GrantConfiguration
from codegrant.models.error_response import ErrorResponse
from codegrant.models.errors import (
    AuthorizationError,
    AuthorizationResponseError,
    ClientAuthenticationError,
    FlowDiscardedError,
    OAuth2Error,
    OAuth2ProtocolError,
)
from codegrant.models.flow import AuthorizationRequest, AuthorizationResponse
from codegrant.models.network import NetworkResponse
from codegrant.models.tokens import AccessTokenRequest, AccessTokenResponse
from codegrant.primitives.redirect import is_authorization_redirect, query_parameters
from codegrant.services.security import validate_state
from codegrant.services.tokens import AccessTokenResponseHandler
from codegrant.services.validation import (
    AccessTokenValidator,
    AuthorizationValidator,
    accept_access_token,
    accept_authorization_response,
)

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[AccessTokenResponse | None, BaseException | None], None]


class AuthorizationCodeGrantFlow:
    """Orchestrates the authorization code grant for one client configuration.

    Attempts are independent: each call to ``authenticate`` builds its own
    requests from the immutable configuration and shares nothing else.
    Overlapping attempts must not share one user agent surface.

    Calling ``discard`` abandons every attempt in flight. Each attempt
    remembers the flow generation it started in and raises
    FlowDiscardedError as soon as it resumes in a later one.
    """

    def __init__(
        self,
        config: GrantConfiguration,
        *,
        authorization_validator: AuthorizationValidator | None = None,
        access_token_validator: AccessTokenValidator | None = None,
        response_handler: AccessTokenResponseHandler | None = None,
    ):
        """Initialize the grant flow.

        Args:
            config: Endpoints, client identity and collaborators
            authorization_validator: Extra checks after the state check
            access_token_validator: Policy checks on the granted token
            response_handler: Token endpoint response parser
        """
        self.config = config
        self._authorization_validator = (
            authorization_validator or accept_authorization_response
        )
        self._access_token_validator = access_token_validator or accept_access_token
        self._response_handler = response_handler or AccessTokenResponseHandler()
        self._generation = 0

    def discard(self) -> None:
        """Abandon all in-flight attempts."""
        self._generation += 1
        logger.debug(f"Flow discarded, now at generation {self._generation}")

    async def close(self) -> None:
        """Close the configured transport and its connections."""
        await self.config.transport.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
        return None

    def start(
        self,
        completion: CompletionHandler,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> asyncio.Task[AccessTokenResponse]:
        """Run an attempt in the background and report through a callback.

        ``completion(response, error)`` is called exactly once, scheduled on
        ``loop`` (default: the loop running this call) whichever step ended
        the attempt. Cancelling the returned task reports FlowDiscardedError.

        Must be called from a running event loop.
        """
        callback_loop = loop or asyncio.get_running_loop()
        task = asyncio.ensure_future(self.authenticate())

        def deliver(finished: asyncio.Task[AccessTokenResponse]) -> None:
            if finished.cancelled():
                result = None
                error: BaseException | None = FlowDiscardedError(
                    "Authentication attempt was cancelled"
                )
            elif finished.exception() is not None:
                result, error = None, finished.exception()
            else:
                result, error = finished.result(), None
            callback_loop.call_soon_threadsafe(completion, result, error)

        task.add_done_callback(deliver)
        return task

    async def authenticate(self) -> AccessTokenResponse:
        """Run one complete authentication attempt.

        Returns:
            AccessTokenResponse: Validated token response

        Raises:
            OAuth2Error: The typed failure of whichever step ended the attempt
        """
        generation = self._generation
        logger.info(
            f"Starting authorization code flow for client {self.config.client_id}"
        )

        authorization_request = self.build_authorization_request()
        redirect = await self._await_redirect(
            authorization_request.to_http_request(self.config.authorization_endpoint),
            generation,
        )

        logger.debug("Processing authorization redirect")
        authorization_response = self.parse_redirect(redirect)
        self.validate_authorization_response(authorization_response)

        logger.debug("Exchanging authorization code for tokens")
        token_request = self.build_access_token_request(authorization_response)
        http_request = await self._authenticate_client(
            token_request.to_http_request(self.config.token_endpoint)
        )
        self._ensure_current(generation)

        network_response = await self._perform(http_request)
        self._ensure_current(generation)

        access_token_response = self._response_handler.handle(network_response)
        self._access_token_validator(access_token_response)

        logger.info(f"Successfully authenticated client {self.config.client_id}")
        return access_token_response

    def build_authorization_request(self) -> AuthorizationRequest:
        return AuthorizationRequest(
            client_id=self.config.client_id,
            redirect_uri=self.config.redirect_uri,
            scope=self.config.scope,
            state=self.config.state,
        )

    def can_handle(self, candidate: httpx.Request) -> bool:
        """Check whether a user agent navigation is the authorization redirect."""
        return is_authorization_redirect(candidate.url, self.config.redirect_uri)

    def parse_redirect(self, redirect: httpx.Request) -> AuthorizationResponse:
        """Parse the redirect query into an authorization response.

        Raises:
            OAuth2ProtocolError: If the redirect carries an RFC 6749 error
            AuthorizationResponseError: If it carries no authorization code
        """
        parameters = query_parameters(redirect.url)

        error_response = ErrorResponse.from_parameters(parameters)
        if error_response is not None:
            logger.warning(
                f"Authorization redirect contained error: {error_response.error} - "
                f"{error_response.error_description}"
            )
            raise OAuth2ProtocolError(error_response)

        code = parameters.get("code")
        if not code:
            raise AuthorizationResponseError(
                "Authorization redirect missing authorization code"
            )

        return AuthorizationResponse(code=code, state=parameters.get("state"))

    def validate_authorization_response(self, response: AuthorizationResponse) -> None:
        """Check the echoed state, then run the injected validator.

        Raises:
            StateValidationError: If the state does not match the configured one
        """
        try:
            validate_state(self.config.state, response.state)
        except OAuth2Error:
            logger.warning("Authorization redirect state mismatch")
            raise

        self._authorization_validator(response)

    def build_access_token_request(
        self, response: AuthorizationResponse
    ) -> AccessTokenRequest:
        # Plain client_id only identifies the client when nothing else does
        client_id = (
            self.config.client_id if self.config.client_authenticator is None else None
        )
        return AccessTokenRequest(
            code=response.code,
            redirect_uri=self.config.redirect_uri,
            client_id=client_id,
        )

    async def _await_redirect(
        self, request: httpx.Request, generation: int
    ) -> httpx.Request:
        """Present the authorization request and wait for the matching redirect."""
        matched: list[httpx.Request] = []

        def recognize(candidate: httpx.Request) -> bool:
            self._ensure_current(generation)
            if matched:
                return True
            if not self.can_handle(candidate):
                return False
            matched.append(candidate)
            return True

        logger.debug(f"Presenting authorization request to {request.url.host}")

        try:
            await self.config.user_agent.present(
                request, self.config.redirect_uri, recognize
            )
        except OAuth2Error:
            raise
        except Exception as e:
            raise AuthorizationError(f"User agent failed: {e}") from e

        self._ensure_current(generation)

        if not matched:
            raise AuthorizationError(
                "User agent finished without an authorization redirect"
            )
        return matched[0]

    async def _authenticate_client(self, request: httpx.Request) -> httpx.Request:
        authenticator = self.config.client_authenticator
        if authenticator is None:
            return request

        try:
            return await authenticator.authorize(request)
        except ClientAuthenticationError:
            raise
        except Exception as e:
            raise ClientAuthenticationError(
                f"Failed to authenticate token request: {e}"
            ) from e

    async def _perform(self, request: httpx.Request) -> NetworkResponse:
        try:
            return await self.config.transport.perform(request)
        except Exception as e:
            return NetworkResponse.from_error(e)

    def _ensure_current(self, generation: int) -> None:
        if generation != self._generation:
            raise FlowDiscardedError("Flow was discarded")
