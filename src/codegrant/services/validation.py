"""Pluggable validation of authorization and access token responses.

Validators are plain callables injected into the grant flow. They return
None to accept and raise an OAuth2Error subclass to reject.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from codegrant.models.errors import AccessTokenValidationError
from codegrant.models.flow import AuthorizationResponse
from codegrant.models.tokens import AccessTokenResponse
from codegrant.primitives.scope import Scope

logger = logging.getLogger(__name__)

AuthorizationValidator = Callable[[AuthorizationResponse], None]
AccessTokenValidator = Callable[[AccessTokenResponse], None]


def accept_authorization_response(response: AuthorizationResponse) -> None:
    pass


def accept_access_token(response: AccessTokenResponse) -> None:
    pass


class RequiredScopeValidator:
    """Rejects access tokens that were not granted every required scope.

    RFC 6749 Section 5.1 lets the server omit ``scope`` when it granted
    exactly what was requested, so ``requested`` is used in that case.
    """

    def __init__(
        self,
        required: Scope | str | Iterable[str],
        requested: Scope | str | Iterable[str] | None = None,
    ):
        self.required = Scope.coerce(required)
        self.requested = Scope.coerce(requested) if requested is not None else None

    def __call__(self, response: AccessTokenResponse) -> None:
        granted = response.scopes
        if granted is None:
            granted = self.requested or Scope()

        missing = [token for token in self.required if token not in granted]
        if missing:
            logger.warning(f"Access token missing required scopes: {missing}")
            raise AccessTokenValidationError(
                f"Access token missing required scope: {' '.join(missing)}"
            )
