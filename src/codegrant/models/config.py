"""Immutable configuration of an authorization code grant flow."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from codegrant.primitives.scope import Scope
from codegrant.services.client_auth import ClientAuthenticator
from codegrant.transport.base import Transport
from codegrant.transport.http import HttpxTransport
from codegrant.user_agent.base import UserAgent


@dataclass(frozen=True)
class GrantConfiguration:
    """Everything one authentication attempt needs, fixed at construction.

    ``state`` is an opaque anti-CSRF value, only ever compared for equality.
    ``client_authenticator`` and the plain ``client_id`` form field are
    mutually exclusive ways to identify the client at the token endpoint.
    The default ``transport`` holds an ``httpx.AsyncClient``; close it with
    ``AuthorizationCodeGrantFlow.close()`` or by using the flow as an async
    context manager.
    """

    # Required fields first
    authorization_endpoint: str
    token_endpoint: str
    client_id: str
    user_agent: UserAgent

    # Optional fields with defaults last
    redirect_uri: str | None = None
    scope: Scope | str | Iterable[str] | None = None
    state: str | None = None
    client_authenticator: ClientAuthenticator | None = None
    transport: Transport = field(default_factory=HttpxTransport)

    def __post_init__(self) -> None:
        if self.scope is not None:
            scope = Scope.coerce(self.scope)
            object.__setattr__(self, "scope", scope or None)
