"""Authorization flow models for the authorization code grant.

Contains models for authorization requests (RFC 6749 Section 4.1.1) and the
responses carried by the redirect (Section 4.1.2).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlencode

import httpx

from codegrant.primitives.scope import Scope


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the authorization code flow."""

    client_id: str
    redirect_uri: str | None = None
    scope: Scope | None = None
    state: str | None = None
    response_type: str = field(default="code", init=False)

    def to_query_params(self) -> dict[str, str]:
        params = {
            "response_type": self.response_type,
            "client_id": self.client_id,
        }

        if self.redirect_uri is not None:
            params["redirect_uri"] = self.redirect_uri
        if self.scope:
            params["scope"] = self.scope.value
        if self.state is not None:
            params["state"] = self.state

        return params

    def to_query_string(self) -> str:
        return urlencode(self.to_query_params())

    def to_http_request(self, authorization_endpoint: str) -> httpx.Request:
        """Build the GET request the user agent should present.

        Query parameters already on the endpoint are kept.
        """
        return httpx.Request(
            "GET", authorization_endpoint, params=self.to_query_params()
        )

    @classmethod
    def from_query_string(cls, query: str) -> AuthorizationRequest:
        """Parse an authorization request back from its query string.

        Raises:
            ValueError: If the query is not a code authorization request
        """
        params = {
            key: values[0]
            for key, values in parse_qs(query, keep_blank_values=True).items()
        }

        if params.get("response_type") != "code":
            raise ValueError("Not an authorization code request")
        if "client_id" not in params:
            raise ValueError("Authorization request missing client_id")

        scope = params.get("scope")
        return cls(
            client_id=params["client_id"],
            redirect_uri=params.get("redirect_uri"),
            scope=Scope.parse(scope) if scope is not None else None,
            state=params.get("state"),
        )


@dataclass(frozen=True)
class AuthorizationResponse:
    """Successful authorization response captured from the redirect."""

    code: str
    state: str | None = None
