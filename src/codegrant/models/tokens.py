"""Token request and response models (RFC 6749 Sections 4.1.3, 4.1.4, 5.1)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from codegrant.primitives.scope import Scope


@dataclass(frozen=True)
class AccessTokenRequest:
    """Authorization code to access token exchange parameters.

    ``client_id`` is only set when no client authenticator identifies the
    client to the token endpoint.
    """

    code: str
    redirect_uri: str | None = None
    client_id: str | None = None
    grant_type: str = field(default="authorization_code", init=False)

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Token requests must use form encoding, not JSON (RFC 6749 Section 4.1.3).
        """
        data = {
            "grant_type": self.grant_type,
            "code": self.code,
        }

        if self.redirect_uri is not None:
            data["redirect_uri"] = self.redirect_uri
        if self.client_id is not None:
            data["client_id"] = self.client_id

        return data

    def to_http_request(self, token_endpoint: str) -> httpx.Request:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        return httpx.Request(
            "POST", token_endpoint, data=self.to_form_data(), headers=headers
        )


class AccessTokenResponse(BaseModel):
    """Successful access token response (RFC 6749 Section 5.1).

    Fields outside the RFC are kept and exposed through ``extra_fields``.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    access_token: str = Field(min_length=1)
    token_type: str
    expires_in: int | None = None  # Seconds until expiry
    refresh_token: str | None = None
    scope: str | None = None

    @property
    def scopes(self) -> Scope | None:
        """Granted scope, or None if the server did not return one."""
        if self.scope is None:
            return None
        return Scope.parse(self.scope)

    @property
    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
