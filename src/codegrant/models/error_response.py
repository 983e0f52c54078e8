"""RFC 6749 error responses (Sections 4.1.2.1 and 5.2).

The same vocabulary is used for authorization redirects and token endpoint
bodies, so recognition works on a flat string mapping from either source.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard OAuth 2.0 error codes."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    INVALID_SCOPE = "invalid_scope"
    ACCESS_DENIED = "access_denied"
    SERVER_ERROR = "server_error"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_raw(cls, raw: str) -> ErrorCode:
        try:
            code = cls(raw)
        except ValueError:
            return cls.UNRECOGNIZED
        # "unrecognized" is our sentinel, not a value a server can send
        return cls.UNRECOGNIZED if code is cls.UNRECOGNIZED else code


class ErrorResponse(BaseModel):
    """OAuth 2.0 error response.

    ``error`` always holds the raw code as sent by the server, so custom
    codes survive even when ``code`` is ``ErrorCode.UNRECOGNIZED``.
    """

    model_config = ConfigDict(frozen=True)

    code: ErrorCode
    error: str
    error_description: str | None = None
    error_uri: str | None = None
    state: str | None = None

    @property
    def is_recognized(self) -> bool:
        return self.code is not ErrorCode.UNRECOGNIZED

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, str]) -> ErrorResponse | None:
        """Recognize an error response in a flat parameter mapping.

        Args:
            parameters: Query parameters or a flattened JSON object

        Returns:
            The error response if an ``error`` key is present, otherwise None
        """
        if "error" not in parameters:
            return None

        raw = parameters["error"]
        return cls(
            code=ErrorCode.from_raw(raw),
            error=raw,
            error_description=parameters.get("error_description"),
            error_uri=parameters.get("error_uri"),
            state=parameters.get("state"),
        )


def flatten_json_object(obj: Mapping[str, Any]) -> dict[str, str]:
    """Flatten a decoded JSON object into string parameters.

    Strings pass through, other scalars are rendered as JSON, nested values
    are JSON-encoded and nulls are dropped.
    """
    flat: dict[str, str] = {}
    for key, value in obj.items():
        if value is None:
            continue
        if isinstance(value, str):
            flat[key] = value
        else:
            flat[key] = json.dumps(value)
    return flat
