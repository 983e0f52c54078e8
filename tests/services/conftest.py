import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from codegrant.models.config import GrantConfiguration
from codegrant.models.network import NetworkResponse
from codegrant.user_agent.base import RedirectRecognizer


class ScriptedUserAgent:
    """User agent that replays a fixed sequence of navigations."""

    def __init__(self, navigations: list[str]):
        self.navigations = navigations
        self.presented: list[httpx.Request] = []
        self.redirect_uris: list[str | None] = []
        self.offered: list[str] = []
        self.answers: list[bool] = []

    async def present(
        self,
        request: httpx.Request,
        redirect_uri: str | None,
        recognizer: RedirectRecognizer,
    ) -> None:
        self.presented.append(request)
        self.redirect_uris.append(redirect_uri)

        for url in self.navigations:
            self.offered.append(url)
            handled = recognizer(httpx.Request("GET", url))
            self.answers.append(handled)
            if handled:
                return


def token_json(status_code: int = 200, **payload: Any) -> NetworkResponse:
    return NetworkResponse(
        status_code=status_code,
        headers={"content-type": "application/json"},
        body=json.dumps(payload).encode(),
    )


@pytest.fixture
def json_response():
    """Factory for JSON token endpoint responses."""
    return token_json


@pytest.fixture
def transport():
    transport = AsyncMock()
    transport.perform.return_value = token_json(
        access_token="access-token-xyz", token_type="Bearer", expires_in=3600
    )
    return transport


@pytest.fixture
def make_config(transport):
    def factory(navigations: list[str], **overrides: Any) -> GrantConfiguration:
        options = {
            "authorization_endpoint": "https://auth.example.com/authorize",
            "token_endpoint": "https://auth.example.com/token",
            "client_id": "client-456",
            "user_agent": ScriptedUserAgent(navigations),
            "redirect_uri": "https://myapp.com/callback",
            "state": "xyz",
            "transport": transport,
        }
        options.update(overrides)
        return GrantConfiguration(**options)

    return factory
