"""User agent that relies on the user to copy URLs by hand.

Suitable for CLI tools and headless environments: the user opens the
authorization URL anywhere and pastes back the URL they were redirected to.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import httpx

from codegrant.models.errors import UserAuthCancelledError
from codegrant.user_agent.base import RedirectRecognizer

logger = logging.getLogger(__name__)


class ManualUserAgent:
    """Hands the authorization URL to a callback and reads back redirects."""

    def __init__(
        self,
        callback_handler: Callable[[str], Awaitable[str]],
        max_attempts: int | None = None,
    ):
        """Initialize manual user agent.

        Args:
            callback_handler: Async function called with the authorization URL.
                              Should return the URL the user was redirected to.
            max_attempts: Give up after this many unrecognized URLs
        """
        self.callback_handler = callback_handler
        self.max_attempts = max_attempts

    async def present(
        self,
        request: httpx.Request,
        redirect_uri: str | None,
        recognizer: RedirectRecognizer,
    ) -> None:
        authorization_url = str(request.url)
        attempts = 0

        while True:
            callback_url = await self.callback_handler(authorization_url)
            attempts += 1

            try:
                candidate = httpx.Request("GET", callback_url.strip())
            except httpx.InvalidURL:
                logger.info(f"Ignoring invalid URL: {callback_url!r}")
            else:
                if recognizer(candidate):
                    return
                logger.info("URL is not an authorization redirect, asking again")

            if self.max_attempts is not None and attempts >= self.max_attempts:
                raise UserAuthCancelledError(
                    f"No authorization redirect after {attempts} attempts"
                )
