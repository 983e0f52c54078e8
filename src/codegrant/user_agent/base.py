"""User agent contract for the authorization step."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import httpx

RedirectRecognizer = Callable[[httpx.Request], bool]


class UserAgent(Protocol):
    """Protocol for presenting the authorization request to the user.

    Allows different strategies for browser interaction:
    - Manual (print the URL, read back the redirect)
    - Loopback (open the system browser + local redirect server)
    - Custom UI integration (embedded web views)
    """

    async def present(
        self,
        request: httpx.Request,
        redirect_uri: str | None,
        recognizer: RedirectRecognizer,
    ) -> None:
        """Drive the user through authorization until the redirect arrives.

        Every navigation is offered to ``recognizer``. Returning False means
        the navigation is not the redirect and the interaction continues.
        Returning True ends the interaction. If the recognizer raises, the
        user agent stops and re-raises the same exception.

        Args:
            request: Authorization GET request to present
            redirect_uri: Expected redirect URI, if one was configured
            recognizer: Redirect recognition callback supplied by the flow
        """
        ...
