"""Loopback redirect user agent (RFC 8252 Section 7.3).

Opens the authorization URL in the system browser and listens on a local
HTTP server for the authorization server's redirect.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import webbrowser
from collections.abc import Callable
from typing import Any

import httpx
import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route

from codegrant.models.errors import AuthorizationError
from codegrant.user_agent.base import RedirectRecognizer

logger = logging.getLogger(__name__)

SUCCESS_PAGE = (
    "<html><body><h1>Authorization complete</h1>"
    "<p>You can close this window.</p></body></html>"
)
FAILURE_PAGE = (
    "<html><body><h1>Authorization failed</h1>"
    "<p>Return to the application for details.</p></body></html>"
)


class RedirectCatcher:
    """Starlette endpoint that offers every incoming request to a recognizer.

    - Handled: serves the success page and marks the catcher done
    - Not handled: 404, keep listening
    - Recognizer raised: serves the failure page, keeps the error, done
    """

    def __init__(self, recognizer: RedirectRecognizer):
        self._recognizer = recognizer
        self.done = asyncio.Event()
        self.error: Exception | None = None

    def build_app(self) -> Starlette:
        return Starlette(
            routes=[Route("/{path:path}", self.handle, methods=["GET"])]
        )

    async def handle(self, request: Request) -> Response:
        if self.done.is_set():
            return Response("Authorization already completed", status_code=410)

        candidate = httpx.Request(request.method, str(request.url))

        try:
            handled = self._recognizer(candidate)
        except Exception as e:
            logger.warning(f"Redirect recognition failed: {e}")
            self.error = e
            self.done.set()
            return HTMLResponse(FAILURE_PAGE, status_code=400)

        if not handled:
            logger.debug(f"Ignoring request to {request.url.path}")
            return Response("Not found", status_code=404)

        logger.info("Authorization redirect received on loopback server")
        self.done.set()
        return HTMLResponse(SUCCESS_PAGE)


class LoopbackUserAgent:
    """System browser plus a transient local redirect server.

    The server binds to the redirect URI's host and port unless overridden,
    and shuts down as soon as the redirect has been recognized.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        open_browser: Callable[[str], Any] = webbrowser.open,
        log_level: str = "warning",
    ):
        """Initialize loopback user agent.

        Args:
            host: Interface to bind; defaults to the redirect URI's host
            port: Port to bind; defaults to the redirect URI's port
            open_browser: Called with the authorization URL
            log_level: uvicorn log level
        """
        self.host = host
        self.port = port
        self.open_browser = open_browser
        self.log_level = log_level

    def _bind_address(self, redirect_uri: str | None) -> tuple[str, int]:
        redirect_url = httpx.URL(redirect_uri) if redirect_uri else None

        host = self.host or (redirect_url.host if redirect_url else None) or "127.0.0.1"
        port = self.port or (redirect_url.port if redirect_url else None)
        if port is None:
            raise AuthorizationError(
                "Loopback user agent needs a port from the redirect URI or arguments"
            )
        return host, port

    def _listen(self, host: str, port: int) -> socket.socket:
        """Bind and listen before serving so a busy port fails as a typed error.

        uvicorn exits the process when it cannot bind on its own.
        """
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
            sock.listen()
        except OSError as e:
            sock.close()
            raise AuthorizationError(
                f"Loopback redirect server cannot listen on {host}:{port}: {e}"
            ) from e
        return sock

    async def _serve(self, server: uvicorn.Server, sock: socket.socket) -> None:
        try:
            await server.serve(sockets=[sock])
        except SystemExit as e:
            raise AuthorizationError(
                f"Loopback redirect server failed to start (exit code {e.code})"
            ) from e

    async def present(
        self,
        request: httpx.Request,
        redirect_uri: str | None,
        recognizer: RedirectRecognizer,
    ) -> None:
        host, port = self._bind_address(redirect_uri)
        sock = self._listen(host, port)
        catcher = RedirectCatcher(recognizer)

        config = uvicorn.Config(
            app=catcher.build_app(), host=host, port=port, log_level=self.log_level
        )
        server = uvicorn.Server(config)
        serve_task = asyncio.create_task(self._serve(server, sock))
        done_task = asyncio.create_task(catcher.done.wait())
        logger.info(f"Loopback redirect server listening on {host}:{port}")

        try:
            # Browser launchers may block until the browser exits
            await asyncio.to_thread(self.open_browser, str(request.url))
            await asyncio.wait(
                {serve_task, done_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            done_task.cancel()
            server.should_exit = True
            results = await asyncio.gather(
                serve_task, done_task, return_exceptions=True
            )
            sock.close()

        if isinstance(results[0], AuthorizationError):
            raise results[0]
        if catcher.error is not None:
            raise catcher.error
        if not catcher.done.is_set():
            raise AuthorizationError(
                "Loopback server stopped before the redirect arrived"
            )
