"""Tests for the loopback redirect user agent."""

import asyncio
import socket
from unittest.mock import MagicMock, patch

import httpx
import pytest

from codegrant.models.errors import AuthorizationError, FlowDiscardedError
from codegrant.user_agent.loopback import LoopbackUserAgent, RedirectCatcher

BASE_URL = "http://127.0.0.1:8765"
AUTHORIZE = httpx.Request(
    "GET", "https://auth.example.com/authorize?response_type=code&client_id=c"
)


def client_for(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL)


class TestRedirectCatcher:
    """Test how incoming requests are answered."""

    async def test_unrecognized_request_is_404_and_keeps_listening(self):
        # Arrange
        catcher = RedirectCatcher(lambda candidate: False)

        # Act
        async with client_for(catcher.build_app()) as client:
            response = await client.get("/favicon.ico")

        # Assert
        assert response.status_code == 404
        assert not catcher.done.is_set()

    async def test_recognized_redirect_completes(self):
        # Arrange
        offered = []

        def recognizer(candidate: httpx.Request) -> bool:
            offered.append(candidate)
            return True

        catcher = RedirectCatcher(recognizer)

        # Act
        async with client_for(catcher.build_app()) as client:
            response = await client.get("/callback?code=abc&state=xyz")
            repeat = await client.get("/callback?code=abc&state=xyz")

        # Assert
        assert response.status_code == 200
        assert "Authorization complete" in response.text
        assert catcher.done.is_set()
        assert catcher.error is None
        assert str(offered[0].url) == f"{BASE_URL}/callback?code=abc&state=xyz"
        assert repeat.status_code == 410
        assert len(offered) == 1

    async def test_recognizer_error_is_kept(self):
        def recognizer(candidate: httpx.Request) -> bool:
            raise FlowDiscardedError("Flow was discarded")

        catcher = RedirectCatcher(recognizer)

        async with client_for(catcher.build_app()) as client:
            response = await client.get("/callback?code=abc")

        assert response.status_code == 400
        assert isinstance(catcher.error, FlowDiscardedError)
        assert catcher.done.is_set()


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class FakeServer:
    """Stands in for uvicorn.Server without accepting connections."""

    instances: list["FakeServer"] = []

    def __init__(self, config):
        self.config = config
        self.should_exit = False
        self.sockets = None
        FakeServer.instances.append(self)

    async def serve(self, sockets=None):
        self.sockets = sockets
        while not self.should_exit:
            await asyncio.sleep(0.001)


class FailingServer(FakeServer):
    async def serve(self, sockets=None):
        raise SystemExit(3)


class TestLoopbackUserAgent:
    def setup_method(self):
        FakeServer.instances = []
        self.port = free_port()
        self.redirect_uri = f"http://127.0.0.1:{self.port}/callback"

    async def test_present_opens_browser_and_waits_for_redirect(self):
        # Arrange
        loop = asyncio.get_running_loop()
        navigations = []

        async def navigate(app):
            async with client_for(app) as client:
                login = await client.get("/login")
                callback = await client.get("/callback?code=abc&state=xyz")
                return [login.status_code, callback.status_code]

        def open_browser(url: str) -> None:
            app = FakeServer.instances[0].config.app
            future = asyncio.run_coroutine_threadsafe(navigate(app), loop)
            navigations.append(future)

        def recognizer(candidate: httpx.Request) -> bool:
            return candidate.url.path == "/callback"

        browser = MagicMock(side_effect=open_browser)
        user_agent = LoopbackUserAgent(open_browser=browser)

        # Act
        with patch("codegrant.user_agent.loopback.uvicorn.Server", FakeServer):
            await asyncio.wait_for(
                user_agent.present(AUTHORIZE, self.redirect_uri, recognizer),
                timeout=2,
            )
        status_codes = await asyncio.wrap_future(navigations[0])

        # Assert
        browser.assert_called_once_with(str(AUTHORIZE.url))
        server = FakeServer.instances[0]
        assert server.should_exit
        assert server.config.host == "127.0.0.1"
        assert server.config.port == self.port
        assert server.sockets[0].fileno() == -1
        assert status_codes == [404, 200]

    async def test_recognizer_error_is_reraised(self):
        loop = asyncio.get_running_loop()
        navigations = []

        async def navigate(app):
            async with client_for(app) as client:
                return await client.get("/callback?code=abc")

        def open_browser(url: str) -> None:
            app = FakeServer.instances[0].config.app
            future = asyncio.run_coroutine_threadsafe(navigate(app), loop)
            navigations.append(future)

        def recognizer(candidate: httpx.Request) -> bool:
            raise FlowDiscardedError("Flow was discarded")

        user_agent = LoopbackUserAgent(open_browser=open_browser)

        with patch("codegrant.user_agent.loopback.uvicorn.Server", FakeServer):
            with pytest.raises(FlowDiscardedError):
                await asyncio.wait_for(
                    user_agent.present(AUTHORIZE, self.redirect_uri, recognizer),
                    timeout=2,
                )

        assert (await asyncio.wrap_future(navigations[0])).status_code == 400
        assert FakeServer.instances[0].should_exit

    async def test_server_exit_during_startup_is_authorization_error(self):
        user_agent = LoopbackUserAgent(open_browser=MagicMock())

        with patch("codegrant.user_agent.loopback.uvicorn.Server", FailingServer):
            with pytest.raises(AuthorizationError, match="failed to start"):
                await asyncio.wait_for(
                    user_agent.present(AUTHORIZE, self.redirect_uri, lambda c: False),
                    timeout=2,
                )

    async def test_explicit_bind_address_overrides_redirect_uri(self):
        user_agent = LoopbackUserAgent(host="0.0.0.0", port=9000)

        assert user_agent._bind_address("http://localhost:8765/cb") == ("0.0.0.0", 9000)

    async def test_port_is_required(self):
        user_agent = LoopbackUserAgent()

        with pytest.raises(AuthorizationError):
            await user_agent.present(AUTHORIZE, "myapp://callback", lambda c: True)


class TestLoopbackServer:
    """Run the real uvicorn server on a local port."""

    async def test_occupied_port_is_authorization_error(self):
        # Arrange
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupied:
            occupied.bind(("127.0.0.1", 0))
            occupied.listen()
            port = occupied.getsockname()[1]
            browser = MagicMock()
            user_agent = LoopbackUserAgent(open_browser=browser)

            # Act & Assert
            with pytest.raises(AuthorizationError, match="cannot listen"):
                await asyncio.wait_for(
                    user_agent.present(
                        AUTHORIZE, f"http://127.0.0.1:{port}/cb", lambda c: False
                    ),
                    timeout=5,
                )

        browser.assert_not_called()

    async def test_blocking_browser_does_not_stall_the_redirect(self):
        # Arrange
        redirect_uri = f"http://127.0.0.1:{free_port()}/callback"
        replies = []

        def open_browser(url: str) -> None:
            # Blocks this thread until the loopback server answers
            replies.append(httpx.get(f"{redirect_uri}?code=abc&state=xyz", timeout=5))

        def recognizer(candidate: httpx.Request) -> bool:
            return candidate.url.path == "/callback"

        user_agent = LoopbackUserAgent(open_browser=open_browser)

        # Act
        await asyncio.wait_for(
            user_agent.present(AUTHORIZE, redirect_uri, recognizer), timeout=10
        )

        # Assert
        assert replies[0].status_code == 200
        assert "Authorization complete" in replies[0].text
