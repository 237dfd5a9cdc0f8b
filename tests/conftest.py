"""Shared test fixtures for the loadpulse test suite."""

from __future__ import annotations

import asyncio
import json
import socket
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest
from aiohttp import web

from loadpulse.client.http_client import HttpReply

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Message API server
# =============================================================================


@dataclass
class MessageServerState:
    """Mutable behaviour of the test message server.

    Attributes:
        host_ip: Value returned in the ``host_ip`` field ("" omits a hint).
        status: Status code for every response.
        malformed: Return a non-JSON body instead of messages.
        delay: Seconds to wait before answering.
        messages: Stored messages, one per successful POST.
        hits: Number of requests received.
    """

    host_ip: str = ""
    status: int = 200
    malformed: bool = False
    delay: float = 0.0
    messages: list[dict[str, Any]] = field(default_factory=list)
    hits: int = 0


STATE_KEY = web.AppKey("state", MessageServerState)


def _message(state: MessageServerState, msg_id: int, content: str) -> dict[str, Any]:
    return {
        "id": msg_id,
        "content": content,
        "created_at": datetime.now(UTC).isoformat(),
        "host_ip": state.host_ip,
    }


async def _post_message(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    state.hits += 1
    if state.delay:
        await asyncio.sleep(state.delay)
    if state.status >= 300:
        return web.json_response({"error": True}, status=state.status)
    if state.malformed:
        return web.Response(text="<html>not json</html>", status=state.status)
    payload = await request.json()
    message = _message(state, len(state.messages) + 1, payload.get("content", ""))
    state.messages.append(message)
    return web.json_response(message, status=state.status)


async def _list_messages(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    state.hits += 1
    if state.delay:
        await asyncio.sleep(state.delay)
    if state.status >= 300:
        return web.json_response({"error": True}, status=state.status)
    if state.malformed:
        return web.Response(text="{truncated", status=state.status)
    return web.json_response(state.messages, status=state.status)


def _create_message_app(state: MessageServerState) -> web.Application:
    """Build the message API app backed by ``state``."""
    app = web.Application()
    app[STATE_KEY] = state
    app.router.add_post("/api/v1/messages", _post_message)
    app.router.add_get("/api/v1/messages", _list_messages)
    return app


@dataclass
class MessageServer:
    """Handle returned by the server fixtures."""

    endpoint: str
    state: MessageServerState


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def message_server() -> AsyncIterator[MessageServer]:
    """Message API server on the test's event loop.

    Yields a handle with the ``host:port`` endpoint and the mutable state.
    """
    state = MessageServerState()
    port = _get_free_port()
    runner = web.AppRunner(_create_message_app(state))
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield MessageServer(endpoint=f"127.0.0.1:{port}", state=state)
    await runner.cleanup()


@pytest.fixture
def sync_message_server() -> Iterator[MessageServer]:
    """Message API server running in a background thread for sync tests.

    Used where the code under test calls ``asyncio.run`` itself.
    """
    state = MessageServerState()
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_message_app(state))
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield MessageServer(endpoint=f"127.0.0.1:{port}", state=state)

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


# =============================================================================
# In-memory transport
# =============================================================================


class FakeTransport:
    """Scripted stand-in for ``HttpClient`` used by dispatcher tests.

    Attributes:
        status: Status code returned for every call.
        host_ip: ``host_ip`` placed in successful bodies ("" for none).
        delay: Seconds each call takes.
        error: Exception raised by every call instead of replying.
        calls: ``(method, endpoint)`` of every call, in call order.
    """

    def __init__(
        self,
        *,
        status: int = 200,
        host_ip: str = "",
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.status = status
        self.host_ip = host_ip
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _reply(self, method: str, endpoint: str, body: Any) -> HttpReply:
        self.calls.append((method, endpoint))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
        finally:
            self.in_flight -= 1
        return HttpReply(status=self.status, body=json.dumps(body).encode())

    async def get(self, endpoint: str, path: str) -> HttpReply:
        return await self._reply("GET", endpoint, [{"id": 1, "host_ip": self.host_ip}])

    async def post(self, endpoint: str, path: str, payload: dict[str, Any]) -> HttpReply:
        return await self._reply("POST", endpoint, {"id": 1, "host_ip": self.host_ip, **payload})


@pytest.fixture
def fake_transport() -> FakeTransport:
    """A transport that answers 200 immediately with no host hint."""
    return FakeTransport()


@pytest.fixture
def transport_factory() -> type[FakeTransport]:
    """The FakeTransport class, for tests that need custom behaviour."""
    return FakeTransport
