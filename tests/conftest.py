"""
Pytest configuration and shared fixtures.

Unit tests never talk to a real browser: ``FakeWebSocket`` stands in for the
websockets client connection and ``FakePage`` stands in for a CDPConnection.
"""
import asyncio
import json
import os
import sys
from typing import Any, Callable, Dict, List, Optional

import pytest
from websockets.exceptions import ConnectionClosed

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from chrome_capture.cdp.events import EventRouter  # noqa: E402


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires Chrome)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Fake WebSocket
# =============================================================================

_CLOSE = object()


class FakeWebSocket:
    """
    Queue-backed replacement for a websockets client connection.

    ``responder`` sees every decoded outgoing command and returns the frames
    (dicts or raw strings) to deliver back, or None for no reply.
    """

    def __init__(self, responder: Optional[Callable[[Dict[str, Any]], Optional[List[Any]]]] = None):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: List[Dict[str, Any]] = []
        self.responder = responder
        self.closed = False

    async def send(self, raw: str) -> None:
        if self.closed:
            raise ConnectionClosed(None, None)
        message = json.loads(raw)
        self.sent.append(message)
        if self.responder is not None:
            for frame in self.responder(message) or []:
                self.push(frame)

    async def recv(self) -> str:
        item = await self.incoming.get()
        if item is _CLOSE:
            raise ConnectionClosed(None, None)
        return item

    def push(self, frame: Any) -> None:
        self.incoming.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def drop(self) -> None:
        """Simulate the browser going away."""
        self.incoming.put_nowait(_CLOSE)

    async def close(self) -> None:
        self.closed = True
        self.incoming.put_nowait(_CLOSE)


def echo_responder(results: Optional[Dict[str, Any]] = None):
    """Answer every command with ``results[method]`` (default: empty result)."""
    results = results or {}

    def respond(message: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [{"id": message["id"], "result": results.get(message["method"], {})}]

    return respond


# =============================================================================
# Fake Page
# =============================================================================

def remote(value: Any) -> Dict[str, Any]:
    """A by-value Runtime.evaluate response."""
    return {"result": {"type": "object" if isinstance(value, dict) else "string", "value": value}}


class FakePage:
    """
    Stand-in for CDPConnection driven by per-method handlers.

    A handler is a result dict, an exception instance (raised), or a callable
    taking the params and returning either of those.
    """

    def __init__(self, target_id: str = "TARGET-1"):
        self.target_id = target_id
        self.calls: List[tuple] = []
        self.handlers: Dict[str, Any] = {}
        self.connected = True
        self.closed = False
        self.events = EventRouter(self)

    def on(self, method: str, handler: Any) -> None:
        self.handlers[method] = handler

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None,
                   *, timeout: Optional[float] = None) -> Dict[str, Any]:
        params = params or {}
        self.calls.append((method, params))
        handler = self.handlers.get(method, {})
        if callable(handler):
            handler = handler(params)
        if asyncio.iscoroutine(handler):
            handler = await handler
        if isinstance(handler, BaseException):
            raise handler
        return handler

    async def close(self) -> None:
        self.closed = True
        self.connected = False

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    def expressions(self) -> List[str]:
        return [params["expression"] for method, params in self.calls if method == "Runtime.evaluate"]


@pytest.fixture
def fake_page():
    """A FakePage with no handlers installed."""
    return FakePage()


@pytest.fixture
def capture_dir(tmp_path):
    """Parent directory for capture sessions."""
    path = tmp_path / "captures"
    path.mkdir()
    return path
