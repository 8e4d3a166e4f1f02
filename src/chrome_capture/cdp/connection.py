"""
CDP Connection - One WebSocket JSON-RPC channel to a single browser target.
"""
import asyncio
import json
import logging
from typing import Any, Dict, Optional

import websockets
from websockets.asyncio.client import connect

from chrome_capture.cdp.correlator import CommandCorrelator
from chrome_capture.cdp.events import EventRouter
from chrome_capture.core.errors import BrowserCaptureError, CDPConnectionError

logger = logging.getLogger("chrome_capture")


def setup_logging(level: int = logging.INFO, debug: bool = False):
    """Configure logging for chrome_capture."""
    if debug:
        level = logging.DEBUG

    logger.setLevel(level)
    if logger.handlers:
        return

    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


class CDPConnection:
    """
    Chrome DevTools Protocol WebSocket connection for one target.

    Commands are correlated by id; frames without an id are events and go to
    ``self.events`` in arrival order. Use as an async context manager or call
    ``connect()``/``close()`` explicitly.
    """

    def __init__(
        self,
        ws_url: str,
        *,
        target_id: Optional[str] = None,
        command_timeout: float = 30.0,
        max_console_messages: int = 1000,
        debug: bool = False,
    ):
        self.ws_url = ws_url
        self.target_id = target_id
        self.ws = None
        self.debug = debug
        self.correlator = CommandCorrelator(default_timeout=command_timeout)
        self.events = EventRouter(self, max_console_messages=max_console_messages)
        self._listener: Optional[asyncio.Task] = None
        self._closed = False

    def _now(self) -> float:
        return asyncio.get_running_loop().time()

    @property
    def connected(self) -> bool:
        return self.ws is not None and not self._closed

    async def __aenter__(self) -> "CDPConnection":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the WebSocket and start the listener task."""
        logger.info(
            f"Connecting to Chrome via WebSocket: {self.ws_url}",
            extra={"target_id": self.target_id},
        )
        try:
            # Screenshots of long pages easily exceed the default 1 MiB frame cap.
            self.ws = await connect(self.ws_url, max_size=None)
        except Exception as e:
            logger.error(f"Failed to establish WebSocket connection: {e}")
            raise CDPConnectionError(
                f"Failed to connect to Chrome WebSocket: {e}",
                target_id=self.target_id,
                method="connect",
            ) from e

        self._closed = False
        self._listener = asyncio.create_task(self.listen())
        logger.info("WebSocket connection established", extra={"target_id": self.target_id})

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None,
                   *, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Send a CDP command and wait for its result."""
        if not self.connected:
            raise CDPConnectionError(
                "WebSocket connection not established",
                target_id=self.target_id,
                method=method,
            )

        entry = self.correlator.register(method, timeout)
        message = {"id": entry.id, "method": method, "params": params or {}}
        start_time = self._now()

        if self.debug:
            logger.debug(
                f"CDP command: {method}",
                extra={"method": method, "params": params, "message_id": entry.id},
            )

        try:
            await self.ws.send(json.dumps(message))
        except Exception as e:
            self.correlator.discard(entry.id)
            raise CDPConnectionError(
                f"CDP command {method} failed: {e}",
                target_id=self.target_id,
                method=method,
            ) from e

        try:
            result = await self.correlator.wait(entry)
        except BrowserCaptureError as e:
            if e.target_id is None:
                e.target_id = self.target_id
            raise

        if self.debug:
            duration = self._now() - start_time
            logger.debug(
                f"CDP response: {method} (duration={duration:.3f}s)",
                extra={
                    "method": method,
                    "message_id": entry.id,
                    "duration_ms": duration * 1000,
                },
            )
        return result

    def _dispatch(self, data: Dict[str, Any]) -> None:
        if "id" in data:
            self.correlator.resolve(data)
        elif "method" in data:
            if self.debug:
                logger.debug(f"CDP event: {data['method']}", extra={"method": data["method"]})
            self.events.dispatch(data["method"], data.get("params", {}))

    async def listen(self) -> None:
        """Read frames until the socket closes."""
        error: Optional[CDPConnectionError] = None
        try:
            while self.ws is not None:
                raw = await self.ws.recv()
                try:
                    data = json.loads(raw)
                except (TypeError, ValueError):
                    logger.warning("Ignoring non-JSON frame from Chrome", extra={"target_id": self.target_id})
                    continue
                self._dispatch(data)
        except asyncio.CancelledError:
            error = CDPConnectionError("WebSocket connection closed", target_id=self.target_id, method="listen")
            raise
        except websockets.exceptions.ConnectionClosed:
            if not self._closed:
                logger.error("WebSocket connection closed", extra={"target_id": self.target_id})
            error = CDPConnectionError("WebSocket connection closed", target_id=self.target_id, method="listen")
        except Exception as e:
            logger.error(f"Error in listen loop: {e}", exc_info=True)
            error = CDPConnectionError(
                f"Unexpected error in listen loop: {e}",
                target_id=self.target_id,
                method="listen",
            )
        finally:
            self._closed = True
            if error is None:
                error = CDPConnectionError("WebSocket connection closed", target_id=self.target_id, method="listen")
            rejected = self.correlator.reject_all(error)
            if rejected:
                logger.warning(
                    f"Rejected {rejected} pending commands after connection loss",
                    extra={"target_id": self.target_id},
                )
            self.events.fail_waiters(error)

    async def close(self) -> None:
        """Close the WebSocket connection gracefully."""
        self._closed = True
        ws, self.ws = self.ws, None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")
        if self._listener is not None:
            if not self._listener.done():
                self._listener.cancel()
                try:
                    await self._listener
                except asyncio.CancelledError:
                    pass
            self._listener = None
