"""
Event Router - Page/Runtime notifications for one target.

Keeps the ordered console log and the one-shot load waiters. The router never
pushes console output anywhere; captures pull it with ``drain()``, so event
arrival and capture timing stay independent.
"""
import asyncio
import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Deque, Dict, List, Optional

from chrome_capture.core.errors import CDPConnectionError
from chrome_capture.core.models import ConsoleMessage

if TYPE_CHECKING:
    from chrome_capture.cdp.connection import CDPConnection

logger = logging.getLogger("chrome_capture")

NOTIFICATION_DOMAINS = ("Page", "Runtime")


def _format_remote_object(obj: Dict[str, Any]) -> str:
    if "value" in obj:
        value = obj["value"]
        return value if isinstance(value, str) else repr(value)
    if "unserializableValue" in obj:
        return str(obj["unserializableValue"])
    return str(obj.get("description") or obj.get("type", ""))


class EventRouter:
    """Demultiplexed notifications for one target connection."""

    def __init__(self, connection: "CDPConnection", *, max_console_messages: int = 1000):
        self._connection = connection
        self._enabled = False
        self._enable_lock = asyncio.Lock()
        self._console: Deque[ConsoleMessage] = deque(maxlen=max_console_messages)
        self._seq = 0
        self._drained_seq = 0
        self._load_waiters: List[asyncio.Future] = []
        self._handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            "Page.loadEventFired": self._on_load_event_fired,
            "Runtime.consoleAPICalled": self._on_console_api_called,
            "Runtime.exceptionThrown": self._on_exception_thrown,
        }

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def enable(self) -> None:
        """Enable Page and Runtime notifications, once per target."""
        async with self._enable_lock:
            if self._enabled:
                return
            for domain in NOTIFICATION_DOMAINS:
                await self._connection.send(f"{domain}.enable", {})
                logger.debug(f"Enabled domain: {domain}", extra={"domain": domain})
            self._enabled = True

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def dispatch(self, method: str, params: Dict[str, Any]) -> None:
        """Route one event frame. Called by the connection in wire order."""
        handler = self._handlers.get(method)
        if handler is not None:
            handler(params)

    def _on_load_event_fired(self, params: Dict[str, Any]) -> None:
        waiters, self._load_waiters = self._load_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(params.get("timestamp"))

    def _on_console_api_called(self, params: Dict[str, Any]) -> None:
        text = " ".join(_format_remote_object(arg) for arg in params.get("args", []))
        level = params.get("type", "log")
        if level == "warning":
            level = "warn"
        self._append(level, text, params.get("timestamp"))

    def _on_exception_thrown(self, params: Dict[str, Any]) -> None:
        details = params.get("exceptionDetails", {})
        exception = details.get("exception") or {}
        text = exception.get("description") or details.get("text", "Uncaught exception")
        self._append("error", text, params.get("timestamp"))

    def _append(self, level: str, text: str, timestamp: Optional[float]) -> None:
        self._seq += 1
        if timestamp is None:
            timestamp = asyncio.get_running_loop().time()
        self._console.append(ConsoleMessage(level=level, text=text, timestamp=timestamp, seq=self._seq))

    # -------------------------------------------------------------------------
    # Console log
    # -------------------------------------------------------------------------

    def messages(self) -> List[ConsoleMessage]:
        """Every buffered console message, oldest first."""
        return list(self._console)

    def drain(self, *, clear: bool = False) -> List[ConsoleMessage]:
        """
        Return the messages that arrived since the previous drain.

        The log itself is kept unless ``clear`` is set.
        """
        fresh = [m for m in self._console if m.seq > self._drained_seq]
        self._drained_seq = self._seq
        if clear:
            self._console.clear()
        return fresh

    def clear(self) -> None:
        self._console.clear()
        self._drained_seq = self._seq

    # -------------------------------------------------------------------------
    # Load waiters
    # -------------------------------------------------------------------------

    def expect_load(self) -> asyncio.Future:
        """
        Arm a waiter for the next Page.loadEventFired.

        Call this before sending the navigation so the event can't slip past.
        """
        waiter = asyncio.get_running_loop().create_future()
        self._load_waiters.append(waiter)
        return waiter

    async def wait_for_load(self, waiter: asyncio.Future, timeout: float) -> bool:
        """Wait on an armed waiter; False if the deadline passed first."""
        try:
            await asyncio.wait_for(asyncio.shield(waiter), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False
        finally:
            self.discard_waiter(waiter)

    def discard_waiter(self, waiter: asyncio.Future) -> None:
        if waiter in self._load_waiters:
            self._load_waiters.remove(waiter)
        if not waiter.done():
            waiter.cancel()

    def fail_waiters(self, error: CDPConnectionError) -> None:
        waiters, self._load_waiters = self._load_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_exception(error)
                # Keep asyncio quiet if no one awaits it.
                waiter.exception()
