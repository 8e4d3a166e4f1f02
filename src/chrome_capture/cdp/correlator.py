"""
Command Correlator - Matches protocol responses to in-flight commands.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from chrome_capture.core.errors import BrowserCaptureError, CDPProtocolError, CDPTimeoutError

logger = logging.getLogger("chrome_capture")


@dataclass
class PendingCommand:
    """An in-flight protocol call waiting for its response."""
    id: int
    method: str
    deadline: float
    timeout: float
    future: asyncio.Future
    timer: Optional[asyncio.TimerHandle] = None


def _consume_result(future: asyncio.Future) -> None:
    # Marks the exception as retrieved when nobody is awaiting anymore.
    if not future.cancelled():
        future.exception()


class CommandCorrelator:
    """
    Tracks pending commands for one connection.

    Ids increase monotonically and are never reused, so two commands on the
    same connection can't collide. Every entry owns a loop timer that fails it
    at its deadline; awaiting is shielded so a cancelled caller leaves the
    entry to be reclaimed by the response or by that timer.
    """

    def __init__(self, default_timeout: float = 30.0):
        self.default_timeout = default_timeout
        self._last_id = 0
        self._pending: Dict[int, PendingCommand] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, message_id: int) -> bool:
        return message_id in self._pending

    def register(self, method: str, timeout: Optional[float] = None) -> PendingCommand:
        """Allocate an id and a deadline for a command about to be sent."""
        loop = asyncio.get_running_loop()
        timeout = self.default_timeout if timeout is None else timeout

        self._last_id += 1
        message_id = self._last_id
        future = loop.create_future()
        future.add_done_callback(_consume_result)

        entry = PendingCommand(
            id=message_id,
            method=method,
            deadline=loop.time() + timeout,
            timeout=timeout,
            future=future,
        )
        entry.timer = loop.call_at(entry.deadline, self._expire, message_id)
        self._pending[message_id] = entry
        return entry

    def _expire(self, message_id: int) -> None:
        entry = self._pending.pop(message_id, None)
        if entry is None or entry.future.done():
            return
        logger.error(
            f"CDP command timeout: {entry.method} after {entry.timeout:.3f}s",
            extra={"method": entry.method, "message_id": message_id},
        )
        entry.future.set_exception(CDPTimeoutError(
            f"CDP command {entry.method} timed out after {entry.timeout:.3f}s",
            timeout=entry.timeout,
            method=entry.method,
        ))

    def resolve(self, message: Dict[str, Any]) -> bool:
        """
        Settle the pending entry matching a response frame.

        Returns False when the id is unknown (already expired or never sent).
        """
        message_id = message.get("id")
        entry = self._pending.pop(message_id, None)
        if entry is None:
            logger.debug(
                f"Dropping response for unknown command id {message_id}",
                extra={"message_id": message_id},
            )
            return False

        if entry.timer is not None:
            entry.timer.cancel()
        if entry.future.done():
            return True

        if "error" in message:
            error_data = message["error"] or {}
            error_message = error_data.get("message", "Unknown CDP error")
            logger.error(
                f"CDP protocol error: {error_message}",
                extra={
                    "error_code": error_data.get("code"),
                    "method": entry.method,
                    "message_id": message_id,
                },
            )
            entry.future.set_exception(CDPProtocolError(
                f"CDP Error: {error_message}",
                code=error_data.get("code"),
                cdp_error=error_data,
                method=entry.method,
            ))
        else:
            entry.future.set_result(message.get("result", {}))
        return True

    def discard(self, message_id: int) -> None:
        """Forget an entry whose frame never made it onto the wire."""
        entry = self._pending.pop(message_id, None)
        if entry is None:
            return
        if entry.timer is not None:
            entry.timer.cancel()
        if not entry.future.done():
            entry.future.cancel()

    def reject_all(self, error: BrowserCaptureError) -> int:
        """Fail every pending entry, e.g. when the socket goes away."""
        entries = list(self._pending.values())
        self._pending.clear()
        for entry in entries:
            if entry.timer is not None:
                entry.timer.cancel()
            if not entry.future.done():
                entry.future.set_exception(error)
        return len(entries)

    async def wait(self, entry: PendingCommand) -> Dict[str, Any]:
        """Wait for the response to ``entry``."""
        return await asyncio.shield(entry.future)
