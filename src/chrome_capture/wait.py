"""
Wait Engine - Poll the live page until a condition holds or time runs out.
"""
import asyncio
import json
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from chrome_capture.actions import element_expression
from chrome_capture.cdp.runtime import evaluate_value
from chrome_capture.core.errors import CDPProtocolError, CDPTimeoutError, EvaluationError

if TYPE_CHECKING:
    from chrome_capture.cdp.connection import CDPConnection

logger = logging.getLogger("chrome_capture")


class WaitEngine:
    """
    Timed retry loop over a boolean page check.

    A timeout of 0 means one check and no retry; that check gets
    ``single_check_budget`` seconds. Otherwise each check is bounded by the
    time left. When a check is cut short only the polling stops, the protocol
    command itself is left to the connection's own command deadline.
    """

    def __init__(self, poll_interval: float = 0.1, single_check_budget: float = 0.25):
        self.poll_interval = poll_interval
        self.single_check_budget = single_check_budget

    async def wait_for_element(self, page: "CDPConnection", selector: str, timeout_ms: int) -> float:
        """Wait until ``selector`` (CSS or XPath) matches. Returns elapsed seconds."""
        expression = f"""
(() => {{
  try {{ return ({element_expression(selector)}) !== null; }}
  catch (e) {{ return false; }}
}})()
"""

        async def check() -> bool:
            return bool(await evaluate_value(page, expression))

        return await self._poll(check, timeout_ms, f"element {selector}", target_id=page.target_id)

    async def wait_for_text(self, page: "CDPConnection", text: str, timeout_ms: int) -> float:
        """Wait until the page's visible text contains ``text``. Returns elapsed seconds."""
        expression = (
            f"(document.body ? document.body.innerText : '').includes({json.dumps(text)})"
        )

        async def check() -> bool:
            return bool(await evaluate_value(page, expression))

        return await self._poll(check, timeout_ms, f"text {text!r}", target_id=page.target_id)

    async def _check_once(self, check: Callable[[], Awaitable[bool]], remaining: float) -> bool:
        try:
            return await asyncio.wait_for(check(), timeout=max(remaining, 0.0))
        except asyncio.TimeoutError:
            return False
        except (CDPProtocolError, EvaluationError) as e:
            # The page is often mid-navigation while we poll.
            logger.debug(f"Wait check failed, retrying: {e}", extra={"error_type": type(e).__name__})
            return False

    async def _poll(self, check: Callable[[], Awaitable[bool]], timeout_ms: int,
                    description: str, *, target_id: Optional[str] = None) -> float:
        if timeout_ms < 0:
            raise ValueError(f"timeout_ms must be >= 0, got {timeout_ms}")

        loop = asyncio.get_running_loop()
        start = loop.time()
        deadline = start + timeout_ms / 1000.0
        attempts = 0

        while True:
            attempts += 1
            remaining = self.single_check_budget if timeout_ms == 0 else deadline - loop.time()
            if await self._check_once(check, remaining):
                elapsed = loop.time() - start
                logger.debug(
                    f"Found {description} after {elapsed:.3f}s",
                    extra={"target_id": target_id, "attempts": attempts},
                )
                return elapsed

            now = loop.time()
            if now >= deadline:
                elapsed = now - start
                raise CDPTimeoutError(
                    f"Timed out waiting for {description} after {elapsed * 1000:.0f}ms",
                    timeout=timeout_ms / 1000.0,
                    elapsed=elapsed,
                    target_id=target_id,
                    method="wait",
                    attempts=attempts,
                )
            await asyncio.sleep(min(self.poll_interval, deadline - now))
