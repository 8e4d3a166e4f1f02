"""
Tests for the per-target event router.

Run with: pytest tests/test_events.py -v
"""
import asyncio

import pytest

from chrome_capture.cdp.events import EventRouter
from chrome_capture.core.errors import CDPConnectionError
from tests.conftest import FakePage


def _console(text, level="log", timestamp=1.0):
    return {"type": level, "args": [{"type": "string", "value": text}], "timestamp": timestamp}


# =============================================================================
# Domain enabling
# =============================================================================

class TestEnable:
    """Tests for notification domain setup."""

    @pytest.mark.asyncio
    async def test_enable_is_idempotent(self):
        """Page and Runtime are enabled exactly once."""
        page = FakePage()
        await page.events.enable()
        await page.events.enable()

        assert page.methods() == ["Page.enable", "Runtime.enable"]
        assert page.events.enabled

    @pytest.mark.asyncio
    async def test_concurrent_enable_sends_once(self):
        """Racing enable calls still send each domain command once."""
        page = FakePage()
        await asyncio.gather(page.events.enable(), page.events.enable())

        assert page.methods() == ["Page.enable", "Runtime.enable"]


# =============================================================================
# Console log
# =============================================================================

class TestConsole:
    """Tests for console buffering and draining."""

    def test_console_messages_in_arrival_order(self):
        """Console entries keep wire order and join their arguments."""
        router = EventRouter(FakePage())
        router.dispatch("Runtime.consoleAPICalled", {
            "type": "log",
            "args": [{"type": "string", "value": "count"}, {"type": "number", "value": 3}],
            "timestamp": 1.5,
        })
        router.dispatch("Runtime.consoleAPICalled", _console("second", timestamp=2.0))

        messages = router.messages()
        assert [m.text for m in messages] == ["count 3", "second"]
        assert messages[0].to_line() == "[1.500] log: count 3"

    def test_warning_level_is_normalized(self):
        """console.warn is recorded with level 'warn'."""
        router = EventRouter(FakePage())
        router.dispatch("Runtime.consoleAPICalled", _console("careful", level="warning"))

        assert router.messages()[0].level == "warn"

    def test_uncaught_exception_recorded_as_error(self):
        """Runtime.exceptionThrown becomes an error-level entry."""
        router = EventRouter(FakePage())
        router.dispatch("Runtime.exceptionThrown", {
            "timestamp": 3.0,
            "exceptionDetails": {"text": "Uncaught", "exception": {"description": "TypeError: x is undefined"}},
        })

        message = router.messages()[0]
        assert message.level == "error"
        assert message.text == "TypeError: x is undefined"

    def test_unknown_events_ignored(self):
        """Events with no handler leave the log untouched."""
        router = EventRouter(FakePage())
        router.dispatch("Network.requestWillBeSent", {"requestId": "1"})

        assert router.messages() == []

    def test_drain_returns_only_new_messages(self):
        """Each drain sees only what arrived since the previous drain."""
        router = EventRouter(FakePage())
        router.dispatch("Runtime.consoleAPICalled", _console("a"))
        assert [m.text for m in router.drain()] == ["a"]

        router.dispatch("Runtime.consoleAPICalled", _console("b"))
        router.dispatch("Runtime.consoleAPICalled", _console("c"))
        assert [m.text for m in router.drain()] == ["b", "c"]
        assert router.drain() == []
        assert len(router.messages()) == 3

    def test_buffer_is_bounded(self):
        """Only the newest max_console_messages entries are kept."""
        router = EventRouter(FakePage(), max_console_messages=2)
        for text in ("a", "b", "c"):
            router.dispatch("Runtime.consoleAPICalled", _console(text))

        assert [m.text for m in router.messages()] == ["b", "c"]


# =============================================================================
# Load waiters
# =============================================================================

class TestLoadWaiters:
    """Tests for one-shot load notifications."""

    @pytest.mark.asyncio
    async def test_load_event_resolves_waiter(self):
        """An armed waiter completes on Page.loadEventFired."""
        router = EventRouter(FakePage())
        waiter = router.expect_load()
        router.dispatch("Page.loadEventFired", {"timestamp": 12.0})

        assert await router.wait_for_load(waiter, timeout=1) is True

    @pytest.mark.asyncio
    async def test_wait_for_load_times_out(self):
        """No load event within the deadline yields False and cleans up."""
        router = EventRouter(FakePage())
        waiter = router.expect_load()

        assert await router.wait_for_load(waiter, timeout=0.02) is False
        assert waiter.cancelled()

    @pytest.mark.asyncio
    async def test_fail_waiters(self):
        """Connection loss fails armed waiters."""
        router = EventRouter(FakePage())
        waiter = router.expect_load()
        router.fail_waiters(CDPConnectionError("gone"))

        with pytest.raises(CDPConnectionError):
            await waiter
