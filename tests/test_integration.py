"""
End-to-end tests against a real Chrome.

Run with: pytest tests/test_integration.py -v

Prerequisites:
- Chrome must be running with remote debugging enabled, e.g.:
  google-chrome --remote-debugging-port=9222 --headless=new
"""
import httpx
import pytest

from chrome_capture.browser import Browser
from chrome_capture.capture.session import CaptureSession
from chrome_capture.config import CaptureConfig
from chrome_capture.core.errors import ElementNotFoundError, EvaluationError
from chrome_capture.tools import execute_action

PAGE = (
    "data:text/html,<title>Fixture</title><main><h1>Hello fixture</h1>"
    "<form><input id='q'><button id='go' type='button' onclick=\"console.log('clicked')\">Go</button>"
    "<select id='color'><option value='r'>Red</option><option value='b'>Blue</option></select></form></main>"
)


def _chrome_available() -> bool:
    config = CaptureConfig.from_env()
    try:
        httpx.get(f"{config.http_base}/json/version", timeout=1.0).raise_for_status()
    except httpx.HTTPError:
        return False
    return True


pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not _chrome_available(), reason="Chrome remote debugging endpoint not reachable"),
]


@pytest.fixture
def session(tmp_path):
    session = CaptureSession(str(tmp_path))
    yield session
    session.cleanup()


class TestLiveBrowser:
    """Tests that drive a real tab."""

    @pytest.mark.asyncio
    async def test_navigate_then_list(self, session):
        """A navigated tab shows up in the tab list with its capture on disk."""
        async with Browser(CaptureConfig.from_env(), session=session) as browser:
            target = await browser.new_tab()
            tabs = await browser.list_tabs()
            index = [t.id for t in tabs].index(target.id)
            try:
                outcome = await browser.navigate(index, PAGE)

                assert outcome.capture.prefix == "001-navigate"
                assert outcome.capture.html_path.read_text().count("Hello fixture") == 1
                assert outcome.capture.dom_summary.headings == ("Hello fixture",)
                tabs = await browser.list_tabs()
                assert sum(1 for t in tabs if t.id == target.id) == 1
            finally:
                await browser.close_tab([t.id for t in await browser.list_tabs()].index(target.id))

    @pytest.mark.asyncio
    async def test_interactions(self, session):
        """Fill, select, click and eval each produce a capture."""
        async with Browser(CaptureConfig.from_env(), session=session) as browser:
            target = await browser.new_tab()
            index = [t.id for t in await browser.list_tabs()].index(target.id)
            try:
                await browser.navigate(index, PAGE)
                await browser.fill(index, "#q", "hello")
                await browser.select_option(index, "//select[@id='color']", "Blue")
                clicked = await browser.click(index, "#go")
                value = await browser.evaluate(index, "document.querySelector('#q').value")

                assert value.value == "hello"
                assert clicked.capture.console_total >= 1
                assert value.capture.sequence == 5

                with pytest.raises(ElementNotFoundError):
                    await browser.click(index, "#missing")
                with pytest.raises(EvaluationError):
                    await browser.evaluate(index, "undefinedFunction()")

                result = await execute_action(browser, {
                    "action": "await_text", "tab_index": index, "payload": "Hello fixture", "timeout": 2000,
                })
                assert result.success
            finally:
                await browser.close_tab([t.id for t in await browser.list_tabs()].index(target.id))
