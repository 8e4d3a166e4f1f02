"""
Tests for capture artifact writing.

Run with: pytest tests/test_writer.py -v
"""
import base64

import pytest

from chrome_capture.capture.session import CaptureSession
from chrome_capture.capture.writer import (
    HTML_SCRIPT,
    MARKDOWN_SCRIPT,
    PAGE_SIZE_SCRIPT,
    CaptureArtifactWriter,
    format_console_log,
)
from chrome_capture.core.errors import CDPTimeoutError, EvaluationError
from chrome_capture.core.models import ConsoleMessage
from tests.conftest import FakePage, remote

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


def _install_page(page: FakePage, writer: CaptureArtifactWriter, *, summary_error=None):
    answers = {
        HTML_SCRIPT: remote("<html><body><h1>Hi</h1></body></html>"),
        MARKDOWN_SCRIPT: remote("# Hi"),
        PAGE_SIZE_SCRIPT: remote({"width": 1280, "height": 2400}),
        writer.summarizer.script: summary_error or remote({"buttons": 1, "links": 2, "headings": ["Hi"]}),
    }
    page.on("Runtime.evaluate", lambda params: answers[params["expression"]])
    page.on("Page.captureScreenshot", {"data": base64.b64encode(PNG_BYTES).decode()})


def _log(page: FakePage, *texts):
    for text in texts:
        page.events.dispatch("Runtime.consoleAPICalled", {
            "type": "log",
            "args": [{"type": "string", "value": text}],
            "timestamp": 1.0,
        })


@pytest.fixture
def session(capture_dir):
    session = CaptureSession(str(capture_dir))
    yield session
    session.cleanup()


@pytest.fixture
def writer(session):
    return CaptureArtifactWriter(session)


# =============================================================================
# Successful captures
# =============================================================================

class TestCapture:
    """Tests for complete captures."""

    @pytest.mark.asyncio
    async def test_writes_all_four_artifacts(self, writer, session):
        """A healthy page yields html, md, png and console files."""
        page = FakePage()
        _install_page(page, writer)
        _log(page, "hello")

        record = await writer.capture_action_state(page, "navigate")

        assert record.prefix == "001-navigate"
        assert record.directory == session.root
        assert record.html_path.read_text().startswith("<html>")
        assert record.markdown_path.read_text() == "# Hi"
        assert record.screenshot_path.read_bytes() == PNG_BYTES
        assert "log: hello" in record.console_path.read_text()
        assert record.console_path.name == "001-navigate-console.txt"
        assert record.page_size == (1280, 2400)
        assert record.dom_summary.links == 2
        assert record.errors == ()
        assert record.error is None

    @pytest.mark.asyncio
    async def test_sequence_advances(self, writer):
        """Each capture takes the next number in the session."""
        page = FakePage()
        _install_page(page, writer)

        first = await writer.capture_action_state(page, "click")
        second = await writer.capture_action_state(page, "click")

        assert (first.sequence, second.sequence) == (1, 2)
        assert first.html_path != second.html_path

    @pytest.mark.asyncio
    async def test_console_excerpt_is_latest_three(self, writer):
        """The record keeps the newest three messages and the full count."""
        page = FakePage()
        _install_page(page, writer)
        _log(page, "a", "b", "c", "d", "e")

        record = await writer.capture_action_state(page, "eval")

        assert [m.text for m in record.console_messages] == ["c", "d", "e"]
        assert record.console_total == 5
        assert record.console_path.read_text().count("\n") == 5

    @pytest.mark.asyncio
    async def test_console_not_repeated_across_captures(self, writer):
        """Console output is attributed to one capture only."""
        page = FakePage()
        _install_page(page, writer)
        _log(page, "first")
        await writer.capture_action_state(page, "click")

        record = await writer.capture_action_state(page, "click")

        assert record.console_total == 0
        assert record.console_path.read_text() == ""


# =============================================================================
# Partial captures
# =============================================================================

class TestPartialCapture:
    """Tests for sub-step failures."""

    @pytest.mark.asyncio
    async def test_screenshot_failure_keeps_other_artifacts(self, writer):
        """A failed screenshot drops only the png and records a note."""
        page = FakePage()
        _install_page(page, writer)
        page.on("Page.captureScreenshot", CDPTimeoutError("timed out", timeout=30))

        record = await writer.capture_action_state(page, "click")

        assert record.screenshot_path is None
        assert record.html_path.exists()
        assert record.markdown_path.exists()
        assert record.console_path.exists()
        assert len(record.artifacts) == 3
        assert [e.artifact for e in record.errors] == ["png"]
        assert record.error.startswith("png: ")

    @pytest.mark.asyncio
    async def test_summary_failure_is_soft(self, writer):
        """A failing DOM summary leaves the artifacts and notes the error."""
        page = FakePage()
        _install_page(page, writer, summary_error=EvaluationError("boom"))

        record = await writer.capture_action_state(page, "click")

        assert record.dom_summary is None
        assert len(record.artifacts) == 4
        assert [e.artifact for e in record.errors] == ["summary"]

    @pytest.mark.asyncio
    async def test_write_failure_is_soft(self, writer, monkeypatch):
        """A write error drops that artifact without raising."""
        page = FakePage()
        _install_page(page, writer)
        original = writer._write

        async def failing_write(path, content):
            if path.suffix == ".md":
                raise OSError("disk full")
            await original(path, content)

        monkeypatch.setattr(writer, "_write", failing_write)

        record = await writer.capture_action_state(page, "fill")

        assert record.markdown_path is None
        assert record.html_path.exists()
        assert "disk full" in record.error

    @pytest.mark.asyncio
    async def test_unusable_session_directory_is_soft(self, tmp_path):
        """A capture root that cannot be created still yields a record."""
        not_a_dir = tmp_path / "not-a-dir"
        not_a_dir.write_text("plain file")
        writer = CaptureArtifactWriter(CaptureSession(str(not_a_dir)))
        page = FakePage()
        _install_page(page, writer)
        _log(page, "still here")

        record = await writer.capture_action_state(page, "click")

        assert record.prefix == "001-click"
        assert record.artifacts == ()
        assert [e.artifact for e in record.errors] == ["session"]
        assert record.dom_summary is not None
        assert record.console_messages[0].text == "still here"
        assert "Page.captureScreenshot" in page.methods()


# =============================================================================
# Console formatting
# =============================================================================

def test_format_console_log():
    """One line per message, each newline-terminated."""
    messages = [
        ConsoleMessage("log", "a", 1.0),
        ConsoleMessage("error", "b", 2.25),
    ]

    assert format_console_log(messages) == "[1.000] log: a\n[2.250] error: b\n"
    assert format_console_log([]) == ""
