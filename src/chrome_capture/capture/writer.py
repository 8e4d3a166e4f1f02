"""
Capture Artifact Writer - Snapshot page state after an action.

One capture fetches HTML, markdown, a screenshot and the console backlog
concurrently and writes whichever succeeded:

    {prefix}.html  {prefix}.md  {prefix}.png  {prefix}-console.txt

A failing fetch or write only drops its own artifact and leaves a
CaptureError note on the record; the action that triggered the capture is
never failed by it.
"""
import asyncio
import base64
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple

from chrome_capture.capture.session import CaptureSession
from chrome_capture.capture.summary import DomSummarizer
from chrome_capture.cdp.runtime import evaluate_value
from chrome_capture.core.errors import CaptureError
from chrome_capture.core.models import ARTIFACT_SUFFIXES, CaptureRecord, ConsoleMessage

if TYPE_CHECKING:
    from chrome_capture.cdp.connection import CDPConnection

logger = logging.getLogger("chrome_capture")

CONSOLE_EXCERPT = 3

HTML_SCRIPT = "document.documentElement ? document.documentElement.outerHTML : ''"

MARKDOWN_SCRIPT = """
Array.from(document.querySelectorAll('h1, h2, h3, h4, h5, h6, p, a, li, pre, code'))
  .map(el => {
    const tag = el.tagName.toLowerCase();
    const text = (el.textContent || '').trim();
    if (!text) return '';
    if (/^h[1-6]$/.test(tag)) return '#'.repeat(parseInt(tag[1], 10)) + ' ' + text;
    if (tag === 'a') return '[' + text + '](' + el.href + ')';
    if (tag === 'li') return '- ' + text;
    if (tag === 'pre' || tag === 'code') return '```\\n' + text + '\\n```';
    return text;
  })
  .filter(Boolean)
  .join('\\n\\n')
"""

PAGE_SIZE_SCRIPT = """
(() => {
  const root = document.documentElement;
  const body = document.body;
  return {
    width: Math.max(root ? root.scrollWidth : 0, body ? body.scrollWidth : 0, window.innerWidth),
    height: Math.max(root ? root.scrollHeight : 0, body ? body.scrollHeight : 0, window.innerHeight),
  };
})()
"""


def _write_text(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


def _write_bytes(path: Path, content: bytes) -> None:
    path.write_bytes(content)


def format_console_log(messages: Sequence[ConsoleMessage]) -> str:
    if not messages:
        return ""
    return "\n".join(m.to_line() for m in messages) + "\n"


class CaptureArtifactWriter:
    """Produces CaptureRecords for a CaptureSession."""

    def __init__(self, session: CaptureSession, summarizer: Optional[DomSummarizer] = None):
        self.session = session
        self.summarizer = summarizer or DomSummarizer()

    async def _fetch_html(self, page: "CDPConnection") -> str:
        value = await evaluate_value(page, HTML_SCRIPT)
        return value if isinstance(value, str) else ""

    async def _fetch_markdown(self, page: "CDPConnection") -> str:
        value = await evaluate_value(page, MARKDOWN_SCRIPT)
        return value if isinstance(value, str) else ""

    async def _fetch_screenshot(self, page: "CDPConnection") -> bytes:
        result = await page.send("Page.captureScreenshot", {"format": "png"})
        return base64.b64decode(result.get("data", ""))

    async def _drain_console(self, page: "CDPConnection") -> List[ConsoleMessage]:
        return page.events.drain()

    async def _fetch_page_size(self, page: "CDPConnection") -> Tuple[int, int]:
        value = await evaluate_value(page, PAGE_SIZE_SCRIPT) or {}
        return int(value.get("width", 0)), int(value.get("height", 0))

    async def _write(self, path: Path, content: Any) -> None:
        if isinstance(content, bytes):
            await asyncio.to_thread(_write_bytes, path, content)
        else:
            await asyncio.to_thread(_write_text, path, content)

    async def capture_action_state(self, page: "CDPConnection", label: str) -> CaptureRecord:
        """
        Capture the current state of ``page`` under the next session prefix.

        Always returns a record; never raises for fetch or write failures.

        Args:
            page: Connection of the target the action ran against.
            label: Action name used in the artifact prefix (e.g. "click").

        Returns:
            CaptureRecord describing what was written.
        """
        errors: List[CaptureError] = []
        try:
            directory: Optional[Path] = self.session.initialize()
        except OSError as e:
            logger.error(
                f"Capture session directory unavailable: {e}",
                extra={"target_id": page.target_id, "error_type": type(e).__name__},
            )
            errors.append(CaptureError(f"session directory unavailable: {e}", artifact="session",
                                       target_id=page.target_id))
            directory = None
        prefix = self.session.next_prefix(label)

        html, markdown, screenshot, console, page_size, summary = await asyncio.gather(
            self._fetch_html(page),
            self._fetch_markdown(page),
            self._fetch_screenshot(page),
            self._drain_console(page),
            self._fetch_page_size(page),
            self.summarizer.summarize(page),
            return_exceptions=True,
        )

        fetched = {
            "html": html,
            "md": markdown,
            "png": screenshot,
            "console": console,
        }
        contents = {}
        for artifact, value in fetched.items():
            if isinstance(value, BaseException):
                logger.warning(
                    f"Capture {prefix}: fetching {artifact} failed: {value}",
                    extra={"target_id": page.target_id, "error_type": type(value).__name__},
                )
                errors.append(CaptureError(f"fetch failed: {value}", artifact=artifact, target_id=page.target_id))
            elif artifact == "console":
                contents[artifact] = format_console_log(value)
            else:
                contents[artifact] = value

        if directory is None:
            # Nowhere to write; the record still carries the summary and console excerpt.
            contents = {}
        paths = {name: directory / f"{prefix}{ARTIFACT_SUFFIXES[name]}" for name in contents}
        write_results = await asyncio.gather(
            *(self._write(paths[name], contents[name]) for name in contents),
            return_exceptions=True,
        )
        written = {}
        for name, outcome in zip(list(contents), write_results):
            if isinstance(outcome, BaseException):
                logger.warning(
                    f"Capture {prefix}: writing {name} failed: {outcome}",
                    extra={"target_id": page.target_id, "error_type": type(outcome).__name__},
                )
                errors.append(CaptureError(f"write failed: {outcome}", artifact=name, target_id=page.target_id))
            else:
                written[name] = paths[name]

        if isinstance(page_size, BaseException):
            errors.append(CaptureError(f"page size unavailable: {page_size}", artifact="size"))
            page_size = None
        if isinstance(summary, BaseException):
            errors.append(CaptureError(f"DOM summary unavailable: {summary}", artifact="summary"))
            summary = None

        messages = [] if isinstance(console, BaseException) else console
        record = CaptureRecord(
            prefix=prefix,
            directory=directory if directory is not None else self.session.parent_dir,
            html_path=written.get("html"),
            markdown_path=written.get("md"),
            screenshot_path=written.get("png"),
            console_path=written.get("console"),
            page_size=page_size,
            dom_summary=summary,
            console_messages=tuple(messages[-CONSOLE_EXCERPT:]),
            console_total=len(messages),
            errors=tuple(errors),
        )
        logger.info(
            f"Captured {prefix} ({len(record.artifacts)}/4 artifacts)",
            extra={"target_id": page.target_id, "capture_prefix": prefix},
        )
        return record
