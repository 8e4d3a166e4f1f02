"""
Browser - High-level async interface over a running Chrome.

Resolves tab indices to live connections on every call and routes actions to
the ActionExecutor and WaitEngine. Chrome itself must already be running with
remote debugging enabled.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from chrome_capture.actions import ActionExecutor
from chrome_capture.capture.session import CaptureSession
from chrome_capture.capture.summary import DomSummarizer
from chrome_capture.capture.writer import CaptureArtifactWriter
from chrome_capture.cdp.connection import CDPConnection
from chrome_capture.cdp.targets import Target, TargetRegistry
from chrome_capture.config import CaptureConfig
from chrome_capture.core.errors import CDPConnectionError
from chrome_capture.core.models import ActionOutcome
from chrome_capture.wait import WaitEngine

logger = logging.getLogger("chrome_capture")


class Browser:
    """
    Tab-indexed browser control with automatic captures.

    Usage:
        with CaptureSession() as session:
            async with Browser(session=session) as browser:
                await browser.navigate(0, "https://example.com")
                outcome = await browser.click(0, "a")
                print(outcome.capture.prefix)

    Tab indices follow the browser's current enumeration order and shift
    when tabs open or close; they are re-resolved on every call.
    """

    def __init__(
        self,
        config: Optional[CaptureConfig] = None,
        *,
        session: Optional[CaptureSession] = None,
        registry: Optional[TargetRegistry] = None,
    ):
        self.config = config or CaptureConfig.from_env()
        self.session = session or CaptureSession(self.config.capture_parent)
        self.registry = registry or TargetRegistry(self.config)
        self.writer = CaptureArtifactWriter(
            self.session,
            DomSummarizer(heading_char_budget=self.config.heading_char_budget),
        )
        self.executor = ActionExecutor(self.writer, self.config)
        self.waits = WaitEngine(poll_interval=self.config.poll_interval)
        self._connections: Dict[str, CDPConnection] = {}

    async def __aenter__(self) -> Browser:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def stop(self) -> None:
        """Close every open target connection."""
        connections, self._connections = self._connections, {}
        for connection in connections.values():
            await connection.close()
        logger.info("Browser connections closed")

    # =========================================================================
    # Target resolution
    # =========================================================================

    async def _connect(self, target: Target) -> CDPConnection:
        if not target.ws_url:
            raise CDPConnectionError(
                "Tab has no debugger URL (another client may be attached)",
                target_id=target.id,
                method="Browser.page",
            )
        connection = CDPConnection(
            target.ws_url,
            target_id=target.id,
            command_timeout=self.config.command_timeout,
            max_console_messages=self.config.max_console_messages,
            debug=self.config.debug,
        )
        await connection.connect()
        try:
            await connection.events.enable()
        except BaseException:
            await connection.close()
            raise
        return connection

    async def page(self, tab_index: int = 0) -> CDPConnection:
        """Connection for the tab currently at ``tab_index``."""
        target = await self.registry.resolve(tab_index)
        connection = self._connections.get(target.id)
        if connection is not None and not connection.connected:
            logger.info("Dropping closed connection", extra={"target_id": target.id})
            await connection.close()
            connection = None
        if connection is None:
            connection = await self._connect(target)
            self._connections[target.id] = connection
        return connection

    async def _release(self, target_id: str) -> None:
        connection = self._connections.pop(target_id, None)
        if connection is not None:
            await connection.close()

    # =========================================================================
    # Tabs
    # =========================================================================

    async def list_tabs(self) -> List[Target]:
        targets = await self.registry.list()
        live = {t.id for t in targets}
        for target_id in [tid for tid in self._connections if tid not in live]:
            await self._release(target_id)
        return targets

    async def new_tab(self, url: str = "about:blank") -> Target:
        return await self.registry.create(url)

    async def close_tab(self, tab_index: int) -> Target:
        target = await self.registry.close(tab_index)
        await self._release(target.id)
        return target

    # =========================================================================
    # Actions (captured)
    # =========================================================================

    async def navigate(self, tab_index: int, url: str) -> ActionOutcome:
        page = await self.page(tab_index)
        return await self.executor.navigate_with_capture(page, url)

    async def click(self, tab_index: int, selector: str) -> ActionOutcome:
        page = await self.page(tab_index)
        return await self.executor.click_with_capture(page, selector)

    async def fill(self, tab_index: int, selector: str, text: str) -> ActionOutcome:
        page = await self.page(tab_index)
        return await self.executor.fill_with_capture(page, selector, text)

    async def select_option(self, tab_index: int, selector: str, value: str) -> ActionOutcome:
        page = await self.page(tab_index)
        return await self.executor.select_option_with_capture(page, selector, value)

    async def evaluate(self, tab_index: int, expression: str) -> ActionOutcome:
        page = await self.page(tab_index)
        return await self.executor.evaluate_with_capture(page, expression)

    # =========================================================================
    # Extraction
    # =========================================================================

    async def extract(self, tab_index: int, format: str = "text", selector: Optional[str] = None) -> str:
        """Page or element content as "text", "html" or (whole page only) "markdown"."""
        page = await self.page(tab_index)
        if format == "text":
            return await self.executor.extract_text(page, selector)
        if format == "html":
            return await self.executor.get_html(page, selector)
        if format == "markdown":
            if selector is not None:
                raise ValueError("selector-based extraction only supports 'text' or 'html' format")
            return await self.executor.extract_markdown(page)
        raise ValueError("extract format must be 'text', 'html', or 'markdown'")

    async def get_attribute(self, tab_index: int, selector: str, name: str) -> Optional[str]:
        page = await self.page(tab_index)
        return await self.executor.get_attribute(page, selector, name)

    async def screenshot(self, tab_index: int, filename: str, selector: Optional[str] = None) -> Path:
        page = await self.page(tab_index)
        return await self.executor.screenshot(page, filename, selector)

    # =========================================================================
    # Waits
    # =========================================================================

    async def wait_for_element(self, tab_index: int, selector: str, timeout_ms: int = 5000) -> float:
        page = await self.page(tab_index)
        return await self.waits.wait_for_element(page, selector, timeout_ms)

    async def wait_for_text(self, tab_index: int, text: str, timeout_ms: int = 5000) -> float:
        page = await self.page(tab_index)
        return await self.waits.wait_for_text(page, text, timeout_ms)
