"""
Chrome Capture - Drive a running Chrome over the DevTools protocol and keep a
numbered on-disk capture of the page after every action.

Usage:
    from chrome_capture import Browser, CaptureSession

    with CaptureSession() as session:
        async with Browser(session=session) as browser:
            outcome = await browser.navigate(0, "https://example.com")
            print(outcome.capture.dom_summary.to_text())
            await browser.fill(0, "input[name=q]", "python\\n")

Structured tool requests:
    from chrome_capture import execute_action, get_tool_schema

    schema = get_tool_schema(format="anthropic")
    result = await execute_action(browser, {"action": "click", "selector": "a"})
    print(result.text)
"""
from chrome_capture.browser import Browser
from chrome_capture.config import CaptureConfig, rewrite_ws_url
from chrome_capture.capture.session import CaptureSession
from chrome_capture.capture.summary import DomSummarizer
from chrome_capture.capture.writer import CaptureArtifactWriter
from chrome_capture.actions import ActionExecutor
from chrome_capture.wait import WaitEngine
from chrome_capture.cdp.connection import CDPConnection, setup_logging
from chrome_capture.cdp.targets import Target, TargetRegistry
from chrome_capture.core.models import ActionOutcome, CaptureRecord, ConsoleMessage, DomSummary
from chrome_capture.core.errors import (
    BrowserCaptureError,
    CaptureError,
    CDPConnectionError,
    CDPProtocolError,
    CDPTimeoutError,
    ElementNotFoundError,
    EvaluationError,
    TargetIndexError,
)
from chrome_capture.tools import (
    USE_BROWSER_TOOL,
    BrowserAction,
    ToolExecutionResult,
    execute_action,
    format_capture,
    get_tool_schema,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "Browser",
    "CaptureConfig",
    "CaptureSession",
    "rewrite_ws_url",
    # Building blocks
    "ActionExecutor",
    "WaitEngine",
    "DomSummarizer",
    "CaptureArtifactWriter",
    "CDPConnection",
    "Target",
    "TargetRegistry",
    "setup_logging",
    # Models
    "ActionOutcome",
    "CaptureRecord",
    "ConsoleMessage",
    "DomSummary",
    # Errors
    "BrowserCaptureError",
    "CaptureError",
    "CDPConnectionError",
    "CDPProtocolError",
    "CDPTimeoutError",
    "ElementNotFoundError",
    "EvaluationError",
    "TargetIndexError",
    # Tool surface
    "USE_BROWSER_TOOL",
    "BrowserAction",
    "ToolExecutionResult",
    "execute_action",
    "format_capture",
    "get_tool_schema",
]
