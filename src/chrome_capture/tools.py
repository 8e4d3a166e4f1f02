"""
Tool Adapter - The ``use_browser`` tool: schema, dispatch and text rendering.

This module provides:
1. The tool schema in OpenAI and Anthropic formats
2. An executor that maps a structured request onto Browser operations and
   renders the outcome (including capture details) as plain text
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Coroutine, Dict, List, Literal, Optional

from chrome_capture.browser import Browser
from chrome_capture.core.errors import BrowserCaptureError
from chrome_capture.core.models import ARTIFACT_SUFFIXES, ActionOutcome, CaptureRecord

MAX_TIMEOUT_MS = 60000
DEFAULT_TIMEOUT_MS = 5000
CONSOLE_LINES = 3
SUMMARY_LINES = 8


class BrowserAction(str, Enum):
    NAVIGATE = "navigate"
    CLICK = "click"
    TYPE = "type"
    EXTRACT = "extract"
    SCREENSHOT = "screenshot"
    EVAL = "eval"
    SELECT = "select"
    ATTR = "attr"
    AWAIT_ELEMENT = "await_element"
    AWAIT_TEXT = "await_text"
    NEW_TAB = "new_tab"
    CLOSE_TAB = "close_tab"
    LIST_TABS = "list_tabs"
    HELP = "help"


# =============================================================================
# Tool Schema
# =============================================================================

USE_BROWSER_TOOL = {
    "name": "use_browser",
    "description": (
        "Control a persistent Chrome browser via the DevTools Protocol. "
        "Selectors are CSS or XPath (XPath must start with / or //). "
        "Append \\n to the 'type' payload to submit the form. "
        "navigate, click, type, select and eval save a capture of the page "
        "(HTML, markdown, screenshot, console log) and return a DOM summary."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "enum": [a.value for a in BrowserAction],
                "description": "Action to perform"
            },
            "tab_index": {
                "type": "integer",
                "minimum": 0,
                "default": 0,
                "description": "Which tab. Indices shift when tabs close."
            },
            "selector": {
                "type": "string",
                "description": "CSS or XPath selector. XPath must start with / or //."
            },
            "payload": {
                "type": "string",
                "description": (
                    "Action-specific data: navigate=URL | type=text (append \\n to submit) | "
                    "extract=format (text|html|markdown) | screenshot=filename | eval=JavaScript | "
                    "select=option value | attr=attribute name | await_text=text to wait for"
                )
            },
            "timeout": {
                "type": "integer",
                "minimum": 0,
                "maximum": MAX_TIMEOUT_MS,
                "default": DEFAULT_TIMEOUT_MS,
                "description": "Timeout in ms. Only for await actions."
            }
        },
        "required": ["action"]
    }
}


def get_tool_schema(format: Literal["openai", "anthropic"] = "openai") -> Dict[str, Any]:
    """
    Get the use_browser schema in the specified format.

    Args:
        format: "openai" for function-calling format, "anthropic" for tool-use format.
    """
    if format == "anthropic":
        return {
            "name": USE_BROWSER_TOOL["name"],
            "description": USE_BROWSER_TOOL["description"],
            "input_schema": USE_BROWSER_TOOL["parameters"],
        }
    return {
        "type": "function",
        "function": {
            "name": USE_BROWSER_TOOL["name"],
            "description": USE_BROWSER_TOOL["description"],
            "parameters": USE_BROWSER_TOOL["parameters"],
        }
    }


# =============================================================================
# Rendering
# =============================================================================

def format_capture(description: str, record: Optional[CaptureRecord]) -> str:
    """Render an action description plus its capture as compact text."""
    if record is None:
        return description

    lines = [f"{description} → capture #{record.sequence:03d}"]
    if record.page_size:
        width, height = record.page_size
        lines.append(f"Size: {width}×{height}")
    lines.append(f"Snapshot: {record.directory}/{record.prefix}*")
    names = [f"{record.prefix}{ARTIFACT_SUFFIXES[k]}" for k, p in (
        ("html", record.html_path),
        ("md", record.markdown_path),
        ("png", record.screenshot_path),
        ("console", record.console_path),
    ) if p is not None]
    lines.append(f"Resources: {', '.join(names) if names else 'none'}")

    if record.error:
        lines.append(f"⚠️ {record.error}")

    if record.console_total:
        lines.append(f"Console: {record.console_total} messages")
        for message in record.console_messages[:CONSOLE_LINES]:
            lines.append(f"  {message.level}: {message.text}")
        hidden = record.console_total - min(len(record.console_messages), CONSOLE_LINES)
        if hidden > 0:
            lines.append(f"  ... +{hidden} more")

    if record.dom_summary is not None:
        summary_lines = record.dom_summary.to_text().split("\n")
        lines.append("DOM:")
        lines.extend(f"  {line}" for line in summary_lines[:SUMMARY_LINES])
        if len(summary_lines) > SUMMARY_LINES:
            lines.append("  ...")

    return "\n".join(lines)


# =============================================================================
# Tool Executor
# =============================================================================

@dataclass
class ToolExecutionResult:
    """Result of executing one use_browser request."""

    success: bool
    action: str
    text: str
    outcome: Optional[ActionOutcome] = None

    def to_message(self) -> str:
        return self.text


class ToolInputError(ValueError):
    """Raised for a missing or malformed request parameter."""


ToolHandler = Callable[[Browser, Dict[str, Any]], Coroutine[Any, Any, ToolExecutionResult]]


def _require(args: Dict[str, Any], name: str, action: str) -> str:
    value = args.get(name)
    if not value or not isinstance(value, str):
        what = "selector" if name == "selector" else f"payload with {_PAYLOAD_HINTS.get(action, 'a value')}"
        raise ToolInputError(f"{action} requires {what}")
    return value


_PAYLOAD_HINTS = {
    "navigate": "URL",
    "type": "text",
    "screenshot": "filename",
    "select": "option value",
    "eval": "JavaScript code",
    "attr": "attribute name",
    "await_text": "text to wait for",
}


def _timeout(args: Dict[str, Any]) -> int:
    value = args.get("timeout", DEFAULT_TIMEOUT_MS)
    if value is None:
        return DEFAULT_TIMEOUT_MS
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_TIMEOUT_MS:
        raise ToolInputError(f"timeout must be an integer between 0 and {MAX_TIMEOUT_MS}")
    return value


def _tab(args: Dict[str, Any]) -> int:
    value = args.get("tab_index", 0)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ToolInputError("tab_index must be a non-negative integer")
    return value


async def _handle_navigate(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    url = _require(args, "payload", "navigate")
    outcome = await browser.navigate(_tab(args), url)
    return ToolExecutionResult(True, "navigate", format_capture(f"→ {url}", outcome.capture), outcome)


async def _handle_click(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    selector = _require(args, "selector", "click")
    outcome = await browser.click(_tab(args), selector)
    return ToolExecutionResult(True, "click", format_capture(f"Clicked: {selector}", outcome.capture), outcome)


async def _handle_type(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    selector = _require(args, "selector", "type")
    text = _require(args, "payload", "type")
    outcome = await browser.fill(_tab(args), selector, text)
    description = f"Typed {json.dumps(text)} into: {selector}"
    return ToolExecutionResult(True, "type", format_capture(description, outcome.capture), outcome)


async def _handle_select(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    selector = _require(args, "selector", "select")
    value = _require(args, "payload", "select")
    outcome = await browser.select_option(_tab(args), selector, value)
    description = f"Selected {json.dumps(value)} in: {selector}"
    return ToolExecutionResult(True, "select", format_capture(description, outcome.capture), outcome)


async def _handle_eval(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    expression = _require(args, "payload", "eval")
    outcome = await browser.evaluate(_tab(args), expression)
    result = outcome.value if isinstance(outcome.value, str) else json.dumps(outcome.value)
    description = f"Evaluated: {expression}\nResult: {result}"
    return ToolExecutionResult(True, "eval", format_capture(description, outcome.capture), outcome)


async def _handle_extract(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    format = args.get("payload") or "text"
    if not isinstance(format, str):
        raise ToolInputError("extract payload must be a string format")
    content = await browser.extract(_tab(args), format, args.get("selector") or None)
    return ToolExecutionResult(True, "extract", content)


async def _handle_screenshot(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    filename = _require(args, "payload", "screenshot")
    path = await browser.screenshot(_tab(args), filename, args.get("selector") or None)
    return ToolExecutionResult(True, "screenshot", f"Screenshot saved to {path}")


async def _handle_attr(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    selector = _require(args, "selector", "attr")
    name = _require(args, "payload", "attr")
    value = await browser.get_attribute(_tab(args), selector, name)
    return ToolExecutionResult(True, "attr", str(value))


async def _handle_await_element(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    selector = _require(args, "selector", "await_element")
    await browser.wait_for_element(_tab(args), selector, _timeout(args))
    return ToolExecutionResult(True, "await_element", f"Element found: {selector}")


async def _handle_await_text(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    text = _require(args, "payload", "await_text")
    await browser.wait_for_text(_tab(args), text, _timeout(args))
    return ToolExecutionResult(True, "await_text", f"Text found: {text}")


async def _handle_new_tab(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    target = await browser.new_tab()
    return ToolExecutionResult(True, "new_tab", f"New tab created: {target.id}")


async def _handle_close_tab(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    index = _tab(args)
    await browser.close_tab(index)
    return ToolExecutionResult(True, "close_tab", f"Closed tab {index}")


async def _handle_list_tabs(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    targets = await browser.list_tabs()
    listing: List[Dict[str, Any]] = [{"index": i, **t.to_dict()} for i, t in enumerate(targets)]
    return ToolExecutionResult(True, "list_tabs", json.dumps(listing, indent=2))


async def _handle_help(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    return ToolExecutionResult(True, "help", HELP_TEXT)


TOOL_HANDLERS: Dict[str, ToolHandler] = {
    BrowserAction.NAVIGATE.value: _handle_navigate,
    BrowserAction.CLICK.value: _handle_click,
    BrowserAction.TYPE.value: _handle_type,
    BrowserAction.EXTRACT.value: _handle_extract,
    BrowserAction.SCREENSHOT.value: _handle_screenshot,
    BrowserAction.EVAL.value: _handle_eval,
    BrowserAction.SELECT.value: _handle_select,
    BrowserAction.ATTR.value: _handle_attr,
    BrowserAction.AWAIT_ELEMENT.value: _handle_await_element,
    BrowserAction.AWAIT_TEXT.value: _handle_await_text,
    BrowserAction.NEW_TAB.value: _handle_new_tab,
    BrowserAction.CLOSE_TAB.value: _handle_close_tab,
    BrowserAction.LIST_TABS.value: _handle_list_tabs,
    BrowserAction.HELP.value: _handle_help,
}


async def execute_action(browser: Browser, args: Dict[str, Any]) -> ToolExecutionResult:
    """
    Execute one use_browser request.

    Never raises for browser, input or file errors; they come back as
    ``Error: ...`` text with ``success=False``.

    Args:
        browser: Browser instance to execute against.
        args: Request with ``action`` and optional ``tab_index``, ``selector``,
            ``payload`` and ``timeout``.
    """
    action = args.get("action")
    if isinstance(action, BrowserAction):
        action = action.value
    handler = TOOL_HANDLERS.get(action)
    if handler is None:
        return ToolExecutionResult(False, str(action), f"Error: Unknown action: {action}")
    try:
        return await handler(browser, args)
    except (BrowserCaptureError, ValueError, OSError) as e:
        message = e.message if isinstance(e, BrowserCaptureError) else str(e)
        return ToolExecutionResult(False, action, f"Error: {message}")


HELP_TEXT = """# Chrome Browser Control

Every DOM action saves a capture of the page (HTML, markdown, screenshot, console log).

## Actions Overview
navigate, click, type, select, eval → Capture page state and return a DOM summary
extract, attr, screenshot → Get content/visuals
await_element, await_text → Wait for page changes
list_tabs, new_tab, close_tab → Tab management

## Navigation & Interaction
navigate: {"action": "navigate", "payload": "URL"}
click: {"action": "click", "selector": "CSS_or_XPath"}
type: {"action": "type", "selector": "input", "payload": "text\\n"} → \\n submits the form
select: {"action": "select", "selector": "select", "payload": "option_value"}
eval: {"action": "eval", "payload": "JavaScript_code"}

## Content & Export
extract: {"action": "extract", "payload": "markdown|text|html", "selector": "optional"}
attr: {"action": "attr", "selector": "element", "payload": "attribute_name"}
screenshot: {"action": "screenshot", "payload": "filename", "selector": "optional"}

## Waiting
await_element: {"action": "await_element", "selector": "CSS_or_XPath", "timeout": 5000}
await_text: {"action": "await_text", "payload": "text_to_wait_for", "timeout": 5000}

## Tab Management
list_tabs: {"action": "list_tabs"} → Shows all tabs with indices
new_tab: {"action": "new_tab"}
close_tab: {"action": "close_tab", "tab_index": 1}

## Captures
Files are numbered per session: 001-navigate.html, 001-navigate.md,
001-navigate.png, 001-navigate-console.txt, 002-click.html, ...

## Selectors
CSS: "button.submit", "#email", ".form input[name=password]"
XPath: "//button[@type='submit']", "//input[@name='email']"

## Troubleshooting
Element not found → use await_element first
Timeout errors → increase timeout or wait for a specific element
Tab errors → use list_tabs to get current indices
"""
