"""
Action Executor - Navigate, click, fill, select and evaluate against one tab.

Every DOM query runs inside the live browser through Runtime.evaluate.
Selectors starting with "/" are XPath, everything else is CSS; both dialects
fail the same way (ElementNotFoundError) when nothing matches.

The ``*_with_capture`` variants run the primitive first and only then take a
capture, returning both as one ActionOutcome.
"""
import asyncio
import base64
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from chrome_capture.capture.writer import MARKDOWN_SCRIPT, CaptureArtifactWriter
from chrome_capture.cdp.runtime import evaluate_value
from chrome_capture.config import CaptureConfig
from chrome_capture.core.errors import CDPProtocolError, ElementNotFoundError
from chrome_capture.core.models import ActionOutcome

if TYPE_CHECKING:
    from chrome_capture.cdp.connection import CDPConnection

logger = logging.getLogger("chrome_capture")

ENTER_KEY = {
    "key": "Enter",
    "code": "Enter",
    "windowsVirtualKeyCode": 13,
    "nativeVirtualKeyCode": 13,
}


def is_xpath(selector: str) -> bool:
    return selector.startswith("/")


def element_expression(selector: str) -> str:
    """JavaScript expression evaluating to the first node matching ``selector``."""
    literal = json.dumps(selector)
    if is_xpath(selector):
        return (
            f"document.evaluate({literal}, document, null, "
            f"XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue"
        )
    return f"document.querySelector({literal})"


def element_script(selector: str, body: str) -> str:
    """
    Wrap ``body`` so it runs with ``el`` bound to the matched element.

    The script returns ``{found: false}`` when the selector matches nothing
    or is not valid in its dialect; ``body`` must return ``{found: true, ...}``.
    """
    return f"""
(() => {{
  let el;
  try {{
    el = {element_expression(selector)};
  }} catch (e) {{
    return {{ found: false, error: String((e && e.message) || e) }};
  }}
  if (el && el.nodeType !== 1) el = el.parentElement;
  if (!el) return {{ found: false }};
  {body}
}})()
"""


CLICK_BODY = """
  el.scrollIntoView({ block: 'center', inline: 'center' });
  el.click();
  return { found: true };
"""

FILL_BODY = """
  const text = %s;
  el.focus();
  if ('value' in el) {
    const descriptor = Object.getOwnPropertyDescriptor(Object.getPrototypeOf(el), 'value');
    if (descriptor && descriptor.set) descriptor.set.call(el, text);
    else el.value = text;
  } else if (el.isContentEditable) {
    el.textContent = text;
  }
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
  return { found: true, value: ('value' in el) ? el.value : el.textContent };
"""

SELECT_BODY = """
  const wanted = %s;
  const options = Array.from(el.options || []);
  if (options.length) {
    const match = options.find(o => o.value === wanted) || options.find(o => o.text.trim() === wanted);
    if (!match) return { found: true, missing: true };
    el.value = match.value;
  } else {
    el.value = wanted;
  }
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
  return { found: true, value: el.value };
"""

TEXT_BODY = "return { found: true, value: el.innerText || el.textContent || '' };"
HTML_BODY = "return { found: true, value: el.outerHTML };"
ATTRIBUTE_BODY = "return { found: true, value: el.getAttribute(%s) };"
RECT_BODY = """
  el.scrollIntoView({ block: 'center', inline: 'center' });
  const r = el.getBoundingClientRect();
  return { found: true, value: { x: r.left + window.scrollX, y: r.top + window.scrollY, width: r.width, height: r.height } };
"""


class ActionExecutor:
    """
    Page interaction primitives, each against an already-resolved tab.

    Usage:
        executor = ActionExecutor(writer)
        await executor.navigate(page, "https://example.com")
        outcome = await executor.click_with_capture(page, "button.submit")
        print(outcome.capture.prefix)
    """

    def __init__(self, writer: CaptureArtifactWriter, config: Optional[CaptureConfig] = None):
        self.writer = writer
        self.config = config or CaptureConfig()

    async def _on_element(self, page: "CDPConnection", selector: str, body: str, action: str) -> Dict[str, Any]:
        if not selector:
            raise ElementNotFoundError("Empty selector", selector=selector, method=action)
        outcome = await evaluate_value(page, element_script(selector, body))
        if not isinstance(outcome, dict) or not outcome.get("found"):
            reason = ""
            if isinstance(outcome, dict) and outcome.get("error"):
                reason = f" (invalid selector: {outcome['error']})"
            raise ElementNotFoundError(
                f"Element not found: {selector}{reason}",
                selector=selector,
                target_id=page.target_id,
                method=action,
            )
        return outcome

    # =========================================================================
    # Primitives
    # =========================================================================

    async def navigate(self, page: "CDPConnection", url: str, *, timeout: Optional[float] = None) -> str:
        """
        Navigate to ``url`` and wait for the load event.

        The wait is bounded by ``page_load_timeout``; running out of time is
        logged and the navigation is still reported as done.
        """
        timeout = self.config.page_load_timeout if timeout is None else timeout
        await page.events.enable()

        waiter = page.events.expect_load()
        try:
            result = await page.send("Page.navigate", {"url": url})
        except BaseException:
            page.events.discard_waiter(waiter)
            raise

        if result.get("errorText"):
            page.events.discard_waiter(waiter)
            raise CDPProtocolError(
                f"Navigation to {url} failed: {result['errorText']}",
                target_id=page.target_id,
                method="Page.navigate",
            )
        if not result.get("loaderId"):
            # Same-document navigation: no load event will follow.
            page.events.discard_waiter(waiter)
            return url

        loaded = await page.events.wait_for_load(waiter, timeout)
        if not loaded:
            logger.warning(
                f"Load event for {url} not seen within {timeout}s, continuing",
                extra={"target_id": page.target_id, "timeout": timeout},
            )
        return url

    async def click(self, page: "CDPConnection", selector: str) -> None:
        await self._on_element(page, selector, CLICK_BODY, "click")

    async def fill(self, page: "CDPConnection", selector: str, text: str) -> str:
        """
        Set the value of an input-like element.

        A trailing newline is not typed: it is stripped from the value and
        turned into an Enter keypress afterwards, which submits most forms.
        """
        submit = text.endswith("\n")
        value = text[:-1] if submit else text
        outcome = await self._on_element(page, selector, FILL_BODY % json.dumps(value), "fill")
        if submit:
            await self.press_enter(page)
        return outcome.get("value", value)

    async def press_enter(self, page: "CDPConnection") -> None:
        await page.send("Input.dispatchKeyEvent", {"type": "keyDown", "text": "\r", **ENTER_KEY})
        await page.send("Input.dispatchKeyEvent", {"type": "keyUp", **ENTER_KEY})

    async def select_option(self, page: "CDPConnection", selector: str, value: str) -> str:
        outcome = await self._on_element(page, selector, SELECT_BODY % json.dumps(value), "select")
        if outcome.get("missing"):
            raise ElementNotFoundError(
                f"No option {value!r} in {selector}",
                selector=selector,
                target_id=page.target_id,
                method="select",
            )
        return outcome.get("value", value)

    async def evaluate(self, page: "CDPConnection", expression: str) -> Any:
        """Run ``expression`` and return its by-value result; promises are awaited."""
        return await evaluate_value(page, expression, await_promise=True)

    # =========================================================================
    # Capture-wrapped variants
    # =========================================================================

    async def _capture(self, page: "CDPConnection", action: str, value: Any) -> ActionOutcome:
        record = await self.writer.capture_action_state(page, action)
        return ActionOutcome(action=action, value=value, capture=record)

    async def navigate_with_capture(self, page: "CDPConnection", url: str) -> ActionOutcome:
        value = await self.navigate(page, url)
        if self.config.console_settle_delay > 0:
            # Gives late console output a chance; not a completeness guarantee.
            await asyncio.sleep(self.config.console_settle_delay)
        return await self._capture(page, "navigate", value)

    async def click_with_capture(self, page: "CDPConnection", selector: str) -> ActionOutcome:
        await self.click(page, selector)
        return await self._capture(page, "click", selector)

    async def fill_with_capture(self, page: "CDPConnection", selector: str, text: str) -> ActionOutcome:
        value = await self.fill(page, selector, text)
        return await self._capture(page, "fill", value)

    async def select_option_with_capture(self, page: "CDPConnection", selector: str, value: str) -> ActionOutcome:
        selected = await self.select_option(page, selector, value)
        return await self._capture(page, "select", selected)

    async def evaluate_with_capture(self, page: "CDPConnection", expression: str) -> ActionOutcome:
        value = await self.evaluate(page, expression)
        return await self._capture(page, "eval", value)

    # =========================================================================
    # Extraction
    # =========================================================================

    async def extract_text(self, page: "CDPConnection", selector: Optional[str] = None) -> str:
        if selector is None:
            value = await evaluate_value(page, "document.body ? document.body.innerText : ''")
            return value or ""
        outcome = await self._on_element(page, selector, TEXT_BODY, "extract_text")
        return outcome.get("value") or ""

    async def get_html(self, page: "CDPConnection", selector: Optional[str] = None) -> str:
        if selector is None:
            value = await evaluate_value(page, "document.documentElement.outerHTML")
            return value or ""
        outcome = await self._on_element(page, selector, HTML_BODY, "get_html")
        return outcome.get("value") or ""

    async def extract_markdown(self, page: "CDPConnection") -> str:
        value = await evaluate_value(page, MARKDOWN_SCRIPT)
        return value or ""

    async def get_attribute(self, page: "CDPConnection", selector: str, name: str) -> Optional[str]:
        outcome = await self._on_element(page, selector, ATTRIBUTE_BODY % json.dumps(name), "get_attribute")
        return outcome.get("value")

    async def screenshot(self, page: "CDPConnection", filename: str, selector: Optional[str] = None) -> Path:
        """
        Save a screenshot of the viewport, or of one element when ``selector`` is given.

        Relative filenames are placed in the capture session directory.
        """
        path = Path(filename)
        if not path.is_absolute():
            path = self.writer.session.path_for(filename)
        image_format = "jpeg" if path.suffix.lower() in (".jpg", ".jpeg") else "png"

        params: Dict[str, Any] = {"format": image_format}
        if selector is not None:
            outcome = await self._on_element(page, selector, RECT_BODY, "screenshot")
            rect = outcome["value"]
            params["clip"] = {
                "x": rect["x"],
                "y": rect["y"],
                "width": max(rect["width"], 1),
                "height": max(rect["height"], 1),
                "scale": 1,
            }
            params["captureBeyondViewport"] = True

        result = await page.send("Page.captureScreenshot", params)
        data = base64.b64decode(result.get("data", ""))
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        return path
