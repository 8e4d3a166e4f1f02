"""
DOM Summarizer - A bounded digest of the live page in one evaluation.
"""
from typing import TYPE_CHECKING, Any, Dict

from chrome_capture.cdp.runtime import evaluate_value
from chrome_capture.core.models import MAX_SUMMARY_HEADINGS, DomSummary

if TYPE_CHECKING:
    from chrome_capture.cdp.connection import CDPConnection


BUTTON_SELECTOR = 'button, input[type="button"], input[type="submit"], input[type="reset"], [role="button"]'
INPUT_SELECTOR = 'input:not([type="hidden"]):not([type="button"]):not([type="submit"]):not([type="reset"]), textarea, select'
LINK_SELECTOR = 'a[href]'
NAV_SELECTOR = 'nav, [role="navigation"]'
MAIN_SELECTOR = 'main, [role="main"]'
HEADING_SELECTOR = 'h1, h2, h3'

# Each selector class is queried on its own; nothing walks the whole tree.
SUMMARY_SCRIPT = """
(() => {
  const limit = %(limit)d;
  const clip = (text) => {
    const flat = (text || '').replace(/\\s+/g, ' ').trim();
    return flat.length > limit ? flat.slice(0, limit) : flat;
  };
  const headings = [];
  for (const el of document.querySelectorAll(%(headings)s)) {
    const text = clip(el.textContent);
    if (text) headings.push(text);
    if (headings.length >= %(max_headings)d) break;
  }
  return {
    buttons: document.querySelectorAll(%(buttons)s).length,
    inputs: document.querySelectorAll(%(inputs)s).length,
    links: document.querySelectorAll(%(links)s).length,
    forms: document.forms.length,
    nav: document.querySelector(%(nav)s) !== null,
    main: document.querySelector(%(main)s) !== null,
    headings: headings,
  };
})()
"""


def _js_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _count(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def summary_from_result(value: Dict[str, Any], heading_char_budget: int = 60) -> DomSummary:
    """
    Build a DomSummary from the script's result, clamping every field.

    The page controls what comes back, so lengths are enforced again here.
    """
    if not isinstance(value, dict):
        value = {}
    headings = []
    for heading in value.get("headings") or []:
        if not isinstance(heading, str):
            continue
        text = " ".join(heading.split())
        if len(text) > heading_char_budget:
            text = text[:heading_char_budget - 1] + "…"
        if text:
            headings.append(text)
        if len(headings) >= MAX_SUMMARY_HEADINGS:
            break
    return DomSummary(
        buttons=_count(value.get("buttons")),
        inputs=_count(value.get("inputs")),
        links=_count(value.get("links")),
        forms=_count(value.get("forms")),
        has_nav=bool(value.get("nav")),
        has_main=bool(value.get("main")),
        headings=tuple(headings),
    )


class DomSummarizer:
    """Computes a DomSummary with a single Runtime.evaluate round-trip."""

    def __init__(self, heading_char_budget: int = 60):
        self.heading_char_budget = heading_char_budget
        self.script = SUMMARY_SCRIPT % {
            "limit": heading_char_budget,
            "max_headings": MAX_SUMMARY_HEADINGS,
            "headings": _js_string(HEADING_SELECTOR),
            "buttons": _js_string(BUTTON_SELECTOR),
            "inputs": _js_string(INPUT_SELECTOR),
            "links": _js_string(LINK_SELECTOR),
            "nav": _js_string(NAV_SELECTOR),
            "main": _js_string(MAIN_SELECTOR),
        }

    async def summarize(self, page: "CDPConnection") -> DomSummary:
        value = await evaluate_value(page, self.script)
        return summary_from_result(value, self.heading_char_budget)
