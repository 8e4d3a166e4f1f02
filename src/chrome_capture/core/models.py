"""
Chrome Capture Models - Data classes for console output, DOM digests and captures.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Tuple

if TYPE_CHECKING:
    from chrome_capture.core.errors import CaptureError

# Hard ceiling for DomSummary.to_text(), whatever the page looks like.
SUMMARY_CHAR_BUDGET = 500
MAX_SUMMARY_HEADINGS = 3

ARTIFACT_SUFFIXES = {
    "html": ".html",
    "md": ".md",
    "png": ".png",
    "console": "-console.txt",
}


@dataclass(frozen=True)
class ConsoleMessage:
    """One console event, in wire arrival order."""

    level: str
    text: str
    timestamp: float
    seq: int = 0

    def to_line(self) -> str:
        return f"[{self.timestamp:.3f}] {self.level}: {self.text}"


@dataclass(frozen=True)
class DomSummary:
    """
    Bounded structural digest of the live DOM.

    Counts come from fixed selector queries; headings are already truncated
    when this object is built.
    """

    buttons: int = 0
    inputs: int = 0
    links: int = 0
    forms: int = 0
    has_nav: bool = False
    has_main: bool = False
    headings: Tuple[str, ...] = ()

    @property
    def has_form(self) -> bool:
        return self.forms > 0

    def to_text(self) -> str:
        """Render the digest as short lines, never longer than SUMMARY_CHAR_BUDGET."""
        landmarks = []
        if self.has_nav:
            landmarks.append("nav")
        if self.has_main:
            landmarks.append("main")
        if self.has_form:
            landmarks.append(f"form({self.forms})")

        lines = [
            f"Interactive: {self.buttons} buttons, {self.inputs} inputs, {self.links} links",
            f"Landmarks: {', '.join(landmarks) if landmarks else 'none'}",
        ]
        for heading in self.headings[:MAX_SUMMARY_HEADINGS]:
            lines.append(f"Heading: {heading}")

        text = "\n".join(lines)
        if len(text) > SUMMARY_CHAR_BUDGET:
            text = text[:SUMMARY_CHAR_BUDGET - 1] + "…"
        return text


@dataclass(frozen=True)
class CaptureRecord:
    """
    The artifact set produced for one captured action.

    Paths are None for artifacts that could not be fetched or written; the
    matching reason is in ``errors``.
    """

    prefix: str
    directory: Path
    html_path: Optional[Path] = None
    markdown_path: Optional[Path] = None
    screenshot_path: Optional[Path] = None
    console_path: Optional[Path] = None
    page_size: Optional[Tuple[int, int]] = None
    dom_summary: Optional[DomSummary] = None
    console_messages: Tuple[ConsoleMessage, ...] = ()
    console_total: int = 0
    errors: Tuple["CaptureError", ...] = field(default_factory=tuple)

    @property
    def sequence(self) -> int:
        """The capture number encoded in the prefix."""
        return int(self.prefix.split("-", 1)[0])

    @property
    def artifacts(self) -> Tuple[Path, ...]:
        """Paths of the artifacts that were written."""
        paths = (self.html_path, self.markdown_path, self.screenshot_path, self.console_path)
        return tuple(p for p in paths if p is not None)

    @property
    def error(self) -> Optional[str]:
        """Soft-error note combining every failed sub-step, or None."""
        if not self.errors:
            return None
        return "; ".join(f"{e.artifact}: {e.message}" for e in self.errors)


@dataclass(frozen=True)
class ActionOutcome:
    """
    Result of an action primitive, optionally paired with its capture.

    ``value`` is whatever the primitive produced (the evaluated value, the
    selected option, the navigated URL); ``capture`` is set by the
    ``*_with_capture`` variants.
    """

    action: str
    value: Any = None
    capture: Optional[CaptureRecord] = None

    @property
    def captured(self) -> bool:
        return self.capture is not None
