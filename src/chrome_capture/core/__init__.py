"""
Core module - Data models and errors.
"""
from chrome_capture.core.models import (
    ActionOutcome,
    CaptureRecord,
    ConsoleMessage,
    DomSummary,
    SUMMARY_CHAR_BUDGET,
)
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

__all__ = [
    "ActionOutcome",
    "CaptureRecord",
    "ConsoleMessage",
    "DomSummary",
    "SUMMARY_CHAR_BUDGET",
    "BrowserCaptureError",
    "CaptureError",
    "CDPConnectionError",
    "CDPProtocolError",
    "CDPTimeoutError",
    "ElementNotFoundError",
    "EvaluationError",
    "TargetIndexError",
]
