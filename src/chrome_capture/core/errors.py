"""
Chrome Capture Error Taxonomy - Exception classes for protocol sessions and captures.

Every error carries a ``kind`` tag and a ``retryable`` flag so callers can tell
transient conditions (timeouts, lost connections) from permanent ones (missing
elements, bad tab indices) without inspecting messages.
"""
from typing import Optional


class BrowserCaptureError(Exception):
    """Base exception for all chrome_capture errors."""

    kind = "error"
    retryable = False

    def __init__(self, message: str, session_id: Optional[str] = None,
                 target_id: Optional[str] = None, method: Optional[str] = None,
                 **context):
        super().__init__(message)
        self.message = message
        self.session_id = session_id
        self.target_id = target_id
        self.method = method
        self.context = context

    def __str__(self):
        parts = [self.message]
        if self.session_id:
            parts.append(f"session_id={self.session_id}")
        if self.target_id:
            parts.append(f"target_id={self.target_id}")
        if self.method:
            parts.append(f"method={self.method}")
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"context=({context_str})")
        return " | ".join(parts)


class CDPConnectionError(BrowserCaptureError):
    """Raised when the connection to Chrome fails or is lost."""

    kind = "connection"
    retryable = True


class CDPTimeoutError(BrowserCaptureError):
    """Raised when a command or wait exceeds its deadline."""

    kind = "timeout"
    retryable = True

    def __init__(self, message: str, timeout: Optional[float] = None,
                 elapsed: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout = timeout
        self.elapsed = elapsed


class CDPProtocolError(BrowserCaptureError):
    """Raised when Chrome answers a command with an error response."""

    kind = "protocol"

    def __init__(self, message: str, code: Optional[int] = None,
                 cdp_error: Optional[dict] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.code = code
        self.cdp_error = cdp_error


class ElementNotFoundError(BrowserCaptureError):
    """Raised when a CSS or XPath selector matches no element."""

    kind = "element_not_found"

    def __init__(self, message: str, selector: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.selector = selector


class TargetIndexError(BrowserCaptureError):
    """Raised when a tab index is outside the current target list."""

    kind = "index_out_of_range"

    def __init__(self, message: str, index: Optional[int] = None,
                 count: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.index = index
        self.count = count


class EvaluationError(BrowserCaptureError):
    """Raised when evaluated JavaScript throws."""

    kind = "evaluation"

    def __init__(self, message: str, expression: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.expression = expression


class CaptureError(BrowserCaptureError):
    """
    A failed capture sub-step.

    Never raised to callers of an action; instances are attached to the
    CaptureRecord as soft-error notes.
    """

    kind = "capture"

    def __init__(self, message: str, artifact: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.artifact = artifact
