"""
Capture Session - The process's capture directory and its sequence counter.
"""
import atexit
import logging
import re
import shutil
import signal
import tempfile
import threading
import time
import uuid
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger("chrome_capture")

SEQUENCE_WIDTH = 3
_LABEL_RE = re.compile(r"[^a-z0-9]+")


def sanitize_label(label: str) -> str:
    """Lowercase a label and collapse anything unsafe for filenames into '-'."""
    cleaned = _LABEL_RE.sub("-", str(label).lower()).strip("-")
    return cleaned or "action"


class CaptureSession:
    """
    Root directory plus monotonically increasing counter for captures.

    ``initialize()`` is idempotent; ``cleanup()`` may be called any number of
    times, from any termination path, including a signal handler.

    Usage:
        with CaptureSession() as session:
            prefix = session.next_prefix("click")   # "001-click"
    """

    def __init__(self, parent_dir: Optional[str] = None, *, name_prefix: str = "chrome-session"):
        self.parent_dir = Path(parent_dir) if parent_dir else Path(tempfile.gettempdir())
        self.name_prefix = name_prefix
        self.created_at: Optional[float] = None
        self._root: Optional[Path] = None
        self._counter = 0
        self._lock = threading.Lock()
        self._cleaned = False
        self._handlers_installed = False
        self._previous_handlers: Dict[int, object] = {}

    def __enter__(self) -> "CaptureSession":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()

    @property
    def root(self) -> Optional[Path]:
        return self._root

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def initialized(self) -> bool:
        return self._root is not None

    def initialize(self) -> Path:
        """Create the uniquely named root directory on first call."""
        with self._lock:
            if self._root is not None:
                return self._root
            self.created_at = time.time()
            stamp = time.strftime("%Y%m%d-%H%M%S", time.localtime(self.created_at))
            root = self.parent_dir / f"{self.name_prefix}-{stamp}-{uuid.uuid4().hex[:6]}"
            root.mkdir(parents=True, exist_ok=False)
            self._root = root
            self._cleaned = False
            logger.info(f"Capture session initialized at {root}")
            return root

    def next_prefix(self, label: str) -> str:
        """Claim the next sequence number, e.g. ``003-click``."""
        with self._lock:
            self._counter += 1
            sequence = self._counter
        return f"{sequence:0{SEQUENCE_WIDTH}d}-{sanitize_label(label)}"

    def path_for(self, name: str) -> Path:
        root = self.initialize()
        return root / name

    def cleanup(self) -> None:
        """Remove the root directory. Safe to call repeatedly."""
        if self._cleaned:
            return
        self._cleaned = True
        root = self._root
        if root is None:
            return
        shutil.rmtree(root, ignore_errors=True)
        self._root = None
        logger.debug(f"Removed capture session directory {root}")

    # -------------------------------------------------------------------------
    # Termination hooks
    # -------------------------------------------------------------------------

    def install_cleanup_handlers(self) -> None:
        """Run cleanup() at interpreter exit and on SIGINT/SIGTERM."""
        if self._handlers_installed:
            return
        self._handlers_installed = True
        atexit.register(self.cleanup)

        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                self._previous_handlers[signum] = signal.getsignal(signum)
                signal.signal(signum, self._handle_signal)
            except (ValueError, OSError) as e:
                logger.debug(f"Could not install handler for signal {signum}: {e}")

    def _handle_signal(self, signum, frame) -> None:
        self.cleanup()
        previous = self._previous_handlers.get(signum)
        if callable(previous):
            previous(signum, frame)
            return
        if previous == signal.SIG_IGN:
            return
        raise SystemExit(128 + signum)
