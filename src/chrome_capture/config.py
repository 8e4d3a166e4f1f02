"""
Configuration - Host/port selection, timeouts and capture settings.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger("chrome_capture")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9222

HOST_ENV = "CHROME_WS_HOST"
PORT_ENV = "CHROME_WS_PORT"
CAPTURE_DIR_ENV = "CHROME_CAPTURE_DIR"


def _port_from_env(raw: Optional[str]) -> int:
    if not raw:
        return DEFAULT_PORT
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {PORT_ENV}={raw!r}, using {DEFAULT_PORT}")
        return DEFAULT_PORT


def rewrite_ws_url(original_url, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
    """
    Point a discovery-reported WebSocket URL at the configured host and port.

    Chrome reports its own idea of where it listens (often ``localhost`` or a
    container-internal address). Anything that is not a parseable absolute
    URL is returned untouched, including None.
    """
    if not original_url or not isinstance(original_url, str):
        return original_url
    try:
        parts = urlsplit(original_url)
        # Accessing .port validates it.
        parts.port
    except ValueError:
        return original_url
    if not parts.scheme or not parts.netloc:
        return original_url

    hostname = f"[{host}]" if ":" in host and not host.startswith("[") else host
    netloc = f"{hostname}:{port}"
    userinfo, at, _ = parts.netloc.rpartition("@")
    if at:
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


@dataclass
class CaptureConfig:
    """Configuration options for chrome_capture."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    command_timeout: float = 30.0
    http_timeout: float = 5.0
    page_load_timeout: float = 30.0
    poll_interval: float = 0.1
    console_settle_delay: float = 0.1
    max_console_messages: int = 1000
    capture_parent: Optional[str] = None
    heading_char_budget: int = 60
    debug: bool = False

    @classmethod
    def from_env(cls, **overrides) -> CaptureConfig:
        """Build a config from CHROME_WS_HOST / CHROME_WS_PORT / CHROME_CAPTURE_DIR."""
        values = {
            "host": os.environ.get(HOST_ENV) or DEFAULT_HOST,
            "port": _port_from_env(os.environ.get(PORT_ENV)),
            "capture_parent": os.environ.get(CAPTURE_DIR_ENV) or None,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def http_base(self) -> str:
        hostname = f"[{self.host}]" if ":" in self.host and not self.host.startswith("[") else self.host
        return f"http://{hostname}:{self.port}"

    def rewrite(self, ws_url):
        return rewrite_ws_url(ws_url, self.host, self.port)
