#!/usr/bin/env python3
"""
Run one use_browser action against an already-running Chrome.

    python -m chrome_capture navigate --payload https://example.com --keep-captures
    python -m chrome_capture click --selector "a" --tab 1
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from chrome_capture.browser import Browser
from chrome_capture.capture.session import CaptureSession
from chrome_capture.cdp.connection import setup_logging
from chrome_capture.config import CaptureConfig
from chrome_capture.tools import DEFAULT_TIMEOUT_MS, BrowserAction, execute_action


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="chrome_capture",
        description="Drive a running Chrome over the DevTools protocol and capture page state.",
    )
    parser.add_argument(
        "action",
        choices=[a.value for a in BrowserAction],
        help="Action to perform.",
    )
    parser.add_argument("--tab", type=int, default=0, help="Tab index (default: 0).")
    parser.add_argument("--selector", help="CSS or XPath selector.")
    parser.add_argument("--payload", help="Action-specific data (URL, text, JavaScript, ...).")
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT_MS,
        help=f"Timeout in ms for await actions (default: {DEFAULT_TIMEOUT_MS}).",
    )
    parser.add_argument(
        "--keep-captures",
        action="store_true",
        help="Leave the capture directory on disk at exit.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> bool:
    config = CaptureConfig.from_env(debug=args.debug)
    session = CaptureSession(config.capture_parent)
    if not args.keep_captures:
        session.install_cleanup_handlers()

    request = {
        "action": args.action,
        "tab_index": args.tab,
        "selector": args.selector,
        "payload": args.payload,
        "timeout": args.timeout,
    }
    async with Browser(config, session=session) as browser:
        result = await execute_action(browser, request)
    print(result.text)
    return result.success


def main(argv: list[str] | None = None) -> bool:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(logging.WARNING, debug=args.debug)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
