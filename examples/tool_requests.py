#!/usr/bin/env python3
"""
Tool Request Example

Demonstrates the use_browser tool surface: the schema handed to a model and
structured requests executed against the browser, rendered as text.

Prerequisites:
- Chrome must be running with debugging enabled:
  google-chrome --remote-debugging-port=9222
"""
import asyncio
import json

from chrome_capture import Browser, CaptureSession, execute_action, get_tool_schema


async def main():
    print("Tool schema (Anthropic format):")
    print(json.dumps(get_tool_schema(format="anthropic"), indent=2)[:400], "...")

    requests = [
        {"action": "list_tabs"},
        {"action": "navigate", "payload": "https://example.com"},
        {"action": "await_text", "payload": "Example Domain", "timeout": 5000},
        {"action": "extract", "payload": "markdown"},
        {"action": "click", "selector": "//a[contains(., 'More')]"},
        {"action": "click", "selector": "#does-not-exist"},
    ]

    with CaptureSession() as session:
        async with Browser(session=session) as browser:
            for request in requests:
                print(f"\n>>> {json.dumps(request)}")
                result = await execute_action(browser, request)
                print(result.text)


if __name__ == "__main__":
    asyncio.run(main())
