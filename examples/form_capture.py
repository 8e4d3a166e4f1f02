#!/usr/bin/env python3
"""
Form Capture Example

Demonstrates captured browser actions: navigating, filling a search box,
waiting for results and inspecting what each capture recorded.

Prerequisites:
- Chrome must be running with debugging enabled:
  google-chrome --remote-debugging-port=9222
"""
import asyncio

from chrome_capture import Browser, CaptureConfig, CaptureSession, setup_logging


async def main():
    setup_logging()
    config = CaptureConfig.from_env(page_load_timeout=15.0)

    # Keep the captures around after the run so they can be inspected.
    session = CaptureSession(config.capture_parent)

    async with Browser(config, session=session) as browser:
        print("Navigating to Wikipedia...")
        outcome = await browser.navigate(0, "https://en.wikipedia.org")
        print(f"Capture {outcome.capture.prefix} in {outcome.capture.directory}")
        print(outcome.capture.dom_summary.to_text())

        # A trailing newline submits the form
        print("\nSearching...")
        await browser.fill(0, "input[name=search]", "Python (programming language)\n")
        await browser.wait_for_element(0, "#firstHeading", timeout_ms=10000)

        title = await browser.extract(0, "text", "#firstHeading")
        print(f"Landed on: {title}")

        outcome = await browser.evaluate(0, "document.querySelectorAll('a').length")
        print(f"Links on page: {outcome.value}")

        if outcome.capture.error:
            print(f"Partial capture: {outcome.capture.error}")
        for path in outcome.capture.artifacts:
            print(f"  {path.name}")

    print(f"\nAll captures kept in {session.root}")


if __name__ == "__main__":
    asyncio.run(main())
