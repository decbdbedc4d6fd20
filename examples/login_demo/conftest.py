"""Stand-in browser page so the demo runs without a real browser.

With pytest-playwright installed, delete this file: its ``page`` fixture is
picked up by steptrace automatically.
"""
import pytest


class DemoPage:
    def __init__(self) -> None:
        self.url = "about:blank"
        self.fields = {}

    def goto(self, url: str) -> None:
        self.url = url

    def fill(self, selector: str, value: str) -> None:
        self.fields[selector] = value

    def screenshot(self, **options) -> bytes:
        return b"\x89PNG\r\n\x1a\n" + repr(sorted(options.items())).encode()


@pytest.fixture
def page() -> DemoPage:
    return DemoPage()
