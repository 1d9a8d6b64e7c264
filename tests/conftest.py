import sys
from pathlib import Path

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

# Ensure root path is available for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from episode_linker.config import RetryPolicy, SiteProfile  # noqa: E402

SEARCH_URL = "https://www.example.com/search/"
SHOWS_URL = "https://www.example.com/shows/"
FALLBACK_URL = "https://www.example.com/brands/fallback/"


class FakeElement:
    def __init__(self, text: str | None) -> None:
        self._text = text

    async def text_content(self) -> str | None:
        return self._text


class FakePage:
    """
    Minimal stand-in for a Playwright page.

    ``results`` maps the text typed so far into the search box to the list of
    ``{"href", "text"}`` dicts the page would report. ``pages`` maps a URL to
    ``(title, html)``. ``goto_errors`` maps a URL to a list of messages raised
    on successive visits.
    """

    def __init__(
        self,
        *,
        results: dict[str, list[dict[str, str]]] | None = None,
        pages: dict[str, tuple[str, str]] | None = None,
        goto_errors: dict[str, list[str]] | None = None,
        selector_timeout: bool = False,
        element_text: str | None = None,
    ) -> None:
        self.url = "about:blank"
        self.results = results or {}
        self.pages = pages or {}
        self.goto_errors = {k: list(v) for k, v in (goto_errors or {}).items()}
        self.selector_timeout = selector_timeout
        self.element_text = element_text
        self.visited: list[str] = []
        self.typed = ""
        self.keystrokes = 0
        self.closed = False

    async def goto(self, url: str, timeout: int = 0, wait_until: str = "load"):
        self.visited.append(url)
        pending = self.goto_errors.get(url)
        if pending:
            raise PlaywrightError(pending.pop(0))
        self.url = url
        self.typed = ""

    async def title(self) -> str:
        return self.pages.get(self.url, ("Example", ""))[0]

    async def content(self) -> str:
        return self.pages.get(self.url, ("", "<html></html>"))[1]

    async def fill(self, selector: str, value: str) -> None:
        self.typed = value

    async def type(self, selector: str, text: str) -> None:
        self.typed += text
        self.keystrokes += 1

    async def wait_for_timeout(self, timeout: int) -> None:
        return None

    async def eval_on_selector_all(self, selector: str, expression: str):
        return self.results.get(self.typed, [])

    async def wait_for_selector(self, selector: str, timeout: int = 0):
        if self.selector_timeout:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        return FakeElement(self.element_text)

    async def close(self) -> None:
        self.closed = True


def show_result(slug: str, text: str | None = None) -> dict[str, str]:
    return {"href": f"{SHOWS_URL}{slug}/", "text": text or slug}


@pytest.fixture
def site() -> SiteProfile:
    return SiteProfile(
        site_name="Example",
        search_url=SEARCH_URL,
        shows_url=SHOWS_URL,
        fallback_url=FALLBACK_URL,
        debounce_ms=0,
        episode_wait_ms=10,
        navigation_timeout_ms=100,
    )


@pytest.fixture
def retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, backoff_ms=0)
