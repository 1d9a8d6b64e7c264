# episode_linker/services/navigation.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from playwright.async_api import Error as PlaywrightError

from ..config import RetryPolicy, logger
from ..errors import NavigationError
from ..utils import first_line, title_has_error_marker

# Redirect loops never recover, so they skip the remaining attempts.
_NON_RETRYABLE_MARKERS = ("ERR_TOO_MANY_REDIRECTS",)


@dataclass
class NavigationResult:
    """Outcome of ``navigate_with_retry``; ``attempts`` counts every goto made."""

    url: str
    ok: bool
    attempts: int
    error: str | None = None

    def as_error(self) -> NavigationError:
        return NavigationError(self.url, self.error or "unknown error", self.attempts)


async def navigate_with_retry(
    page: Any,
    url: str,
    retry: RetryPolicy,
    *,
    timeout_ms: int,
    wait_until: str = "domcontentloaded",
) -> NavigationResult:
    """
    Navigates ``page`` to ``url`` with a bounded number of attempts.

    Failures are never raised; the caller decides what a failed result means
    for its unit of work.
    """
    attempt = 0
    last_error: str | None = None

    while attempt < retry.max_attempts:
        attempt += 1
        try:
            await page.goto(url, timeout=timeout_ms, wait_until=wait_until)
            if attempt > 1:
                logger.info(f"[NAV] Loaded {url} after {attempt} attempts")
            return NavigationResult(url=url, ok=True, attempts=attempt)
        except PlaywrightError as e:
            last_error = first_line(str(e)) or type(e).__name__

        if any(marker in last_error for marker in _NON_RETRYABLE_MARKERS):
            logger.error(f"[NAV] Giving up on {url}: {last_error}")
            break

        if attempt < retry.max_attempts:
            logger.warning(
                f"[NAV] Retry {attempt}/{retry.max_attempts} for {url}: {last_error}"
            )
            await asyncio.sleep(retry.backoff_ms / 1000)

    logger.error(f"[NAV] Error loading {url}: {last_error}")
    return NavigationResult(url=url, ok=False, attempts=attempt, error=last_error)


async def read_title(page: Any) -> str:
    try:
        return await page.title()
    except PlaywrightError as e:
        logger.debug(f"[NAV] Could not read page title: {first_line(str(e))}")
        return ""


async def detect_error_page(page: Any, markers: list[str]) -> str | None:
    """Returns the page title when it carries an error sentinel, else ``None``."""
    title = await read_title(page)
    return title if title_has_error_marker(title, markers) else None
