# episode_linker/services/catalog_search.py

from __future__ import annotations

from typing import Any

from playwright.async_api import Error as PlaywrightError

from ..config import RetryPolicy, SiteProfile, logger
from ..state import MatchCache
from ..utils import first_line, normalize_search_term
from .navigation import navigate_with_retry
from .scoring import ShowMatcher

# Runs in the page: plain href/text pairs keep DOM handles out of Python.
_READ_RESULTS_JS = """
elements => elements.map(el => ({
    href: el.href || el.getAttribute('href') || '',
    text: (el.innerText || el.textContent || '').trim()
}))
"""


def filter_show_results(
    results: list[dict[str, str]], show_path_marker: str, excluded_text: list[str]
) -> list[str]:
    """Keeps show links only, dropping pagination entries such as "More results"."""
    excluded = [t.lower() for t in excluded_text if t]
    hrefs: list[str] = []
    for result in results:
        href = str(result.get("href") or "")
        text = str(result.get("text") or "").lower()
        if not href or show_path_marker not in href:
            continue
        if any(marker in text for marker in excluded):
            continue
        hrefs.append(href)
    return hrefs


class IncrementalSearchDriver:
    """
    Resolves a show title through a site's search-as-you-type box.

    The term is typed one character at a time. After each keystroke the
    driver waits out the site's debounce, reads the show results and asks the
    matcher for a confident pick. It stops at the first match, or gives up
    early (marking the term not found) once more than ``min_search_length``
    characters have produced an empty result list. Confident picks are
    recorded by the matcher, which must share ``cache``.
    """

    def __init__(
        self,
        page: Any,
        site: SiteProfile,
        matcher: ShowMatcher,
        cache: MatchCache,
        *,
        min_search_length: int = 3,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.page = page
        self.site = site
        self.matcher = matcher
        self.cache = cache
        self.min_search_length = min_search_length
        self.retry = retry or RetryPolicy()

    async def resolve_show(self, search_term: str) -> str | None:
        """
        Returns the show URL for ``search_term`` or ``None``.

        Raises ``NavigationError`` if the search page cannot be opened.
        """
        term = normalize_search_term(search_term)
        if not term:
            return None

        if self.cache.is_not_found(term):
            logger.info(f"[SEARCH] Skipped '{term}' as it was not found previously")
            return None

        existing = self.cache.lookup(term)
        if existing is not None:
            return existing.best_match

        logger.info(f"[SEARCH] Searching {self.site.site_name} for: '{term}'")
        result = await navigate_with_retry(
            self.page,
            self.site.search_url,
            self.retry,
            timeout_ms=self.site.navigation_timeout_ms,
        )
        if not result.ok:
            raise result.as_error()

        return await self._type_and_match(term)

    async def _type_and_match(self, term: str) -> str | None:
        selector = self.site.search_input
        await self.page.fill(selector, "")

        for typed_count, char in enumerate(term, start=1):
            await self.page.type(selector, char)
            await self.page.wait_for_timeout(self.site.debounce_ms)

            hrefs = await self._read_show_results()
            if hrefs is None:
                continue

            if typed_count > self.min_search_length and not hrefs:
                logger.warning(
                    f"[SEARCH] No search results found after {typed_count} characters "
                    f"for '{term}'"
                )
                self.cache.mark_not_found(term)
                return None

            best_url, _ = self.matcher.best_match(term, hrefs)
            if best_url:
                return best_url

        logger.info(
            f"[SEARCH] No confident match for '{term}' after typing the full title"
        )
        return None

    async def _read_show_results(self) -> list[str] | None:
        """Current show hrefs, or ``None`` if the results could not be read."""
        try:
            results = await self.page.eval_on_selector_all(
                self.site.search_results, _READ_RESULTS_JS
            )
        except PlaywrightError as e:
            logger.warning(
                f"[SEARCH] Could not read search results: {first_line(str(e))}"
            )
            return None
        return filter_show_results(
            results or [], self.site.show_path_marker, self.site.excluded_result_text
        )
