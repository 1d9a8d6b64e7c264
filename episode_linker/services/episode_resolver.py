# episode_linker/services/episode_resolver.py

from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import RetryPolicy, SiteProfile, logger
from ..errors import ElementNotFoundError, PageError
from ..models import EpisodeOutcome, EpisodeResult
from ..utils import absolutize_url, build_season_url, first_line
from .navigation import detect_error_page, navigate_with_retry


def closest_with_class(element: Tag, class_name: str) -> Tag | None:
    """Walks from ``element`` (inclusive) up to the nearest ``class_name`` ancestor."""
    node: Any = element
    while isinstance(node, Tag):
        classes = node.get("class") or []
        if class_name in classes:
            return node
        node = node.parent
    return None


def find_episode_link(
    html: str,
    episode: int,
    index_selector: str = ".episode .epNum",
    container_class: str = "episode",
) -> str | None:
    """
    Finds the link of episode ``episode`` on a season listing page.

    Index elements are scanned in document order and the first one whose text
    is exactly ``E<episode>`` wins. The link is the first anchor inside the
    nearest enclosing episode container. A matched entry without a link
    yields ``None``.
    """
    soup = BeautifulSoup(html, "lxml")
    target = f"E{episode}"

    for element in soup.select(index_selector):
        if not isinstance(element, Tag) or element.get_text(strip=True) != target:
            continue
        container = closest_with_class(element, container_class)
        if container is None:
            return None
        anchor = container.find("a")
        if not isinstance(anchor, Tag):
            return None
        href = anchor.get("href")
        return href if isinstance(href, str) and href else None

    return None


class EpisodeResolver:
    """Locates a specific episode's URL from a show's season listing page."""

    def __init__(
        self,
        page: Any,
        site: SiteProfile,
        retry: RetryPolicy | None = None,
        failed_seasons: set[str] | None = None,
    ) -> None:
        self.page = page
        self.site = site
        self.retry = retry or RetryPolicy()
        # Shared between workers so an error page is only ever visited once.
        self.failed_seasons = failed_seasons if failed_seasons is not None else set()

    async def resolve_episode(
        self, show_url: str, season: int, episode: int
    ) -> EpisodeResult:
        season_url = build_season_url(show_url, season)

        if season_url in self.failed_seasons:
            logger.info(f"[EPISODE] Skipping {season_url}; it returned an error page")
            return EpisodeResult(EpisodeOutcome.PAGE_ERROR)

        if season_url not in (self.page.url or ""):
            logger.info(f"[EPISODE] Identified season link: {season_url}")
            nav = await navigate_with_retry(
                self.page,
                season_url,
                self.retry,
                timeout_ms=self.site.navigation_timeout_ms,
            )
            if not nav.ok:
                return EpisodeResult(EpisodeOutcome.NAVIGATION_FAILED)

        error_title = await detect_error_page(self.page, self.site.error_title_markers)
        if error_title is not None:
            self.failed_seasons.add(season_url)
            logger.error(f"[EPISODE] {PageError(season_url, error_title)}")
            return EpisodeResult(EpisodeOutcome.PAGE_ERROR)

        try:
            await self.page.wait_for_selector(
                self.site.episode_index, timeout=self.site.episode_wait_ms
            )
            html = await self.page.content()
        except PlaywrightTimeoutError:
            missing = ElementNotFoundError(
                self.site.episode_index, self.site.episode_wait_ms
            )
            logger.warning(f"[EPISODE] No episodes listed on {season_url}: {missing}")
            return EpisodeResult(EpisodeOutcome.NOT_FOUND)
        except PlaywrightError as e:
            logger.warning(
                f"[EPISODE] Error finding and processing episode: {first_line(str(e))}"
            )
            return EpisodeResult(EpisodeOutcome.NOT_FOUND)

        href = find_episode_link(
            html, episode, self.site.episode_index, self.site.episode_container_class
        )
        if not href:
            logger.info(f"[EPISODE] E{episode} not listed on {season_url}")
            return EpisodeResult(EpisodeOutcome.NOT_FOUND)

        episode_url = absolutize_url(href, self.site.base_url)
        logger.info(f"[EPISODE] Identified episode link for E{episode}: {episode_url}")
        return EpisodeResult(EpisodeOutcome.FOUND, episode_url)
