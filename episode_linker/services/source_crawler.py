# episode_linker/services/source_crawler.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from ..config import RetryPolicy, logger
from ..ui.console import ProgressReporter
from ..utils import first_line, parse_season_episode
from .csv_store import ErrorLog, error_log_path, read_rows, write_rows
from .navigation import detect_error_page, navigate_with_retry, read_title

DEFAULT_TITLE_SELECTOR = ".title-wrap > a > div"
DEFAULT_TITLE_TIMEOUT_MS = 10000
DEFAULT_NAVIGATION_TIMEOUT_MS = 15000
DEFAULT_SOURCE_ERROR_MARKERS = ["Error 404", "Server Error"]
CRAWL_COLUMNS = ["URL", "Title", "Season", "Episode", "Show"]


@dataclass
class CrawlResult:
    url: str
    title: str | None = None
    season: int | None = None
    episode: int | None = None
    attempts: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.title)

    def as_row(self) -> list[Any]:
        return [self.url, self.title, self.season, self.episode, self.title]


class SourceCrawler:
    """Reads a show title and season/episode numbers from one source page."""

    def __init__(
        self,
        page: Any,
        retry: RetryPolicy | None = None,
        *,
        title_selector: str = DEFAULT_TITLE_SELECTOR,
        title_timeout_ms: int = DEFAULT_TITLE_TIMEOUT_MS,
        navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
        error_title_markers: list[str] | None = None,
    ) -> None:
        self.page = page
        self.retry = retry or RetryPolicy()
        self.title_selector = title_selector
        self.title_timeout_ms = title_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.error_title_markers = (
            error_title_markers
            if error_title_markers is not None
            else list(DEFAULT_SOURCE_ERROR_MARKERS)
        )

    async def crawl(self, url: str) -> CrawlResult:
        logger.info(f"[CRAWL] Crawling: {url}")
        nav = await navigate_with_retry(
            self.page, url, self.retry, timeout_ms=self.navigation_timeout_ms
        )
        if not nav.ok:
            return CrawlResult(url=url, attempts=nav.attempts, error=nav.error)

        error_title = await detect_error_page(self.page, self.error_title_markers)
        if error_title is not None:
            logger.error(f"[CRAWL] Error page for {url}: {error_title}")
            return CrawlResult(
                url=url, attempts=nav.attempts, error=f"Error page: {error_title}"
            )

        try:
            element = await self.page.wait_for_selector(
                self.title_selector, timeout=self.title_timeout_ms
            )
            title = (await element.text_content() or "").strip() if element else ""
        except PlaywrightTimeoutError:
            title = ""
        except PlaywrightError as e:
            return CrawlResult(
                url=url, attempts=nav.attempts, error=first_line(str(e))
            )

        if not title:
            logger.error(f"[CRAWL] Title not found for {url}")
            return CrawlResult(url=url, attempts=nav.attempts, error="Title not found")

        season, episode = parse_season_episode(await read_title(self.page))
        if season is not None and episode is not None:
            logger.info(f"[CRAWL] Episode data found: {title} S{season} E{episode}")
        else:
            logger.info(f"[CRAWL] Show title found: {title}")
        return CrawlResult(
            url=url,
            title=title,
            season=season,
            episode=episode,
            attempts=nav.attempts,
        )


def sort_results(results: list[CrawlResult]) -> list[CrawlResult]:
    """Orders by title, then season, then episode; missing numbers sort first."""
    return sorted(
        results,
        key=lambda r: (r.title or "", r.season or 0, r.episode or 0),
    )


async def crawl_sources(
    urls: list[str],
    page_factory: Callable[[], Awaitable[Any]],
    *,
    retry: RetryPolicy | None = None,
    workers: int = 1,
    progress: ProgressReporter | None = None,
    **crawler_options: Any,
) -> tuple[list[CrawlResult], ErrorLog]:
    """Crawls each distinct URL once and returns the successes plus an error log."""
    unique_urls: list[str] = []
    seen: set[str] = set()
    for url in urls:
        cleaned = url.strip()
        if not cleaned:
            continue
        if cleaned in seen:
            logger.info(f"[CRAWL] Skipping: {cleaned} (already crawled)")
            continue
        seen.add(cleaned)
        unique_urls.append(cleaned)

    results: list[CrawlResult] = []
    errors = ErrorLog()
    if not unique_urls:
        return results, errors

    queue: asyncio.Queue[str] = asyncio.Queue()
    for url in unique_urls:
        queue.put_nowait(url)

    async def _worker() -> None:
        page = await page_factory()
        crawler = SourceCrawler(page, retry, **crawler_options)
        try:
            while True:
                try:
                    url = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                result = await crawler.crawl(url)
                if result.ok:
                    results.append(result)
                else:
                    errors.add(result.url, result.error or "unknown error")
                if progress is not None:
                    progress.advance()
        finally:
            try:
                await page.close()
            except PlaywrightError:
                logger.debug("[CRAWL] Page close failed", exc_info=True)

    worker_count = max(1, min(workers, len(unique_urls)))
    await asyncio.gather(*(_worker() for _ in range(worker_count)))
    return sort_results(results), errors


def read_source_urls(file_path: str) -> list[str]:
    urls = []
    for row in read_rows(file_path):
        value = row.get("URL") or row.get("url") or ""
        if value.strip():
            urls.append(value.strip())
    return urls


async def run_crawler(
    input_file: str,
    output_file: str,
    *,
    retry: RetryPolicy | None = None,
    workers: int = 1,
    headless: bool = True,
    show_progress: bool = True,
    **crawler_options: Any,
) -> tuple[list[CrawlResult], ErrorLog]:
    """Crawls the URLs listed in ``input_file`` and writes a linker input CSV."""
    urls = read_source_urls(input_file)
    logger.info(f"[CRAWL] Read {len(urls)} URLs from '{input_file}'.")

    total = len(dict.fromkeys(urls))
    with ProgressReporter(total, "Crawling", enabled=show_progress) as progress:
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=headless)
            try:
                context = await browser.new_context(
                    java_script_enabled=False,
                    viewport={"width": 500, "height": 900},
                )
                results, errors = await crawl_sources(
                    urls,
                    context.new_page,
                    retry=retry,
                    workers=workers,
                    progress=progress,
                    **crawler_options,
                )
                await context.close()
            finally:
                await browser.close()

    write_rows(output_file, CRAWL_COLUMNS, (r.as_row() for r in results))
    logger.info(
        f"[CRAWL] Crawling and extraction complete. Output saved to '{output_file}'"
    )
    errors.write(error_log_path(output_file))
    return results, errors
