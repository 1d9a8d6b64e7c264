# episode_linker/services/pipeline.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ..config import LinkerConfig, SiteProfile, load_site_profile, logger
from ..errors import EpisodeLinkerError, ShowNotFoundError
from ..models import EpisodeOutcome, OutputRecord, RunStats, SearchRecord
from ..state import MatchCache, load_matches, save_matches
from ..ui.console import ProgressReporter
from ..utils import first_line, normalize_search_term
from .catalog_search import IncrementalSearchDriver
from .csv_store import ErrorLog, OutputWriter, error_log_path, read_records
from .episode_resolver import EpisodeResolver
from .scoring import ShowMatcher

PageFactory = Callable[[], Awaitable[Any]]


@dataclass
class RunContext:
    """State shared by every worker for the duration of one run."""

    site: SiteProfile
    settings: LinkerConfig
    cache: MatchCache
    writer: OutputWriter
    progress: ProgressReporter
    stats: RunStats = field(default_factory=RunStats)
    errors: ErrorLog = field(default_factory=ErrorLog)
    failed_seasons: set[str] = field(default_factory=set)


class RecordProcessor:
    """Turns one ``SearchRecord`` into exactly one written ``OutputRecord``.

    Each worker owns a processor and the page it drives; the search driver and
    episode resolver take turns on that page.
    """

    def __init__(self, page: Any, ctx: RunContext) -> None:
        self.ctx = ctx
        settings = ctx.settings
        matcher = ShowMatcher(
            ctx.site.shows_url,
            min_confidence=settings.min_confidence,
            scorer=settings.scorer,
            cache=ctx.cache,
        )
        self.search = IncrementalSearchDriver(
            page,
            ctx.site,
            matcher,
            ctx.cache,
            min_search_length=settings.min_search_length,
            retry=settings.retry,
        )
        self.episodes = EpisodeResolver(
            page, ctx.site, settings.retry, failed_seasons=ctx.failed_seasons
        )

    async def process(self, record: SearchRecord) -> OutputRecord:
        try:
            output = await self._resolve(record)
        except (EpisodeLinkerError, PlaywrightError) as e:
            output = self._fail(record, first_line(str(e)))
        except Exception as e:  # noqa: BLE001
            logger.exception(f"[PIPELINE] Unexpected error for '{record.title}'")
            output = self._fail(record, f"{type(e).__name__}: {first_line(str(e))}")

        try:
            await self.ctx.writer.write(output)
        except OSError as e:
            logger.error(
                f"[PIPELINE] Could not write row for '{record.title}': {e}"
            )
            self.ctx.stats.errors += 1
            self.ctx.errors.add(record.source_url, f"Output write failed: {e}")
        return output

    def _fallback(self, record: SearchRecord) -> OutputRecord:
        self.ctx.stats.fallbacks += 1
        return OutputRecord.for_record(record, self.ctx.site.fallback_url)

    def _fail(self, record: SearchRecord, reason: str) -> OutputRecord:
        logger.error(f"[PIPELINE] Error processing '{record.title}': {reason}")
        self.ctx.stats.errors += 1
        self.ctx.errors.add(record.source_url, reason)
        return self._fallback(record)

    async def _resolve(self, record: SearchRecord) -> OutputRecord:
        term = normalize_search_term(record.show)
        if not term:
            logger.warning(f"[PIPELINE] No show name for '{record.source_url}'")
            return self._fallback(record)

        if self.ctx.cache.is_not_found(term):
            logger.info(f"[PIPELINE] Skipped '{term}' as it was not found previously")
            return self._fallback(record)

        existing = self.ctx.cache.lookup(term)
        if existing is not None:
            show_url: str | None = existing.best_match
            logger.info(f"[PIPELINE] Already matched '{term}': {show_url}")
        else:
            show_url = await self.search.resolve_show(term)

        if not show_url:
            logger.warning(f"[PIPELINE] {ShowNotFoundError(term)}")
            return self._fallback(record)

        self.ctx.stats.show_matches += 1
        if self.ctx.site.video_path_marker in show_url:
            logger.info(f"[PIPELINE] Identified video link for '{term}': {show_url}")
            return OutputRecord.for_record(record, show_url)

        if not record.wants_episode:
            return OutputRecord.for_record(record, show_url)

        result = await self.episodes.resolve_episode(
            show_url, record.season, record.episode
        )
        if result.found and result.url:
            self.ctx.stats.episode_matches += 1
            return OutputRecord.for_record(record, result.url)

        if result.outcome is EpisodeOutcome.NAVIGATION_FAILED:
            self.ctx.stats.errors += 1
            self.ctx.errors.add(
                record.source_url, f"Season {record.season} page could not be loaded"
            )
            return OutputRecord.for_record(record, show_url, keep_episode_fields=False)

        return OutputRecord.for_record(record, show_url)


async def run_pipeline(
    records: list[SearchRecord],
    ctx: RunContext,
    page_factory: PageFactory,
    workers: int = 1,
) -> RunStats:
    """
    Processes ``records`` with up to ``workers`` pages pulling from one queue.

    Row order in the output follows completion order, not input order.
    """
    ctx.stats.total = len(records)
    if not records:
        return ctx.stats

    queue: asyncio.Queue[SearchRecord] = asyncio.Queue()
    for record in records:
        queue.put_nowait(record)

    async def _worker(worker_id: int) -> None:
        page = await page_factory()
        processor = RecordProcessor(page, ctx)
        logger.debug(f"[PIPELINE] Worker {worker_id} started")
        try:
            while True:
                try:
                    record = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                await processor.process(record)
                ctx.stats.completed += 1
                ctx.progress.advance()
        finally:
            try:
                await page.close()
            except PlaywrightError:
                logger.debug("[PIPELINE] Page close failed", exc_info=True)

    worker_count = max(1, min(workers, len(records)))
    await asyncio.gather(*(_worker(i) for i in range(worker_count)))
    return ctx.stats


async def run_linker(
    settings: LinkerConfig,
    *,
    persist_matches: bool = False,
    show_progress: bool = True,
) -> RunStats:
    """
    Links every record of ``settings.input_file`` and appends the results to
    ``settings.output_file``.

    Failing to read the input, load the site profile or launch the browser is
    fatal and propagates; anything that goes wrong for a single record is
    turned into a fallback row.
    """
    site = load_site_profile(settings.site_config)
    records = read_records(settings.input_file)
    cache = load_matches(settings.matches_file)
    writer = OutputWriter(settings.output_file)

    with ProgressReporter(len(records), enabled=show_progress) as progress:
        ctx = RunContext(
            site=site,
            settings=settings,
            cache=cache,
            writer=writer,
            progress=progress,
        )
        async with async_playwright() as p:
            logger.info(
                f"[PIPELINE] Launching Chromium (headless={settings.headless}) "
                f"with {settings.workers} worker(s)"
            )
            browser = await p.chromium.launch(headless=settings.headless)
            try:
                context = await browser.new_context()
                await run_pipeline(records, ctx, context.new_page, settings.workers)
                await context.close()
            finally:
                await browser.close()

    ctx.errors.write(error_log_path(settings.output_file))
    if persist_matches:
        save_matches(settings.matches_file, cache)

    logger.info(
        f"[PIPELINE] Finished: {writer.rows_written} rows written to "
        f"'{settings.output_file}'"
    )
    return ctx.stats
