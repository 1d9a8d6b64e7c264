from .catalog_search import IncrementalSearchDriver, filter_show_results
from .episode_resolver import EpisodeResolver, closest_with_class, find_episode_link
from .navigation import NavigationResult, navigate_with_retry
from .pipeline import RecordProcessor, RunContext, run_linker, run_pipeline
from .scoring import ShowMatcher, dice_coefficient, resolve_scorer, similarity
from .source_crawler import SourceCrawler, crawl_sources, run_crawler

__all__ = [
    "IncrementalSearchDriver",
    "filter_show_results",
    "EpisodeResolver",
    "closest_with_class",
    "find_episode_link",
    "NavigationResult",
    "navigate_with_retry",
    "RecordProcessor",
    "RunContext",
    "run_linker",
    "run_pipeline",
    "ShowMatcher",
    "dice_coefficient",
    "resolve_scorer",
    "similarity",
    "SourceCrawler",
    "crawl_sources",
    "run_crawler",
]
