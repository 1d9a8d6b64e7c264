# episode_linker/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from .utils import extract_first_int

OUTPUT_COLUMNS = ["Title", "Show", "Season", "Episode", "URL", "target"]


def _cell(row: Mapping[str, Any], *names: str) -> str:
    """Returns the first non-empty value among ``names`` (case-insensitive)."""
    lowered = {str(k).strip().lower(): v for k, v in row.items() if k is not None}
    for name in names:
        value = lowered.get(name.lower())
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


@dataclass(frozen=True)
class SearchRecord:
    """One input row: a scraped show/episode to be linked."""

    title: str
    show: str
    season: int | None
    episode: int | None
    source_url: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SearchRecord":
        title = _cell(row, "Title")
        return cls(
            title=title,
            show=_cell(row, "Show") or title,
            season=extract_first_int(_cell(row, "Season")),
            episode=extract_first_int(_cell(row, "Episode")),
            source_url=_cell(row, "URL"),
        )

    @property
    def wants_episode(self) -> bool:
        return self.season is not None and self.episode is not None


@dataclass(frozen=True)
class MatchEntry:
    """A confirmed resolution of a search term to a catalog URL."""

    search_term: str
    best_match: str


@dataclass(frozen=True)
class OutputRecord:
    """The single output row produced for a ``SearchRecord``."""

    title: str
    show: str
    season: int | None
    episode: int | None
    source_url: str
    target_url: str

    @classmethod
    def for_record(
        cls,
        record: SearchRecord,
        target_url: str,
        *,
        keep_episode_fields: bool = True,
    ) -> "OutputRecord":
        return cls(
            title=record.title,
            show=record.show,
            season=record.season if keep_episode_fields else None,
            episode=record.episode if keep_episode_fields else None,
            source_url=record.source_url,
            target_url=target_url,
        )

    def to_csv_line(self) -> str:
        """Title is always quoted; the other fields are written as-is."""
        title = self.title.replace('"', '""')
        season = "" if self.season is None else str(self.season)
        episode = "" if self.episode is None else str(self.episode)
        return (
            f'"{title}",{self.show},{season},{episode},'
            f"{self.source_url},{self.target_url}"
        )


class EpisodeOutcome(str, Enum):
    """How an episode lookup ended."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    PAGE_ERROR = "page_error"
    NAVIGATION_FAILED = "navigation_failed"


@dataclass(frozen=True)
class EpisodeResult:
    outcome: EpisodeOutcome
    url: str | None = None

    @property
    def found(self) -> bool:
        return self.outcome is EpisodeOutcome.FOUND and bool(self.url)


@dataclass
class RunStats:
    """Counters for the end-of-run summary."""

    total: int = 0
    completed: int = 0
    show_matches: int = 0
    episode_matches: int = 0
    fallbacks: int = 0
    errors: int = 0
