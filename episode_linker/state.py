# episode_linker/state.py

import csv
import os
import threading

from .config import logger
from .models import MatchEntry


class MatchCache:
    """
    Confirmed search-term → URL matches plus the terms known to have none.

    Entries are never evicted during a run. A term is never held in both the
    match table and the not-found set at the same time.
    """

    def __init__(self, entries: list[MatchEntry] | None = None) -> None:
        self._matches: dict[str, MatchEntry] = {}
        self._not_found: set[str] = set()
        self._lock = threading.Lock()
        for entry in entries or []:
            self._matches.setdefault(entry.search_term, entry)

    def __len__(self) -> int:
        with self._lock:
            return len(self._matches)

    def lookup(self, search_term: str) -> MatchEntry | None:
        with self._lock:
            return self._matches.get(search_term)

    def record(self, search_term: str, url: str) -> MatchEntry:
        with self._lock:
            entry = MatchEntry(search_term=search_term, best_match=url)
            self._matches[search_term] = entry
            self._not_found.discard(search_term)
            return entry

    def mark_not_found(self, search_term: str) -> None:
        with self._lock:
            if search_term in self._matches:
                logger.debug(
                    f"[CACHE] Ignoring not-found mark for matched '{search_term}'"
                )
                return
            self._not_found.add(search_term)

    def is_not_found(self, search_term: str) -> bool:
        with self._lock:
            return search_term in self._not_found

    def entries(self) -> list[MatchEntry]:
        with self._lock:
            return list(self._matches.values())

    @property
    def not_found(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._not_found)


def load_matches(file_path: str) -> MatchCache:
    """
    Preloads confirmed matches from an ``item,url`` CSV.

    This is best effort: a missing or unreadable file is logged and an empty
    cache is returned.
    """
    if not os.path.exists(file_path):
        logger.info(
            f"[CACHE] Matches file '{file_path}' not found. Starting empty."
        )
        return MatchCache()

    try:
        with open(file_path, newline="", encoding="utf-8") as f:
            entries = [
                MatchEntry(
                    search_term=(row.get("item") or "").strip(),
                    best_match=(row.get("url") or "").strip(),
                )
                for row in csv.DictReader(f)
            ]
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        logger.error(
            f"[CACHE] Could not read matches file '{file_path}': {e}. Starting fresh."
        )
        return MatchCache()

    cache = MatchCache([e for e in entries if e.search_term and e.best_match])
    logger.info(f"[CACHE] Loaded {len(cache)} existing matches from '{file_path}'.")
    return cache


def save_matches(file_path: str, cache: MatchCache) -> None:
    """Writes every known match back to an ``item,url`` CSV."""
    entries = cache.entries()
    try:
        with open(file_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["item", "url"])
            for entry in entries:
                writer.writerow([entry.search_term, entry.best_match])
        logger.info(f"[CACHE] Saved {len(entries)} matches to '{file_path}'.")
    except OSError as e:
        logger.error(f"[CACHE] Could not save matches file to '{file_path}': {e}")
