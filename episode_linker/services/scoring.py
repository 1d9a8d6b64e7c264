# episode_linker/services/scoring.py

from __future__ import annotations

import re
from collections import Counter
from typing import TYPE_CHECKING, Callable, Iterable

from thefuzz import fuzz

from ..config import logger
from ..utils import normalize_candidate_url, slugify

if TYPE_CHECKING:
    from ..state import MatchCache

Scorer = Callable[[str, str], float]

_WHITESPACE = re.compile(r"\s+")


def _bigrams(text: str) -> list[str]:
    return [text[i : i + 2] for i in range(len(text) - 1)]


def dice_coefficient(first: str, second: str) -> float:
    """
    Sørensen-Dice similarity over character bigrams, in [0, 1].

    Whitespace is ignored. Identical strings score 1.0; strings too short to
    form a bigram score 0.0 unless identical. Repeated bigrams are counted as
    a multiset, so the score is symmetric.
    """
    first = _WHITESPACE.sub("", first or "")
    second = _WHITESPACE.sub("", second or "")

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(_bigrams(first))
    intersection = 0
    for bigram in _bigrams(second):
        if first_bigrams[bigram] > 0:
            first_bigrams[bigram] -= 1
            intersection += 1

    return (2.0 * intersection) / (len(first) + len(second) - 2)


def resolve_scorer(name: str | None) -> Scorer:
    """
    Maps a scorer name to a function returning a score in [0, 1].

    "dice" selects the bigram coefficient; any other name is looked up on
    ``thefuzz.fuzz`` (e.g. "ratio", "token_sort_ratio") and rescaled from
    0-100. Unknown names fall back to Dice.
    """
    scorer_name = (name or "dice").strip()
    if scorer_name == "dice":
        return dice_coefficient

    fuzz_scorer = getattr(fuzz, scorer_name, None)
    if not callable(fuzz_scorer):
        logger.warning(
            "[MATCH] Unknown fuzz scorer '%s'; defaulting to 'dice'", scorer_name
        )
        return dice_coefficient

    def _scaled(first: str, second: str) -> float:
        return fuzz_scorer(first, second) / 100.0

    return _scaled


def similarity(first: str, second: str, scorer: str = "dice") -> float:
    return resolve_scorer(scorer)(first, second)


class ShowMatcher:
    """Picks the search result that best matches a show title.

    Candidates are result URLs. Both sides are normalized before scoring: the
    query is slugified and each URL has the site's shows prefix and trailing
    slash removed. A candidate must score strictly above ``min_confidence``;
    among those the first one reaching the highest score wins.
    """

    def __init__(
        self,
        shows_url: str,
        min_confidence: float = 0.6,
        scorer: str = "dice",
        cache: "MatchCache | None" = None,
    ) -> None:
        self.shows_url = shows_url
        self.min_confidence = min_confidence
        self.scorer_name = scorer
        self._scorer = resolve_scorer(scorer)
        self.cache = cache

    def score(self, query: str, candidate_url: str) -> float:
        return self._scorer(
            slugify(query), normalize_candidate_url(candidate_url, self.shows_url)
        )

    def best_match(
        self, query: str, candidates: Iterable[str]
    ) -> tuple[str | None, float]:
        """
        Returns ``(url, score)`` for the winning candidate, or ``(None, best)``
        where ``best`` is the highest score seen when nothing clears the floor.
        """
        normalized_query = slugify(query)
        best_url: str | None = None
        highest_score = 0.0
        best_seen = 0.0

        for url in candidates:
            score = self._scorer(
                normalized_query, normalize_candidate_url(url, self.shows_url)
            )
            best_seen = max(best_seen, score)
            if score > self.min_confidence and score > highest_score:
                best_url = url
                highest_score = score

        if best_url is None:
            return None, best_seen

        logger.info(
            f"[MATCH] Best match for '{query}' is {best_url} with a score of "
            f"{round(highest_score * 100)}%"
        )
        if self.cache is not None:
            self.cache.record(query, best_url)
        return best_url, highest_score
