import logging

import pytest

from episode_linker.services.scoring import (
    ShowMatcher,
    dice_coefficient,
    resolve_scorer,
    similarity,
)
from episode_linker.state import MatchCache

SHOWS_URL = "https://www.example.com/shows/"


def test_dice_identity_and_disjoint():
    assert dice_coefficient("teen-mom", "teen-mom") == 1.0
    assert dice_coefficient("abc", "xyz") == 0.0


def test_dice_short_strings():
    assert dice_coefficient("a", "a") == 1.0
    assert dice_coefficient("a", "ab") == 0.0
    assert dice_coefficient("", "ab") == 0.0


def test_dice_known_value():
    # "night" / "nacht" share only "ht": 2 * 1 / (4 + 4)
    assert dice_coefficient("night", "nacht") == pytest.approx(0.25)


def test_dice_ignores_whitespace():
    assert dice_coefficient("teen mom", "teenmom") == 1.0


@pytest.mark.parametrize(
    "first, second",
    [
        ("aaaa", "aa"),
        ("teen-mom-2", "teen-mom"),
        ("the-challenge", "challenge"),
    ],
)
def test_dice_is_symmetric_and_bounded(first, second):
    forward = dice_coefficient(first, second)
    assert forward == pytest.approx(dice_coefficient(second, first))
    assert 0.0 <= forward <= 1.0


def test_dice_counts_repeated_bigrams_once_each():
    # "aaaa" has three "aa" bigrams but "aa" only one.
    assert dice_coefficient("aaaa", "aa") == pytest.approx(2 * 1 / 4)


def test_resolve_scorer_uses_thefuzz():
    scorer = resolve_scorer("ratio")
    assert scorer("teen-mom", "teen-mom") == pytest.approx(1.0)
    assert 0.0 <= scorer("teen-mom", "catfish") < 1.0


def test_resolve_scorer_unknown_name_falls_back(caplog):
    with caplog.at_level(logging.WARNING):
        scorer = resolve_scorer("does_not_exist")
    assert scorer is dice_coefficient
    assert "Unknown fuzz scorer 'does_not_exist'" in caplog.text


def test_similarity_defaults_to_dice():
    assert similarity("night", "nacht") == pytest.approx(0.25)


def test_best_match_prefers_highest_score():
    matcher = ShowMatcher(SHOWS_URL)
    candidates = [
        f"{SHOWS_URL}teen-mom-2/",
        f"{SHOWS_URL}teen-mom/",
        f"{SHOWS_URL}teen-wolf/",
    ]
    url, score = matcher.best_match("Teen Mom", candidates)
    assert url == f"{SHOWS_URL}teen-mom/"
    assert score == 1.0


def test_best_match_first_wins_ties():
    matcher = ShowMatcher(SHOWS_URL)
    candidates = [f"{SHOWS_URL}catfish/", f"{SHOWS_URL}CATFISH/"]
    url, _ = matcher.best_match("Catfish", candidates)
    assert url == candidates[0]


def test_best_match_requires_score_above_floor():
    matcher = ShowMatcher(SHOWS_URL, min_confidence=0.6)
    url, best_seen = matcher.best_match("Ridiculousness", [f"{SHOWS_URL}rid/"])
    assert url is None
    assert 0.0 < best_seen <= 0.6


def test_best_match_floor_is_strict(mocker):
    matcher = ShowMatcher(SHOWS_URL, min_confidence=0.6)
    mocker.patch.object(matcher, "_scorer", return_value=0.6)
    url, best_seen = matcher.best_match("x", [f"{SHOWS_URL}x/"])
    assert url is None
    assert best_seen == 0.6


def test_best_match_empty_candidates():
    assert ShowMatcher(SHOWS_URL).best_match("Teen Mom", []) == (None, 0.0)


def test_best_match_records_in_cache(caplog):
    cache = MatchCache()
    matcher = ShowMatcher(SHOWS_URL, cache=cache)
    with caplog.at_level(logging.INFO):
        matcher.best_match("Siesta Key", [f"{SHOWS_URL}siesta-key/"])

    assert cache.lookup("Siesta Key").best_match == f"{SHOWS_URL}siesta-key/"
    assert "score of 100%" in caplog.text


def test_score_normalizes_both_sides():
    matcher = ShowMatcher(SHOWS_URL)
    assert matcher.score("Teen Mom - Season 1", f"{SHOWS_URL}Teen-Mom/") == 1.0
