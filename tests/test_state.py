import logging

from episode_linker.models import MatchEntry
from episode_linker.state import MatchCache, load_matches, save_matches


def test_record_clears_not_found_mark():
    cache = MatchCache()
    cache.mark_not_found("Teen Mom")
    cache.record("Teen Mom", "https://www.example.com/shows/teen-mom/")

    assert not cache.is_not_found("Teen Mom")
    assert cache.lookup("Teen Mom").best_match.endswith("teen-mom/")


def test_mark_not_found_ignored_for_matched_term():
    cache = MatchCache([MatchEntry("Catfish", "https://www.example.com/shows/catfish/")])
    cache.mark_not_found("Catfish")

    assert not cache.is_not_found("Catfish")
    assert cache.not_found == frozenset()


def test_preloaded_entries_keep_first_duplicate():
    cache = MatchCache(
        [MatchEntry("A", "https://first/"), MatchEntry("A", "https://second/")]
    )
    assert len(cache) == 1
    assert cache.lookup("A").best_match == "https://first/"


def test_load_matches_missing_file(tmp_path, caplog):
    with caplog.at_level(logging.INFO):
        cache = load_matches(str(tmp_path / "matches.csv"))
    assert len(cache) == 0
    assert "not found" in caplog.text


def test_load_matches_skips_incomplete_rows(tmp_path):
    path = tmp_path / "matches.csv"
    path.write_text(
        "item,url\n"
        "Teen Mom,https://www.example.com/shows/teen-mom/\n"
        ",https://www.example.com/shows/orphan/\n"
        "No Url,\n"
        "\n",
        encoding="utf-8",
    )
    cache = load_matches(str(path))

    assert len(cache) == 1
    assert cache.lookup("Teen Mom") is not None


def test_load_matches_unreadable_file_starts_empty(tmp_path, caplog):
    path = tmp_path / "matches.csv"
    path.write_bytes(b"item,url\n\xff\xfe\xfa,bad\n")
    with caplog.at_level(logging.ERROR):
        cache = load_matches(str(path))
    assert len(cache) == 0
    assert "Could not read matches file" in caplog.text


def test_save_matches_writes_item_url_csv(tmp_path):
    path = tmp_path / "matches.csv"
    cache = MatchCache()
    cache.record("Ridiculousness", "https://www.example.com/shows/ridiculousness/")
    cache.record("Siesta Key", "https://www.example.com/shows/siesta-key/video/x/")

    save_matches(str(path), cache)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "item,url"
    assert "Siesta Key,https://www.example.com/shows/siesta-key/video/x/" in lines
    assert len(load_matches(str(path))) == 2
