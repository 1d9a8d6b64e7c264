# episode_linker/utils.py

import re
from urllib.parse import urljoin, urlparse

_SUBTITLE_DELIMITER = " - "
_DISALLOWED_SLUG_CHARS = re.compile(r"[^a-z0-9 -]")
_WHITESPACE = re.compile(r"\s+")
_REPEATED_HYPHENS = re.compile(r"-+")
_SEASON_EPISODE_PATTERN = re.compile(r"Season (\d+), Ep\. (\d+)")


def slugify(title: str) -> str:
    """
    Converts a raw show title into a comparable slug.

    Anything after the first " - " is treated as a subtitle or episode
    fragment and dropped.

    Examples:
        - "Example Show - Extra" -> "example-show"
        - "Show: Name - Ep 2" -> "show-name"
    """
    if not title:
        return ""
    head = title.split(_SUBTITLE_DELIMITER, 1)[0].lower()
    head = _DISALLOWED_SLUG_CHARS.sub("", head)
    head = _WHITESPACE.sub("-", head)
    head = _REPEATED_HYPHENS.sub("-", head)
    return head.strip("-")


def normalize_search_term(show: str | None) -> str:
    """Collapses whitespace runs to single spaces; the result is the cache key."""
    if not show:
        return ""
    return _WHITESPACE.sub(" ", show).strip()


def normalize_candidate_url(url: str, base_url: str) -> str:
    """Lowercases a result URL and strips the shows base path and trailing slash."""
    normalized = url.lower().replace(base_url.lower(), "", 1)
    return normalized[:-1] if normalized.endswith("/") else normalized


def build_season_url(show_url: str, season: int) -> str:
    """Season listing pages live at ``<show_url>episodes/<season>/``."""
    base = show_url if show_url.endswith("/") else f"{show_url}/"
    return f"{base}episodes/{season}/"


def absolutize_url(href: str, base_url: str) -> str:
    """Joins relative links against ``base_url``; absolute links pass through."""
    if urlparse(href).scheme:
        return href
    return urljoin(f"{base_url.rstrip('/')}/", href)


def title_has_error_marker(title: str, markers: list[str]) -> bool:
    """
    True when the page title contains any error sentinel.

    Matching is case-sensitive so show names such as "The Terror" are not
    mistaken for an "Error" page.
    """
    return any(marker in (title or "") for marker in markers if marker)


def extract_first_int(text: str | None) -> int | None:
    """Safely extracts the first integer from a string."""
    if not text:
        return None
    match = re.search(r"\d+", str(text).strip())
    return int(match.group(0)) if match else None


def parse_season_episode(page_title: str) -> tuple[int | None, int | None]:
    """Reads "Season X, Ep. Y" out of a page title."""
    match = _SEASON_EPISODE_PATTERN.search(page_title or "")
    if not match:
        return None, None
    return int(match.group(1)), int(match.group(2))


def first_line(message: str) -> str:
    """Playwright errors carry a call log after the first line; keep the summary."""
    return (message or "").split("\n", 1)[0].strip()
