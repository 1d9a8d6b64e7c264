# episode_linker/config.py

import configparser
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml  # type: ignore[import-untyped]
from rich.console import Console
from rich.logging import RichHandler

from .errors import ConfigurationError

# --- Constants ---
DEFAULT_CONFIG_FILE = "config.ini"
DEFAULT_INPUT_FILE = "data.csv"
DEFAULT_OUTPUT_FILE = "output.csv"
DEFAULT_MATCHES_FILE = "matches.csv"
DEFAULT_SITE_CONFIG = str(
    Path(__file__).resolve().parent / "sites" / "paramount_plus.yaml"
)
DEFAULT_MIN_CONFIDENCE = 0.6
DEFAULT_MIN_SEARCH_LENGTH = 3
DEFAULT_DEBOUNCE_MS = 600
DEFAULT_EPISODE_WAIT_MS = 600
DEFAULT_NAVIGATION_TIMEOUT_MS = 15000
DEFAULT_ERROR_TITLE_MARKERS = ["404", "Error", "Not Found"]

# Shared console so log lines render above the progress bar.
console = Console()

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%Y-%m-%d %H:%M:%S]",
    handlers=[RichHandler(console=console, show_path=False, markup=False)],
)
logger = logging.getLogger(__name__)
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("playwright").setLevel(logging.WARNING)

# Cache for site profiles to avoid repeated disk reads.
_config_cache: dict[Path, dict[str, Any]] = {}


@dataclass
class RetryPolicy:
    """Bounded retry settings for navigation."""

    max_attempts: int = 3
    backoff_ms: int = 300


@dataclass
class SiteProfile:
    """Everything the linker needs to know about one target site."""

    site_name: str
    search_url: str
    shows_url: str
    fallback_url: str
    search_input: str = 'input[name="q"]'
    search_results: str = '[data-ci="search-results"] a'
    episode_index: str = ".episode .epNum"
    episode_container_class: str = "episode"
    show_path_marker: str = "/shows/"
    video_path_marker: str = "/video/"
    excluded_result_text: list[str] = field(default_factory=lambda: ["more results"])
    error_title_markers: list[str] = field(
        default_factory=lambda: list(DEFAULT_ERROR_TITLE_MARKERS)
    )
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    episode_wait_ms: int = DEFAULT_EPISODE_WAIT_MS
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS

    @property
    def base_url(self) -> str:
        """Scheme and host of the search URL, used to absolutise relative links."""
        parsed = urlparse(self.search_url)
        return f"{parsed.scheme}://{parsed.netloc}"


@dataclass
class LinkerConfig:
    """Resolved settings for one linker run."""

    input_file: str = DEFAULT_INPUT_FILE
    output_file: str = DEFAULT_OUTPUT_FILE
    matches_file: str = DEFAULT_MATCHES_FILE
    site_config: str = DEFAULT_SITE_CONFIG
    headless: bool = True
    workers: int = 1
    min_confidence: float = DEFAULT_MIN_CONFIDENCE
    min_search_length: int = DEFAULT_MIN_SEARCH_LENGTH
    scorer: str = "dice"
    retry: RetryPolicy = field(default_factory=RetryPolicy)


def get_configuration(config_path: str | None = None) -> LinkerConfig:
    """
    Reads run settings from an INI file.

    When no path is given the default ``config.ini`` is used if present and
    built-in defaults otherwise. An explicitly requested file that does not
    exist is fatal.
    """
    explicit = config_path is not None
    config_path = config_path or DEFAULT_CONFIG_FILE
    if not os.path.exists(config_path):
        if explicit:
            logger.critical(
                f"Configuration file '{config_path}' not found. Please create it."
            )
            sys.exit(1)
        logger.info(
            f"[CONFIG] No '{config_path}' found. Using built-in defaults."
        )
        return LinkerConfig()

    with open(config_path, encoding="utf-8") as f:
        content = f.read()

    parser = configparser.ConfigParser()
    try:
        parser.read_string(content)
    except configparser.Error as e:
        logger.critical(f"Failed to parse '{config_path}': {e}")
        raise ConfigurationError(f"Invalid configuration file: {e}") from e

    settings = LinkerConfig(
        input_file=parser.get("paths", "input_file", fallback=DEFAULT_INPUT_FILE),
        output_file=parser.get("paths", "output_file", fallback=DEFAULT_OUTPUT_FILE),
        matches_file=parser.get(
            "paths", "matches_file", fallback=DEFAULT_MATCHES_FILE
        ),
        site_config=os.path.expanduser(
            parser.get("paths", "site_config", fallback=DEFAULT_SITE_CONFIG)
        ),
        headless=_get_bool(parser, "browser", "headless", True),
        workers=_get_int(parser, "browser", "workers", 1),
        min_confidence=_get_float(
            parser, "matching", "min_confidence", DEFAULT_MIN_CONFIDENCE
        ),
        min_search_length=_get_int(
            parser, "matching", "min_search_length", DEFAULT_MIN_SEARCH_LENGTH
        ),
        scorer=parser.get("matching", "scorer", fallback="dice").strip() or "dice",
        retry=RetryPolicy(
            max_attempts=_get_int(parser, "retry", "max_attempts", 3),
            backoff_ms=_get_int(parser, "retry", "backoff_ms", 300),
        ),
    )
    validate_configuration(settings)
    logger.info(f"[CONFIG] Loaded settings from '{config_path}'.")
    return settings


def validate_configuration(settings: LinkerConfig) -> None:
    """Raises ``ConfigurationError`` for values outside their allowed ranges."""
    if not 0 < settings.min_confidence <= 1:
        raise ConfigurationError(
            f"min_confidence must be in (0, 1], got {settings.min_confidence}"
        )
    if settings.min_search_length < 0:
        raise ConfigurationError("min_search_length must not be negative")
    if settings.workers < 1:
        raise ConfigurationError("workers must be at least 1")
    if settings.retry.max_attempts < 1:
        raise ConfigurationError("max_attempts must be at least 1")
    if settings.retry.backoff_ms < 0:
        raise ConfigurationError("backoff_ms must not be negative")


def _get_int(
    parser: configparser.ConfigParser, section: str, key: str, default: int
) -> int:
    try:
        return parser.getint(section, key, fallback=default)
    except ValueError as e:
        raise ConfigurationError(f"[{section}] {key} must be an integer") from e


def _get_float(
    parser: configparser.ConfigParser, section: str, key: str, default: float
) -> float:
    try:
        return parser.getfloat(section, key, fallback=default)
    except ValueError as e:
        raise ConfigurationError(f"[{section}] {key} must be a number") from e


def _get_bool(
    parser: configparser.ConfigParser, section: str, key: str, default: bool
) -> bool:
    try:
        return parser.getboolean(section, key, fallback=default)
    except ValueError as e:
        raise ConfigurationError(f"[{section}] {key} must be true or false") from e


def load_site_config(config_path: Path) -> dict[str, Any]:
    """Load and minimally validate a YAML site profile.

    Profiles are cached in-memory after the first load. Subsequent calls with
    the same ``config_path`` return the cached data, avoiding repeated disk I/O.
    """

    resolved_path = config_path.resolve()
    cached = _config_cache.get(resolved_path)
    if cached is not None:
        return cached

    if not resolved_path.exists():
        raise FileNotFoundError(f"Site config not found: {resolved_path}")

    with resolved_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Site config must be a mapping: {resolved_path}")

    required = {
        "site_name",
        "search_url",
        "shows_url",
        "fallback_url",
        "selectors",
    }
    missing = required - data.keys()
    if missing:
        raise ConfigurationError(
            f"Site config missing keys: {', '.join(sorted(missing))}"
        )

    _config_cache[resolved_path] = data
    return data


def build_site_profile(data: dict[str, Any]) -> SiteProfile:
    """Turns a raw site config mapping into a ``SiteProfile``."""
    selectors = data.get("selectors") or {}
    timing = data.get("timing") or {}
    if not isinstance(selectors, dict) or not isinstance(timing, dict):
        raise ConfigurationError("'selectors' and 'timing' must be mappings")

    defaults = SiteProfile(
        site_name=data["site_name"],
        search_url=data["search_url"],
        shows_url=data["shows_url"],
        fallback_url=data["fallback_url"],
    )
    try:
        return SiteProfile(
            site_name=str(data["site_name"]),
            search_url=str(data["search_url"]),
            shows_url=str(data["shows_url"]),
            fallback_url=str(data["fallback_url"]),
            search_input=selectors.get("search_input", defaults.search_input),
            search_results=selectors.get("search_results", defaults.search_results),
            episode_index=selectors.get("episode_index", defaults.episode_index),
            episode_container_class=selectors.get(
                "episode_container_class", defaults.episode_container_class
            ),
            show_path_marker=data.get("show_path_marker", defaults.show_path_marker),
            video_path_marker=data.get(
                "video_path_marker", defaults.video_path_marker
            ),
            excluded_result_text=list(
                data.get("excluded_result_text", defaults.excluded_result_text)
            ),
            error_title_markers=list(
                data.get("error_title_markers", defaults.error_title_markers)
            ),
            debounce_ms=int(timing.get("debounce_ms", defaults.debounce_ms)),
            episode_wait_ms=int(
                timing.get("episode_wait_ms", defaults.episode_wait_ms)
            ),
            navigation_timeout_ms=int(
                timing.get("navigation_timeout_ms", defaults.navigation_timeout_ms)
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid site config value: {e}") from e


def load_site_profile(config_path: str | Path) -> SiteProfile:
    """Loads the YAML profile at ``config_path`` and logs what was resolved."""
    profile = build_site_profile(load_site_config(Path(config_path)))
    logger.info(
        f"[CONFIG] Site profile '{profile.site_name}' loaded "
        f"(search: {profile.search_url})."
    )
    return profile
