# episode_linker/errors.py


class EpisodeLinkerError(Exception):
    """Base class for every error raised by the linker."""


class ConfigurationError(EpisodeLinkerError):
    """Raised when a config file or site profile is missing required values."""


class ShowNotFoundError(EpisodeLinkerError):
    """No search result scored above the confidence floor."""

    def __init__(self, search_term: str):
        super().__init__(f"No confident match for '{search_term}'")
        self.search_term = search_term


class NavigationError(EpisodeLinkerError):
    """A page failed to load after every permitted attempt."""

    def __init__(self, url: str, reason: str, attempts: int = 1):
        super().__init__(
            f"Navigation to {url} failed after {attempts} attempt(s): {reason}"
        )
        self.url = url
        self.reason = reason
        self.attempts = attempts


class PageError(EpisodeLinkerError):
    """The site served an error page (404/500 equivalent), detected by title."""

    def __init__(self, url: str, title: str):
        super().__init__(f"Error page at {url}: {title!r}")
        self.url = url
        self.title = title


class ElementNotFoundError(EpisodeLinkerError):
    """An expected element did not appear before its timeout."""

    def __init__(self, selector: str, timeout_ms: int):
        super().__init__(f"'{selector}' not found within {timeout_ms}ms")
        self.selector = selector
        self.timeout_ms = timeout_ms
