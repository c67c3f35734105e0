from typing import Sequence


class NewsError(Exception):
    """Base class for all feed-pipeline errors."""


class ProxyExhausted(NewsError):
    """Raised when every proxy failed to deliver a URL."""

    def __init__(self, url: str, attempts: int = 0) -> None:
        super().__init__(f"All proxies failed for {url} ({attempts} attempts)")
        self.url = url
        self.attempts = attempts


FetchExhausted = ProxyExhausted


class MalformedXml(NewsError):
    """Raised when a feed document cannot be parsed as RSS/Atom XML."""

    def __init__(self, feed_url: str, reason: str = "") -> None:
        msg = f"Failed to parse XML for feed: {feed_url}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.feed_url = feed_url


class MissingRequiredField(NewsError):
    """Raised when a feed item lacks title, link or publication date."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Feed item lacks required field: {field}")
        self.field = field


class AggregationExhausted(NewsError):
    """Raised when every feed of a group failed."""

    MESSAGE = (
        "Could not fetch news from any source. "
        "Please check your internet connection or try again later."
    )

    def __init__(self, group: str = "", failures: Sequence[str] = ()) -> None:
        super().__init__(self.MESSAGE)
        self.group = group
        self.failures = list(failures)


class CacheCorrupt(NewsError):
    """Raised when a persisted cache envelope cannot be decoded."""
