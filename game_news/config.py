from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

CACHE_KEY = "gaming_news_cache"
SUMMARY_LENGTH = 150
PLACEHOLDER_TEMPLATE = "https://placehold.co/600x400/374151/d1d5db?text={text}"
USER_AGENT = "game-news/1.0 (RSS reader)"


def _env(name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    cache_ttl_seconds: float = 300.0
    retention_days: int = 7
    feed_timeout: float = 8.0
    page_timeout: float = 5.0
    scrape_batch_size: int = 3
    scrape_pause: float = 1.0
    cache_path: str = ".game_news_cache.json"
    snapshot_path: Optional[str] = "news-cache.json"
    page_size: int = 32

    @classmethod
    def from_env(cls) -> "Settings":
        """Read overrides from the environment. Call `load_dotenv()` first to honour a .env file."""
        d = cls()
        return cls(
            cache_ttl_seconds=_env("GAME_NEWS_CACHE_TTL_SECONDS", d.cache_ttl_seconds, float),
            retention_days=_env("GAME_NEWS_RETENTION_DAYS", d.retention_days, int),
            feed_timeout=_env("GAME_NEWS_FEED_TIMEOUT", d.feed_timeout, float),
            page_timeout=_env("GAME_NEWS_PAGE_TIMEOUT", d.page_timeout, float),
            scrape_batch_size=_env("GAME_NEWS_SCRAPE_BATCH_SIZE", d.scrape_batch_size, int),
            scrape_pause=_env("GAME_NEWS_SCRAPE_PAUSE", d.scrape_pause, float),
            cache_path=_env("GAME_NEWS_CACHE_PATH", d.cache_path, str),
            snapshot_path=_env("GAME_NEWS_SNAPSHOT_PATH", d.snapshot_path, str),
            page_size=_env("GAME_NEWS_PAGE_SIZE", d.page_size, int),
        )
