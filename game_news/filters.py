from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from .models import Article, SourceInfo

ALL = "all"
TIME_RANGES = ("today", "yesterday", "7d", ALL)


@dataclass(frozen=True)
class FilterOptions:
    search_query: str = ""
    source: str = ALL
    language: str = ALL
    time_range: str = ALL  # "today" | "yesterday" | "7d" | "all"
    favorites_only: bool = False
    favorites: Sequence[str] = ()
    muted_sources: Sequence[str] = ()


def _contains(text: str, needle: str) -> bool:
    return needle in (text or "").lower()


def _in_time_range(published: datetime, time_range: str, now: datetime) -> bool:
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_range == "today":
        return published >= today_start
    if time_range == "yesterday":
        return today_start - timedelta(days=1) <= published < today_start
    if time_range == "7d":
        return published >= now - timedelta(hours=7 * 24)
    return True


def matches(article: Article, options: FilterOptions, now: datetime) -> bool:
    """True when `article` passes every active filter in `options`."""
    # Muted sources stay visible while browsing favorites
    if not options.favorites_only and article.source in options.muted_sources:
        return False

    query = options.search_query.strip().lower()
    if query and not (_contains(article.title, query) or _contains(article.summary, query)):
        return False

    if options.favorites_only and article.id not in options.favorites:
        return False
    if options.source != ALL and article.source != options.source:
        return False
    if options.language != ALL and article.language != options.language:
        return False
    return _in_time_range(article.published_at, options.time_range, now)


def filter_articles(
    articles: Iterable[Article],
    options: FilterOptions,
    now: Optional[datetime] = None,
) -> List[Article]:
    if options.time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range: {options.time_range!r}")
    now = now or datetime.now().astimezone()
    return [a for a in articles if matches(a, options, now)]


def paginate(articles: Sequence[Article], page: int, page_size: int = 32) -> List[Article]:
    """Articles visible after `page` "load more" steps (pages are cumulative, 1-based)."""
    return list(articles[: max(1, page) * page_size])


def has_more(articles: Sequence[Article], page: int, page_size: int = 32) -> bool:
    return len(articles) > max(1, page) * page_size


def visible_sources(sources: Iterable[SourceInfo], muted_sources: Sequence[str] = ()) -> List[SourceInfo]:
    return [s for s in sources if s.name not in muted_sources]
