"""
game_news

Aggregates gaming news from many RSS/Atom feeds into one normalized, cached article list.

Core ideas:
- Input: two static groups of (feed URL, language) pairs
- Process: proxy fetch → parse → source name / summary / image → deduplicate → prune (7 days) → sort (newest first) → cache
- Output: List[Article], plus the unique source list and per-article scrape flags

Example
-------
import asyncio
from game_news import JsonFileStore, NewsAggregator

async def main():
    async with NewsAggregator(JsonFileStore(".game_news_cache.json")) as agg:
        result = await agg.load()
        for item in result.articles[:10]:
            print(item.published_at, item.source, item.title)

asyncio.run(main())
"""
from .models import Article, CacheEnvelope, FeedSource, SourceInfo
from .cache import JsonFileStore, MemoryStore
from .config import Settings
from .core import LoadResult, LoadState, NewsAggregator
from .filters import FilterOptions, filter_articles, paginate

__all__ = [
    "Article",
    "CacheEnvelope",
    "FeedSource",
    "SourceInfo",
    "JsonFileStore",
    "MemoryStore",
    "Settings",
    "LoadResult",
    "LoadState",
    "NewsAggregator",
    "FilterOptions",
    "filter_articles",
    "paginate",
]
