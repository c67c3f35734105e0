"""CLI for refreshing the article cache as a batch job."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .cache import JsonFileStore, write_snapshot
from .config import Settings
from .core import NewsAggregator
from .filters import FilterOptions, filter_articles, has_more, paginate

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="game-news")
    parser.add_argument("--cache", default=None, help="Cache file (default: GAME_NEWS_CACHE_PATH).")
    parser.add_argument("--refresh", action="store_true", help="Fetch even when the cache is fresh.")
    parser.add_argument("--scrape", action="store_true", help="Scrape preview images for placeholders.")
    parser.add_argument("--snapshot", default=None, help="Write the committed articles to this JSON file.")
    parser.add_argument("--language", default="all", choices=["all", "de", "en"])
    parser.add_argument("--source", default="all")
    parser.add_argument("--search", default="")
    parser.add_argument("--since", default="all", choices=["all", "today", "yesterday", "7d"])
    parser.add_argument("--page", type=int, default=1, help="Pages of GAME_NEWS_PAGE_SIZE articles to print.")
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> int:
    store = JsonFileStore(args.cache or settings.cache_path)
    async with NewsAggregator(store, settings=settings) as agg:
        result = await agg.load(manual=args.refresh)
        if result.refresh is not None:
            await result.refresh
        if result.error and not agg.articles:
            logger.error(result.error)
            return 1
        if args.scrape:
            found = await agg.enrich_images()
            logger.info("Scraped %d preview images", found)
        articles = agg.articles

    if args.snapshot:
        path = write_snapshot(args.snapshot, articles)
        logger.info("Wrote %d articles to %s", len(articles), path)

    options = FilterOptions(
        search_query=args.search,
        source=args.source,
        language=args.language,
        time_range=args.since,
    )
    matching = filter_articles(articles, options)
    for a in paginate(matching, args.page, settings.page_size):
        print(f"{a.published_at:%Y-%m-%d %H:%M}  [{a.language}] {a.source}: {a.title}")
    if has_more(matching, args.page, settings.page_size):
        print(f"... {len(matching)} matching articles, use --page {max(1, args.page) + 1} for more")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args, Settings.from_env()))


if __name__ == "__main__":
    sys.exit(main())
