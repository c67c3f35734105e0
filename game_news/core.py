from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

import aiohttp

from .cache import KeyValueStore, is_stale, load_snapshot, read_envelope, write_envelope
from .config import CACHE_KEY, Settings
from .dedup import deduplicate, prune_old, sort_newest_first
from .exceptions import AggregationExhausted
from .fetcher import fetch_via_proxy, looks_like_xml
from .images import is_placeholder
from .models import Article, FeedSource, SourceInfo
from .normalizer import articles_from_feed
from .parser import parse_feed
from .scraper import ProgressCallback, scrape_images
from .sources import FEED_GROUPS

logger = logging.getLogger(__name__)

FeedFetch = Callable[[str], Awaitable[str]]


class LoadState(str, Enum):
    COLD_START = "cold_start"
    CACHE_FRESH = "cache_fresh"
    CACHE_STALE_OR_MISSING = "cache_stale_or_missing"
    READY = "ready"
    ERROR = "error"


@dataclass
class LoadResult:
    articles: List[Article]
    state: LoadState
    blocking: bool = False
    from_cache: bool = False
    from_snapshot: bool = False
    error: Optional[str] = None
    refresh: Optional["asyncio.Task[List[Article]]"] = field(default=None, repr=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _log_refresh_failure(task: "asyncio.Task[List[Article]]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background refresh crashed: %s", exc, exc_info=exc)


class NewsAggregator:
    """
    Owns the committed article set and its cache envelope.

    Pipeline per feed: proxy fetch → parse → source name / summary / image → Article.
    Feeds of a group run concurrently and fail independently; the committed set is
    only ever replaced by `merge_and_persist`.

    Usage::

        async with NewsAggregator(JsonFileStore(".cache.json")) as agg:
            result = await agg.load()
            if result.refresh:
                await result.refresh
            await agg.enrich_images()
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        settings: Optional[Settings] = None,
        groups: Optional[Mapping[str, Sequence[FeedSource]]] = None,
        fetch: Optional[FeedFetch] = None,
        clock: Callable[[], datetime] = _utcnow,
        cache_key: str = CACHE_KEY,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.groups: Dict[str, Sequence[FeedSource]] = dict(groups if groups is not None else FEED_GROUPS)
        self.session = session
        self._owns_session = False
        self._fetch = fetch or self._fetch_via_proxy
        self._clock = clock
        self._cache_key = cache_key
        self._articles: List[Article] = []
        self._committed_at: Optional[datetime] = None
        self._refresh_task: Optional["asyncio.Task[List[Article]]"] = None
        self.state = LoadState.COLD_START

    async def __aenter__(self) -> "NewsAggregator":
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        if self._owns_session and self.session:
            await self.session.close()
            self.session = None
            self._owns_session = False

    def _require_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            raise RuntimeError("No HTTP session; use 'async with NewsAggregator(...)' or pass session=")
        return self.session

    async def _fetch_via_proxy(self, url: str) -> str:
        return await fetch_via_proxy(
            self._require_session(),
            url,
            timeout=self.settings.feed_timeout,
            validate=looks_like_xml,
        )

    # ------------------------------------------------------------------
    # Committed set

    @property
    def articles(self) -> List[Article]:
        return list(self._articles)

    def available_ids(self) -> Set[str]:
        return {a.id for a in self._articles}

    def reconcile_favorites(self, favorite_ids: Iterable[str]) -> List[str]:
        """Keep only favorites whose article is still in the committed set."""
        available = self.available_ids()
        return [fid for fid in favorite_ids if fid in available]

    def available_favorites_count(self, favorite_ids: Iterable[str]) -> int:
        return len(self.reconcile_favorites(favorite_ids))

    def unique_sources(self) -> List[SourceInfo]:
        """First-seen (name, language) per source, in committed order."""
        seen: Dict[str, str] = {}
        for a in self._articles:
            seen.setdefault(a.source, a.language)
        return [SourceInfo(name=name, language=lang) for name, lang in seen.items()]

    def merge_and_persist(
        self,
        existing: Iterable[Article],
        incoming: Iterable[Article],
        *,
        timestamp: Optional[datetime] = None,
    ) -> List[Article]:
        """
        Dedupe (last wins), prune past retention, sort newest first, persist, commit.

        `timestamp` overrides the envelope time, used when re-committing a cached set
        so serving it does not make it look fresher than it is.
        """
        now = self._clock()
        merged = deduplicate(list(existing) + list(incoming))
        kept = prune_old(merged, retention=timedelta(days=self.settings.retention_days), now=now)
        final = sort_newest_first(kept)

        envelope = write_envelope(self.store, final, now=timestamp or now, key=self._cache_key)
        self._articles = final
        self._committed_at = envelope.timestamp
        self.state = LoadState.READY
        logger.info("Committed %d articles (%d pruned)", len(final), len(merged) - len(kept))
        return list(final)

    # ------------------------------------------------------------------
    # Fetching

    async def fetch_feed(self, source: FeedSource) -> List[Article]:
        raw = await self._fetch(source.url)
        parsed = parse_feed(raw, source.url)
        return articles_from_feed(parsed, source.language)

    async def load_feeds(self, feeds: Sequence[FeedSource], group: str = "") -> List[Article]:
        """
        Fetch every feed concurrently and return the union of their articles.

        One feed failing never affects the others. Raises AggregationExhausted only
        when all feeds of a non-empty group failed.
        """
        results = await asyncio.gather(*(self.fetch_feed(f) for f in feeds), return_exceptions=True)

        articles: List[Article] = []
        failures: List[str] = []
        for source, result in zip(feeds, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.error("Error fetching or parsing feed %s: %s", source.url, result)
                failures.append(source.url)
                continue
            articles.extend(result)

        logger.info(
            "Feed group %s: %d/%d feeds ok, %d articles",
            group or "-", len(feeds) - len(failures), len(feeds), len(articles),
        )
        if feeds and len(failures) == len(feeds):
            raise AggregationExhausted(group, failures)
        return articles

    async def fetch_all(self) -> List[Article]:
        """Load all groups concurrently; any exhausted group fails the whole fetch."""
        names = list(self.groups)
        results = await asyncio.gather(
            *(self.load_feeds(self.groups[n], n) for n in names), return_exceptions=True
        )
        articles: List[Article] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            articles.extend(result)
        return articles

    async def refresh(self) -> List[Article]:
        """Live fetch merged on top of the committed set."""
        incoming = await self.fetch_all()
        return self.merge_and_persist(self._articles, incoming)

    async def _background_refresh(self) -> List[Article]:
        try:
            return await self.refresh()
        except AggregationExhausted as e:
            logger.warning("Background refresh failed, keeping cached articles: %s", e)
            return self.articles

    @property
    def refresh_task(self) -> Optional["asyncio.Task[List[Article]]"]:
        return self._refresh_task

    def schedule_refresh(self) -> "asyncio.Task[List[Article]]":
        """Start a background refresh, or return the one still running."""
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._background_refresh())
            self._refresh_task.add_done_callback(_log_refresh_failure)
        return self._refresh_task

    # ------------------------------------------------------------------
    # Staleness policy

    async def load(self, *, manual: bool = False) -> LoadResult:
        """
        Serve articles according to the cache policy.

        Cold start with a fresh envelope: commit it and refresh in the background.
        Cold start otherwise: block on a live fetch, then the static snapshot, then
        report an error. Later calls refresh only when stale or `manual`.
        """
        now = self._clock()
        envelope = read_envelope(self.store, self._cache_key)
        stale = is_stale(envelope, self.settings.cache_ttl_seconds, now)

        if self.state is LoadState.COLD_START:
            if envelope is not None and not stale:
                self.state = LoadState.CACHE_FRESH
                committed = self.merge_and_persist([], envelope.articles, timestamp=envelope.timestamp)
                task = self.schedule_refresh()
                return LoadResult(committed, self.state, from_cache=True, refresh=task)
            self.state = LoadState.CACHE_STALE_OR_MISSING
            return await self._blocking_load()

        if not manual and not stale:
            return LoadResult(self.articles, self.state, from_cache=True)

        running = self._refresh_task
        if running is not None and not running.done():
            return LoadResult(await asyncio.shield(running), self.state)

        try:
            committed = await self.refresh()
        except AggregationExhausted as e:
            logger.error("Failed to fetch articles: %s", e)
            if not self._articles:
                self.state = LoadState.ERROR
                return LoadResult([], self.state, error=str(e))
            return LoadResult(self.articles, self.state, error=str(e))
        return LoadResult(committed, self.state)

    async def _blocking_load(self) -> LoadResult:
        try:
            incoming = await self.fetch_all()
        except AggregationExhausted as e:
            logger.error("Failed to fetch articles: %s", e)
            snapshot = load_snapshot(self.settings.snapshot_path)
            if snapshot is None:
                self.state = LoadState.ERROR
                return LoadResult([], self.state, blocking=True, error=str(e))
            committed = self.merge_and_persist([], snapshot)
            return LoadResult(committed, self.state, blocking=True, from_snapshot=True)
        committed = self.merge_and_persist([], incoming)
        return LoadResult(committed, self.state, blocking=True)

    # ------------------------------------------------------------------
    # Image enrichment

    def apply_image_updates(self, updated: Iterable[Article]) -> List[Article]:
        """
        Fold scraped images onto the committed articles with the same id.

        Only the image and the scrape flag are taken from `updated`; ids no longer
        committed are ignored, and a scrape that found nothing keeps the current image.
        """
        images = {a.id: a.image_url for a in updated}
        patched = [
            a.with_image(None if is_placeholder(images[a.id]) else images[a.id])
            for a in self._articles
            if a.id in images
        ]
        if not patched:
            return self.articles
        return self.merge_and_persist(self._articles, patched, timestamp=self._committed_at)

    async def enrich_images(
        self,
        articles: Optional[Iterable[Article]] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
        scrape=None,
    ) -> int:
        """Scrape preview images for placeholder articles. Returns the number of images found."""
        targets = list(articles) if articles is not None else self.articles
        session = self.session if scrape is not None else self._require_session()
        updated = await scrape_images(
            session,
            targets,
            batch_size=self.settings.scrape_batch_size,
            pause=self.settings.scrape_pause,
            timeout=self.settings.page_timeout,
            on_progress=on_progress,
            scrape=scrape,
        )
        before = {a.id: a.image_url for a in targets}
        self.apply_image_updates(updated)
        return sum(1 for a in updated if a.image_url != before.get(a.id))
