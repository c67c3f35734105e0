from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

import aiohttp
from bs4 import BeautifulSoup

from .exceptions import ProxyExhausted
from .fetcher import fetch_via_proxy
from .images import absolutize, is_placeholder
from .models import Article
from .sources import PAGE_PROXIES

logger = logging.getLogger(__name__)

# (attribute, value) in priority order
META_IMAGE_TAGS = (
    ("property", "og:image"),
    ("property", "og:image:url"),
    ("name", "twitter:image"),
)

ProgressCallback = Callable[[int], None]


def extract_og_image(html: str, page_url: str) -> Optional[str]:
    """Absolute URL of the page's Open Graph / Twitter image, if any."""
    soup = BeautifulSoup(html, "html.parser")
    for attr, value in META_IMAGE_TAGS:
        meta = soup.find("meta", attrs={attr: value})
        content = meta.get("content") if meta is not None else None
        if content:
            try:
                return absolutize(content, page_url)
            except ValueError:
                continue
    return None


async def scrape_og_image(
    session: aiohttp.ClientSession,
    page_url: str,
    *,
    proxies: Iterable[str] = PAGE_PROXIES,
    timeout: float = 5.0,
) -> Optional[str]:
    """
    Fetch an article page and return its preview image URL.

    Each proxy is tried in turn until one yields a page with an image tag.
    Never raises; None means "keep the placeholder".
    """
    for template in proxies:
        try:
            html = await fetch_via_proxy(session, page_url, proxies=(template,), timeout=timeout)
        except ProxyExhausted:
            continue
        image = extract_og_image(html, page_url)
        if image:
            return image
    return None


def needs_scrape(article: Article) -> bool:
    return article.needs_scraping or is_placeholder(article.image_url)


async def scrape_images(
    session: aiohttp.ClientSession,
    articles: Iterable[Article],
    *,
    batch_size: int = 3,
    pause: float = 1.0,
    timeout: float = 5.0,
    on_progress: Optional[ProgressCallback] = None,
    scrape: Optional[Callable[..., Awaitable[Optional[str]]]] = None,
) -> List[Article]:
    """
    Scrape preview images for articles still showing a placeholder.

    Batches of `batch_size` run concurrently, with `pause` seconds between batches.
    Returns one updated copy per attempted article (flag cleared, image replaced
    when found).
    """
    scrape = scrape or scrape_og_image
    targets = [a for a in articles if needs_scrape(a)]
    if not targets:
        return []

    batch_size = max(1, batch_size)
    updated: List[Article] = []
    for start in range(0, len(targets), batch_size):
        batch = targets[start:start + batch_size]
        results = await asyncio.gather(
            *(scrape(session, a.link, timeout=timeout) for a in batch),
            return_exceptions=True,
        )
        for article, result in zip(batch, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning("Image scrape failed for %s: %s", article.link, result)
                result = None
            updated.append(article.with_image(result))

        done = start + len(batch)
        progress = min(100, round(done / len(targets) * 100))
        logger.info("Image scraping %d%% (%d/%d)", progress, done, len(targets))
        if on_progress is not None:
            on_progress(progress)
        if done < len(targets):
            await asyncio.sleep(pause)
    return updated
