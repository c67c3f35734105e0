from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, List, Optional
from urllib.parse import quote

import aiohttp

from .config import USER_AGENT
from .exceptions import ProxyExhausted
from .sources import FEED_PROXIES

logger = logging.getLogger(__name__)


def build_proxy_urls(url: str, proxies: Iterable[str] = FEED_PROXIES) -> List[str]:
    """Wrap `url` into each proxy template, percent-encoding it as a query value."""
    encoded = quote(url, safe="")
    return [template.format(url=encoded) for template in proxies]


def looks_like_xml(body: str) -> bool:
    return bool(body) and body.strip().startswith("<")


async def fetch_via_proxy(
    session: aiohttp.ClientSession,
    url: str,
    *,
    proxies: Iterable[str] = FEED_PROXIES,
    timeout: float = 8.0,
    validate: Optional[Callable[[str], bool]] = None,
) -> str:
    """
    Fetch `url` through an ordered list of proxies and return the first good body.

    A non-2xx status, a timeout, a transport error or a body rejected by `validate`
    moves on to the next proxy. Raises ProxyExhausted when none succeeded.
    """
    attempts = 0
    for proxy_url in build_proxy_urls(url, proxies):
        attempts += 1
        try:
            async with session.get(
                proxy_url,
                timeout=aiohttp.ClientTimeout(total=timeout),
                headers={"User-Agent": USER_AGENT},
            ) as response:
                if not 200 <= response.status < 300:
                    logger.warning("Proxy %s returned status %s for %s", proxy_url, response.status, url)
                    continue
                body = await response.text(errors="replace")
        except asyncio.TimeoutError:
            logger.warning("Proxy %s timed out after %.1fs for %s", proxy_url, timeout, url)
            continue
        except aiohttp.ClientError as e:
            logger.warning("Error with proxy %s for %s: %s", proxy_url, url, e)
            continue

        if validate is not None and not validate(body):
            logger.warning("Received invalid body from %s for %s", proxy_url, url)
            continue
        return body

    raise ProxyExhausted(url, attempts)
