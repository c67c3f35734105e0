"""
Representative-image selection for feed items.

Resolution order: image enclosure -> explicit thumbnail -> media thumbnail ->
first acceptable <img> in the item's HTML. Found URLs are made absolute against
the item link and passed through the per-host rewrite table. Items without any
usable image get a placeholder, flagged for scraping when the source is known
to need it.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Tuple
from urllib.parse import quote, urljoin, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from .config import PLACEHOLDER_TEMPLATE
from .models import FeedItem, ImageResult
from .sources import SOURCES_NEEDING_SCRAPING, TRACKER_DOMAINS

logger = logging.getLogger(__name__)

PLACEHOLDER_HOST = "placehold.co"

REJECT_NO_SRC = "no-src"
REJECT_TRACKER = "tracker-domain"
REJECT_SUB_PIXEL = "sub-pixel-dimensions"

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


# ---------------------------------------------------------------------------
# <img> filtering


def _declared_size(value: Optional[str]) -> Optional[int]:
    # parseInt semantics: leading digits only, anything else is "not declared"
    if value is None:
        return None
    m = _LEADING_INT_RE.match(str(value))
    return int(m.group(1)) if m else None


def _reject_no_src(img: Tag) -> bool:
    return not img.get("src")


def _reject_tracker(img: Tag) -> bool:
    src = img.get("src") or ""
    return any(domain in src for domain in TRACKER_DOMAINS)


def _reject_sub_pixel(img: Tag) -> bool:
    # Images without declared dimensions are kept
    for attr in ("width", "height"):
        size = _declared_size(img.get(attr))
        if size is not None and size <= 1:
            return True
    return False


IMG_REJECTIONS: Tuple[Tuple[str, Callable[[Tag], bool]], ...] = (
    (REJECT_NO_SRC, _reject_no_src),
    (REJECT_TRACKER, _reject_tracker),
    (REJECT_SUB_PIXEL, _reject_sub_pixel),
)


def rejection_reason(img: Tag) -> Optional[str]:
    """Name of the first rule rejecting `img`, or None when it is acceptable."""
    for reason, rule in IMG_REJECTIONS:
        if rule(img):
            return reason
    return None


def first_content_image(html: Optional[str]) -> Optional[str]:
    """URL of the first acceptable <img> in `html`, preferring lazy-load attributes."""
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    for img in soup.find_all("img"):
        reason = rejection_reason(img)
        if reason:
            logger.debug("Rejected <img> (%s): %s", reason, img.get("src"))
            continue
        return img.get("data-src") or img.get("data-lazy-src") or img.get("src")
    return None


# ---------------------------------------------------------------------------
# Candidate chain


def _from_enclosure(item: FeedItem) -> Optional[str]:
    if item.enclosure_url and (item.enclosure_type or "").startswith("image"):
        return item.enclosure_url
    return None


def _from_thumbnail(item: FeedItem) -> Optional[str]:
    return item.thumbnail or None


def _from_media_thumbnail(item: FeedItem) -> Optional[str]:
    return item.media_thumbnail or None


def _from_embedded_html(item: FeedItem) -> Optional[str]:
    return first_content_image(item.content or item.description)


CANDIDATE_EXTRACTORS: Tuple[Tuple[str, Callable[[FeedItem], Optional[str]]], ...] = (
    ("enclosure", _from_enclosure),
    ("thumbnail", _from_thumbnail),
    ("media-thumbnail", _from_media_thumbnail),
    ("embedded-html", _from_embedded_html),
)


def find_candidate(item: FeedItem) -> Optional[str]:
    for _name, extract in CANDIDATE_EXTRACTORS:
        url = extract(item)
        if url:
            return url
    return None


# ---------------------------------------------------------------------------
# Rewrite table


@dataclass(frozen=True)
class RewriteRule:
    name: str
    matches: Callable[[str, str], bool]  # (hostname, source name)
    rewrite: Callable[[str], str]


def _keep(url: str) -> str:
    return url


def _gamespot_original(url: str) -> str:
    return re.sub(r"/uploads/[^/]+/", "/uploads/original/", url, count=1)


def _upscale_800(url: str) -> str:
    return re.sub(r"/(\d{2,4})/", "/800/", url, count=1)


def _strip_size_suffix(url: str) -> str:
    return re.sub(r"-\d+x\d+(?=\.(jpg|jpeg|png|gif|webp)$)", "", url, flags=re.IGNORECASE)


# First matching rule wins.
HOST_REWRITES: Tuple[RewriteRule, ...] = (
    RewriteRule("gamespot", lambda host, src: "gamespot.com" in host, _gamespot_original),
    RewriteRule(
        "pcgames",
        lambda host, src: "pcgames.de" in host and "pcgameshardware.de" not in host,
        _keep,
    ),
    RewriteRule("pcgameshardware", lambda host, src: "pcgameshardware.de" in host, _keep),
    RewriteRule(
        "upscale-800",
        lambda host, src: "cgames.de" in host or "GameStar" in src or "GamePro" in src,
        _upscale_800,
    ),
)

# Every matching rule applies, after the host rule.
SOURCE_REWRITES: Tuple[RewriteRule, ...] = (
    RewriteRule("gameswirtschaft", lambda host, src: "GamesWirtschaft" in src, _strip_size_suffix),
)


def apply_rewrites(
    url: str,
    source: str,
    host_rules: Sequence[RewriteRule] = HOST_REWRITES,
    source_rules: Sequence[RewriteRule] = SOURCE_REWRITES,
) -> str:
    host = (urlsplit(url).hostname or "").lower()
    for rule in host_rules:
        if rule.matches(host, source):
            url = rule.rewrite(url)
            break
    for rule in source_rules:
        if rule.matches(host, source):
            url = rule.rewrite(url)
    return url


# ---------------------------------------------------------------------------
# Placeholder / resolution


def absolutize(url: str, base: str) -> str:
    """Resolve `url` against `base`. Raises ValueError when no absolute http(s) URL results."""
    resolved = urljoin(base or "", url.strip())
    parts = urlsplit(resolved)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"Cannot resolve image URL {url!r} against {base!r}")
    return resolved


def placeholder_url(source: str) -> str:
    return PLACEHOLDER_TEMPLATE.format(text=quote((source or "")[:30], safe="!'()*"))


def is_placeholder(url: Optional[str]) -> bool:
    return not url or PLACEHOLDER_HOST in url


def needs_scraping_for(source: str, fragments: Iterable[str] = SOURCES_NEEDING_SCRAPING) -> bool:
    lowered = (source or "").lower()
    return any(f in lowered for f in fragments)


def resolve_image(item: FeedItem, source: str) -> ImageResult:
    candidate = find_candidate(item)
    if candidate:
        try:
            url = absolutize(candidate, item.link)
            return ImageResult(image_url=apply_rewrites(url, source), needs_scraping=False)
        except ValueError as e:
            logger.debug("Falling back to placeholder for %s: %s", item.link, e)

    return ImageResult(image_url=placeholder_url(source), needs_scraping=needs_scraping_for(source))
