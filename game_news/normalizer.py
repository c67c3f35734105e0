from __future__ import annotations

import re
from typing import List, Mapping, Optional

from .images import resolve_image
from .models import Article, FeedItem, ParsedFeed
from .sources import URL_TO_NAME_MAP
from .summarizers import summarize

UNKNOWN_SOURCE = "Unknown Source"

_JUNK_PHRASES = (
    "latest articles feed", "mashup", "all content", "alles", "news", "feed", "rss", "uk",
)
_JUNK_RE = re.compile("|".join(re.escape(p) for p in _JUNK_PHRASES), re.IGNORECASE)
_SEPARATORS = (" - ", " | ", ": ")


def _title_case(text: str) -> str:
    return " ".join(w[0].upper() + w[1:].lower() for w in text.split(" ") if w)


def clean_source_name(
    raw_title: Optional[str],
    feed_url: str,
    *,
    name_map: Mapping[str, str] = URL_TO_NAME_MAP,
) -> str:
    """
    Map a feed's title/URL to its display name.

    A known host fragment in `feed_url` wins outright (first table entry that matches).
    Otherwise junk phrases are removed from the title, it is split on the first
    separator present, the shortest segment is kept and title-cased.
    """
    for fragment, name in name_map.items():
        if fragment in (feed_url or ""):
            return name

    if not raw_title or not raw_title.strip():
        return UNKNOWN_SOURCE

    cleaned = _JUNK_RE.sub("", raw_title)
    parts: List[str] = [cleaned]
    for sep in _SEPARATORS:
        if sep in cleaned:
            parts = [p.strip() for p in cleaned.split(sep) if p.strip()]
            break
    # sorted() is stable, so the earliest of equally short segments wins
    shortest = sorted(parts, key=len)[0] if parts else cleaned

    return _title_case(shortest.strip()) or UNKNOWN_SOURCE


def to_article(item: FeedItem, *, source: str, language: str) -> Article:
    """Convert a parsed FeedItem into the canonical Article."""
    image = resolve_image(item, source)
    return Article(
        id=item.guid or item.link,
        title=item.title.strip(),
        source=source,
        published_at=item.published_at,
        summary=summarize(item.description or item.content),
        link=item.link,
        image_url=image.image_url,
        language=language,
        needs_scraping=image.needs_scraping,
    )


def articles_from_feed(parsed: ParsedFeed, language: str) -> List[Article]:
    source = clean_source_name(parsed.feed_title, parsed.feed_url)
    return [to_article(item, source=source, language=language) for item in parsed.items]
