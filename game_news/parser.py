from __future__ import annotations

import calendar
import logging
import time
import xml.sax
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import feedparser
from dateutil.parser import parse as parse_date

from .exceptions import MalformedXml, MissingRequiredField
from .fetcher import looks_like_xml
from .models import FeedItem, ParsedFeed

logger = logging.getLogger(__name__)

# Timezone abbreviations seen in pubDate values that dateutil cannot resolve alone
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
    "CET": timezone(timedelta(hours=1)),
    "CEST": timezone(timedelta(hours=2)),
    "MEZ": timezone(timedelta(hours=1)),
    "MESZ": timezone(timedelta(hours=2)),
}


def to_datetime(raw: str, parsed: Optional[time.struct_time] = None) -> Optional[datetime]:
    """
    Convert a feed date to a timezone-aware datetime.

    feedparser's own UTC struct_time is trusted first; otherwise the raw string is
    handed to dateutil. Naive results are taken as UTC. Returns None when unparseable.
    """
    if isinstance(parsed, time.struct_time):
        try:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
        except (OverflowError, ValueError, OSError):
            pass
    try:
        dt = parse_date(raw, tzinfos=TZINFOS)
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _text(entry: Dict[str, Any], key: str) -> str:
    value = entry.get(key)
    return value.strip() if isinstance(value, str) else ""


def _pick_title(entry: Dict[str, Any]) -> str:
    return _text(entry, "title")


def _pick_link(entry: Dict[str, Any], is_atom: bool) -> str:
    """Atom: the rel=alternate link, else the first link. RSS: the <link> text."""
    if not is_atom:
        return _text(entry, "link")
    links = [l for l in entry.get("links") or [] if isinstance(l, dict) and l.get("href")]
    for link in links:
        if link.get("rel") == "alternate":
            return link["href"].strip()
    if links:
        return links[0]["href"].strip()
    return ""


def _pick_date(entry: Dict[str, Any]) -> Optional[datetime]:
    """pubDate (RSS) / published (Atom) first, then updated. The first present value decides."""
    for key in ("published", "updated"):
        raw = _text(entry, key)
        if raw:
            return to_datetime(raw, entry.get(f"{key}_parsed"))
    return None


def _pick_content(entry: Dict[str, Any]) -> str:
    for block in entry.get("content") or []:
        value = block.get("value") if isinstance(block, dict) else None
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _pick_media_thumbnail(entry: Dict[str, Any]) -> Optional[str]:
    for thumb in entry.get("media_thumbnail") or []:
        url = thumb.get("url") if isinstance(thumb, dict) else None
        if url:
            return url
    return None


def _pick_enclosure(entry: Dict[str, Any]) -> Dict[str, Optional[str]]:
    for enc in entry.get("enclosures") or []:
        if isinstance(enc, dict) and enc.get("href"):
            return {"url": enc["href"], "type": enc.get("type")}
    return {"url": None, "type": None}


def extract_item(entry: Dict[str, Any], *, is_atom: bool) -> FeedItem:
    """
    Map one feedparser entry to a FeedItem.

    Raises MissingRequiredField when title, link or a parseable date is absent.
    """
    title = _pick_title(entry)
    if not title:
        raise MissingRequiredField("title")
    link = _pick_link(entry, is_atom)
    if not link:
        raise MissingRequiredField("link")
    published_at = _pick_date(entry)
    if published_at is None:
        raise MissingRequiredField("published")

    description = _text(entry, "summary") or _text(entry, "description")
    content = _pick_content(entry) or description
    thumbnail = entry.get("thumbnail")
    enclosure = _pick_enclosure(entry)

    return FeedItem(
        title=title,
        link=link,
        published_at=published_at,
        guid=_text(entry, "id") or _text(entry, "guid") or link,
        description=description,
        content=content,
        thumbnail=thumbnail if isinstance(thumbnail, str) and thumbnail else None,
        media_thumbnail=_pick_media_thumbnail(entry),
        enclosure_url=enclosure["url"],
        enclosure_type=enclosure["type"],
    )


def parse_feed(raw_xml: str, feed_url: str) -> ParsedFeed:
    """
    Parse an RSS 2.0 or Atom document into a ParsedFeed.

    Raises MalformedXml when the document is not well-formed XML. Items missing
    required fields are skipped silently.
    """
    if not looks_like_xml(raw_xml):
        raise MalformedXml(feed_url, "document does not start with '<'")

    # The body is already decoded text; pin the charset so an XML declaration cannot re-decode it.
    # Keep raw item HTML; the image resolver reads lazy-load attributes such as data-src.
    feed = feedparser.parse(
        raw_xml.encode("utf-8"),
        response_headers={"content-type": "application/xml; charset=utf-8"},
        sanitize_html=False,
    )
    exc = feed.get("bozo_exception")
    if feed.get("bozo") and isinstance(exc, xml.sax.SAXException):
        logger.error("XML parsing error for feed %s: %s", feed_url, exc)
        raise MalformedXml(feed_url, str(exc))

    is_atom = (feed.get("version") or "").startswith("atom")
    entries = feed.get("entries") or []

    items: List[FeedItem] = []
    for entry in entries:
        try:
            items.append(extract_item(entry, is_atom=is_atom))
        except MissingRequiredField as e:
            logger.debug("Skipping item in %s: %s", feed_url, e)

    if entries and not items:
        logger.warning("Feed parsed but no valid items extracted for %s. Check selectors.", feed_url)

    return ParsedFeed(
        feed_title=_text(feed.get("feed") or {}, "title"),
        feed_url=feed_url,
        items=items,
    )
