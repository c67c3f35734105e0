from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Article:
    """
    Canonical article record served to consumers.

    WARNING: Do not change fields lightly. The JSON form (see `to_dict`) is shared
    with the persisted cache and the static `news-cache.json` snapshot.
    """
    id: str
    title: str
    source: str
    published_at: datetime
    summary: str
    link: str
    image_url: str
    language: str
    needs_scraping: bool = False

    def with_image(self, image_url: Optional[str]) -> "Article":
        """Return a copy after a scrape attempt: the flag is cleared, the image kept unless replaced."""
        return replace(self, image_url=image_url or self.image_url, needs_scraping=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "source": self.source,
            "publicationDate": _isoformat(self.published_at),
            "summary": self.summary,
            "link": self.link,
            "imageUrl": self.image_url,
            "needsScraping": self.needs_scraping,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        """
        Build an Article from its JSON form. Raises KeyError/ValueError on bad rows.

        Rows without an image get the source placeholder, flagged for scraping
        like a freshly parsed item would be.
        """
        from .images import needs_scraping_for, placeholder_url  # local import to avoid circular

        published = datetime.fromisoformat(str(data["publicationDate"]).replace("Z", "+00:00"))
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        source = str(data.get("source") or "")
        image_url = str(data.get("imageUrl") or "")
        needs_scraping = bool(data.get("needsScraping", False))
        if not image_url:
            image_url = placeholder_url(source)
            needs_scraping = needs_scraping_for(source)
        article = cls(
            id=str(data["id"]),
            title=str(data["title"]).strip(),
            source=source,
            published_at=published,
            summary=str(data.get("summary") or ""),
            link=str(data["link"]),
            image_url=image_url,
            language=str(data.get("language") or "en"),
            needs_scraping=needs_scraping,
        )
        if not article.id or not article.title or not article.link:
            raise ValueError(f"Article row lacks id/title/link: {data!r}")
        return article


def _isoformat(dt: datetime) -> str:
    # JS-style "2024-01-01T12:00:00.000Z"
    utc = dt.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class FeedSource:
    url: str
    language: str


@dataclass(frozen=True)
class FeedItem:
    """Intermediate, format-neutral representation of one RSS item / Atom entry."""
    title: str
    link: str
    published_at: datetime
    guid: str
    description: str = ""
    content: str = ""
    thumbnail: Optional[str] = None
    media_thumbnail: Optional[str] = None
    enclosure_url: Optional[str] = None
    enclosure_type: Optional[str] = None


@dataclass(frozen=True)
class ParsedFeed:
    feed_title: str
    feed_url: str
    items: List[FeedItem] = field(default_factory=list)


@dataclass(frozen=True)
class ImageResult:
    image_url: str
    needs_scraping: bool


@dataclass(frozen=True)
class SourceInfo:
    name: str
    language: str


@dataclass(frozen=True)
class CacheEnvelope:
    articles: List[Article]
    timestamp: datetime

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.timestamp).total_seconds()
