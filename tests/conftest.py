"""Shared fixtures: a fake aiohttp session and article/feed builders."""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest

from game_news.models import Article

NOW = datetime(2024, 1, 10, 12, 0, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, status: int = 200, body: str = "", exc: Optional[BaseException] = None) -> None:
        self.status = status
        self.body = body
        self.exc = exc

    async def __aenter__(self) -> "FakeResponse":
        if self.exc is not None:
            raise self.exc
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False

    async def text(self, errors: str = "strict") -> str:
        return self.body


class FakeSession:
    """Answers `get(url)` through a handler; records every requested URL."""

    def __init__(self, handler: Callable[[str], FakeResponse]) -> None:
        self.handler = handler
        self.calls: List[str] = []

    def get(self, url: str, **kwargs) -> FakeResponse:
        self.calls.append(url)
        return self.handler(url)


def rss_document(title: str, items: List[dict]) -> str:
    parts = []
    for it in items:
        parts.append(
            "<item>"
            f"<title>{it['title']}</title>"
            f"<link>{it['link']}</link>"
            f"<guid>{it.get('guid', it['link'])}</guid>"
            f"<pubDate>{it['date']}</pubDate>"
            f"<description><![CDATA[{it.get('description', '')}]]></description>"
            "</item>"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{title}</title><link>https://example.com</link>"
        + "".join(parts)
        + "</channel></rss>"
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def make_rss():
    return rss_document


@pytest.fixture
def make_article():
    def _make(
        id: str = "a1",
        *,
        age: timedelta = timedelta(hours=1),
        source: str = "GameStar",
        language: str = "de",
        title: Optional[str] = None,
        summary: str = "Summary",
        image_url: str = "https://img.example.com/a.jpg",
        needs_scraping: bool = False,
    ) -> Article:
        return Article(
            id=id,
            title=title or f"Title {id}",
            source=source,
            published_at=NOW - age,
            summary=summary,
            link=f"https://example.com/{id}",
            image_url=image_url,
            language=language,
            needs_scraping=needs_scraping,
        )

    return _make
