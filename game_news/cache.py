"""
Cache envelope persistence.

The aggregator talks to storage only through `KeyValueStore`, so any backend
with string read/write/delete works. The envelope is `{"articles": [...],
"timestamp": <epoch ms>}` and is always replaced wholesale.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union

from .config import CACHE_KEY
from .exceptions import CacheCorrupt
from .models import Article, CacheEnvelope

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def read(self, key: str) -> Optional[str]:  # pragma: no cover - interface
        ...

    def write(self, key: str, value: str) -> None:  # pragma: no cover - interface
        ...

    def delete(self, key: str) -> None:  # pragma: no cover - interface
        ...


class MemoryStore:
    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(data or {})

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """Key-value store backed by a single JSON object on disk."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Unreadable store %s, starting empty: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def read(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def write(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def encode_envelope(envelope: CacheEnvelope) -> str:
    return json.dumps(
        {
            "articles": [a.to_dict() for a in envelope.articles],
            "timestamp": _epoch_ms(envelope.timestamp),
        },
        ensure_ascii=False,
    )


def decode_envelope(raw: str) -> CacheEnvelope:
    """Parse a persisted envelope. Raises CacheCorrupt on any structural problem."""
    try:
        data = json.loads(raw)
        articles = [Article.from_dict(row) for row in data["articles"]]
        timestamp = datetime.fromtimestamp(float(data["timestamp"]) / 1000, tz=timezone.utc)
    except (ValueError, KeyError, TypeError, OverflowError) as e:
        raise CacheCorrupt(f"Failed to parse cache: {e}") from e
    return CacheEnvelope(articles=articles, timestamp=timestamp)


def read_envelope(store: KeyValueStore, key: str = CACHE_KEY) -> Optional[CacheEnvelope]:
    """Load the envelope; a corrupt one is deleted and reported as missing."""
    raw = store.read(key)
    if raw is None:
        return None
    try:
        return decode_envelope(raw)
    except CacheCorrupt as e:
        logger.error("%s; discarding cache", e)
        store.delete(key)
        return None


def write_envelope(
    store: KeyValueStore,
    articles: Iterable[Article],
    *,
    now: Optional[datetime] = None,
    key: str = CACHE_KEY,
) -> CacheEnvelope:
    envelope = CacheEnvelope(articles=list(articles), timestamp=now or datetime.now(timezone.utc))
    store.write(key, encode_envelope(envelope))
    return envelope


def is_stale(
    envelope: Optional[CacheEnvelope],
    ttl_seconds: float = 300.0,
    now: Optional[datetime] = None,
) -> bool:
    return envelope is None or envelope.age_seconds(now) > ttl_seconds


def load_snapshot(path: Union[str, Path, None]) -> Optional[List[Article]]:
    """
    Read a static `news-cache.json` snapshot (a bare array of articles).

    Returns None when the file is missing or unreadable. Rows that fail to
    decode are skipped.
    """
    if not path:
        return None
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            rows = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not load static news cache %s: %s", path, e)
        return None
    if not isinstance(rows, list):
        logger.warning("Static news cache %s is not an article array", path)
        return None

    articles: List[Article] = []
    for row in rows:
        try:
            articles.append(Article.from_dict(row))
        except (ValueError, KeyError, TypeError) as e:
            logger.debug("Skipping snapshot row: %s", e)
    return articles


def write_snapshot(path: Union[str, Path], articles: Iterable[Article]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump([a.to_dict() for a in articles], f, ensure_ascii=False, indent=2)
    return path
