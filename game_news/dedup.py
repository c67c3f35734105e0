from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from .models import Article


def deduplicate(items: Iterable[Article]) -> List[Article]:
    """
    Collapse articles sharing an id.

    The last occurrence wins, but keeps the position of the first, so a refreshed
    copy of an article replaces the cached one in place.
    """
    by_id: Dict[str, Article] = {}
    for it in items:
        by_id[it.id] = it
    return list(by_id.values())


def prune_old(
    items: Iterable[Article],
    *,
    retention: timedelta = timedelta(days=7),
    now: Optional[datetime] = None,
) -> List[Article]:
    """Drop articles published before `now - retention`."""
    cutoff = (now or datetime.now(timezone.utc)) - retention
    return [it for it in items if it.published_at >= cutoff]


def sort_newest_first(items: Iterable[Article]) -> List[Article]:
    return sorted(items, key=lambda it: it.published_at, reverse=True)
