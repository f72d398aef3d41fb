"""In-memory cache of the assembled recent feed.

One entry per recency window. An entry is replaced wholesale on rebuild and
never mutated in place, so a reader holding an entry always sees a
consistent feed. ``invalidate`` swaps in a copy flagged invalid; the next
``get`` is a miss and the caller rebuilds from the store.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from devfeed.core.entities import FeedEntry

logger = logging.getLogger(__name__)

RECENCY_DAYS = 3


def window_key(now: Optional[datetime] = None, days: int = RECENCY_DAYS) -> date:
    """UTC start date of the recency window containing ``now``."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date() - timedelta(days=days)


def window_start(key: date) -> datetime:
    """Midnight UTC at the start of the window."""
    return datetime.combine(key, time.min, tzinfo=timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    entries: tuple[FeedEntry, ...]
    valid_from: date
    distribution: dict[str, int] = field(default_factory=dict)
    is_valid: bool = True
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class CacheStats:
    is_valid: bool
    valid_from: Optional[date]
    built_at: Optional[datetime]
    entry_count: int
    hits: int
    misses: int


class FeedCache:
    """Cache of the assembled feed for the current recency window."""

    def __init__(self) -> None:
        self._entry: Optional[CacheEntry] = None
        self._hits = 0
        self._misses = 0

    def get(self, key: date) -> Optional[CacheEntry]:
        """Cached entry for the window, or None when invalid or stale."""
        entry = self._entry
        if entry is None or not entry.is_valid or entry.valid_from != key:
            self._misses += 1
            return None
        self._hits += 1
        return entry

    def put(
        self,
        key: date,
        entries: list[FeedEntry],
        distribution: Optional[dict[str, int]] = None,
    ) -> CacheEntry:
        entry = CacheEntry(
            entries=tuple(entries),
            valid_from=key,
            distribution=dict(distribution or {}),
        )
        self._entry = entry
        logger.info("Cached %d feed entries for window starting %s", len(entries), key)
        return entry

    def invalidate(self) -> None:
        entry = self._entry
        if entry is not None and entry.is_valid:
            self._entry = replace(entry, is_valid=False)
            logger.info("Feed cache invalidated")

    def stats(self) -> CacheStats:
        entry = self._entry
        return CacheStats(
            is_valid=entry.is_valid if entry else False,
            valid_from=entry.valid_from if entry else None,
            built_at=entry.built_at if entry else None,
            entry_count=len(entry.entries) if entry else 0,
            hits=self._hits,
            misses=self._misses,
        )
