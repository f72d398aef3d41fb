"""Balanced feed assembly and pagination.

Recent articles are bucketed by importance and interleaved so that launches
and trending projects stay visible next to critical updates. The assembled
list is the whole dataset for the recency window; ``paginate`` slices it.
Older articles are served as a flat score-ordered list (the historical tier).
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from devfeed.core.entities import (
    BREAKING_THRESHOLD,
    INFO_THRESHOLD,
    MAJOR_THRESHOLD,
    NOTABLE_THRESHOLD,
    ArticleRecord,
    Category,
    FeedEntry,
    FeedPage,
    FeedTier,
    Section,
)

logger = logging.getLogger(__name__)

LAUNCH_CATEGORIES = frozenset({Category.LAUNCH, Category.TRENDING, Category.TOOLS, Category.LIBRARY})

BUCKETS = ("critical", "major", "notable", "info", "trending")


def _ordered(articles: Iterable[ArticleRecord]) -> list[ArticleRecord]:
    return sorted(articles, key=lambda a: (a.score, a.published_at), reverse=True)


def is_launch_like(article: ArticleRecord) -> bool:
    return article.classification.category in LAUNCH_CATEGORIES


def is_trending(article: ArticleRecord) -> bool:
    return article.item.is_github_trending


def section_for(article: ArticleRecord) -> Section:
    """Critical wins over spotlight for trending items scoring >= 95."""
    if article.score >= BREAKING_THRESHOLD:
        return Section.CRITICAL
    if is_trending(article):
        return Section.SPOTLIGHT
    return Section.NOTEWORTHY


@dataclass
class Buckets:
    critical: list[ArticleRecord] = field(default_factory=list)
    major_launch: list[ArticleRecord] = field(default_factory=list)
    major_other: list[ArticleRecord] = field(default_factory=list)
    notable: list[ArticleRecord] = field(default_factory=list)
    info: list[ArticleRecord] = field(default_factory=list)
    trending: list[ArticleRecord] = field(default_factory=list)

    def in_feed_order(self) -> list[list[ArticleRecord]]:
        return [
            self.critical,
            self.major_launch,
            self.major_other,
            self.notable,
            self.trending,
            self.info,
        ]

    def distribution(self) -> dict[str, int]:
        return {
            "critical": len(self.critical),
            "major": len(self.major_launch) + len(self.major_other),
            "notable": len(self.notable),
            "info": len(self.info),
            "trending": len(self.trending),
        }


def bucketize(articles: Iterable[ArticleRecord], min_score: int = INFO_THRESHOLD) -> Buckets:
    """Split articles into score buckets; trending items also land in their own."""
    buckets = Buckets()

    for article in _ordered(a for a in articles if a.score >= min_score):
        score = article.score
        if score >= BREAKING_THRESHOLD:
            buckets.critical.append(article)
        elif score >= MAJOR_THRESHOLD:
            if is_launch_like(article):
                buckets.major_launch.append(article)
            else:
                buckets.major_other.append(article)
        elif score >= NOTABLE_THRESHOLD:
            buckets.notable.append(article)
        elif score >= INFO_THRESHOLD:
            buckets.info.append(article)

        if is_trending(article):
            buckets.trending.append(article)

    return buckets


def assemble(articles: Iterable[ArticleRecord], min_score: int = INFO_THRESHOLD) -> list[FeedEntry]:
    """Build the full ordered feed, placing each URL at most once."""
    return assemble_buckets(bucketize(articles, min_score))


def assemble_buckets(buckets: Buckets) -> list[FeedEntry]:
    placed: set[str] = set()
    feed: list[FeedEntry] = []

    for bucket in buckets.in_feed_order():
        for article in bucket:
            if article.url in placed:
                continue
            placed.add(article.url)
            feed.append(FeedEntry(article=article, section=section_for(article)))

    logger.info("Assembled feed of %d entries: %s", len(feed), buckets.distribution())
    return feed


def historical_entries(articles: Iterable[ArticleRecord], min_score: int = INFO_THRESHOLD) -> list[FeedEntry]:
    """Flat score-then-recency ordering for articles outside the recency window."""
    return [
        FeedEntry(article=article, section=Section.HISTORICAL)
        for article in _ordered(a for a in articles if a.score >= min_score)
    ]


def paginate(
    entries: list[FeedEntry],
    offset: int,
    limit: int,
    tier: FeedTier = FeedTier.CACHE,
) -> FeedPage:
    """Slice ``entries[offset:offset + limit]`` out of a fixed ordered dataset."""
    if offset < 0:
        raise ValueError(f"Offset must be non-negative, got {offset}")
    if limit <= 0:
        raise ValueError(f"Limit must be positive, got {limit}")

    total = len(entries)
    return FeedPage(
        entries=tuple(entries[offset:offset + limit]),
        total=total,
        has_more=offset + limit < total,
        tier=tier,
        offset=offset,
    )


def filter_by_stack(
    entries: list[FeedEntry],
    languages: Optional[Iterable[str]] = None,
    frameworks: Optional[Iterable[str]] = None,
) -> list[FeedEntry]:
    """Keep entries sharing at least one tag with every non-empty filter."""
    wanted_languages = {tag.lower() for tag in languages or []}
    wanted_frameworks = {tag.lower() for tag in frameworks or []}
    if not wanted_languages and not wanted_frameworks:
        return entries

    def matches(entry: FeedEntry) -> bool:
        classification = entry.article.classification
        if wanted_languages and not wanted_languages & classification.languages:
            return False
        if wanted_frameworks and not wanted_frameworks & classification.frameworks:
            return False
        return True

    return [entry for entry in entries if matches(entry)]


class FeedMode(str, Enum):
    RECENT = "recent"
    HISTORICAL = "historical"


@dataclass
class FeedCursor:
    """Reader-side position across the recent and historical tiers.

    Starts in RECENT mode and switches to HISTORICAL exactly once, when a
    recent page reports ``has_more=False``. A historical page reporting
    ``has_more=False`` means the archive is exhausted. Entries already seen
    (by URL) are dropped, since an article can show up in both tiers when the
    window rolls between requests.
    """

    limit: int = 10
    mode: FeedMode = FeedMode.RECENT
    recent_offset: int = 0
    historical_offset: int = 0
    exhausted: bool = False
    seen_urls: set[str] = field(default_factory=set)

    @property
    def offset(self) -> int:
        if self.mode is FeedMode.RECENT:
            return self.recent_offset
        return self.historical_offset

    @property
    def older(self) -> bool:
        return self.mode is FeedMode.HISTORICAL

    def advance(self, page: FeedPage) -> list[FeedEntry]:
        """Consume a page and return the entries not shown before."""
        fresh = []
        for entry in page.entries:
            if entry.url in self.seen_urls:
                continue
            self.seen_urls.add(entry.url)
            fresh.append(entry)

        if self.mode is FeedMode.RECENT:
            self.recent_offset += len(page.entries)
            if not page.has_more:
                self.mode = FeedMode.HISTORICAL
        else:
            self.historical_offset += len(page.entries)
            if not page.has_more:
                self.exhausted = True

        return fresh
