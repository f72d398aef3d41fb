"""Tests for feed assembly, pagination and the reader cursor."""

from datetime import datetime, timedelta, timezone

import pytest

from devfeed.core import (
    ArticleRecord,
    Category,
    ClassificationResult,
    FeedCursor,
    FeedMode,
    FeedTier,
    RawItem,
    Section,
    SourceName,
    assemble,
    paginate,
)
from devfeed.core.feed import bucketize, filter_by_stack, historical_entries

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_article(
    name: str,
    score: int,
    category: Category = Category.COMMUNITY,
    trending: bool = False,
    published_at: datetime = NOW,
    languages: set[str] | None = None,
    frameworks: set[str] | None = None,
) -> ArticleRecord:
    item = RawItem(
        title=name,
        url=f"https://example.com/{name}",
        source=SourceName.GITHUB if trending else SourceName.BLOG,
        published_at=published_at,
        is_github_trending=trending,
    )
    classification = ClassificationResult(
        score=score,
        category=category,
        languages=languages or set(),
        frameworks=frameworks or set(),
    )
    return ArticleRecord(id=name, item=item, classification=classification)


def test_balanced_feed_order() -> None:
    """Critical, then major launches, then other major, then notable."""
    articles = [
        make_article("notable", 60),
        make_article("other", 80, Category.RESEARCH),
        make_article("critical", 97, Category.BREAKING),
        make_article("launch", 80, Category.LAUNCH),
    ]

    feed = assemble(articles)

    assert [e.article.id for e in feed] == ["critical", "launch", "other", "notable"]


def test_trending_item_placed_once() -> None:
    """A trending item already placed by score is not placed again."""
    articles = [
        make_article("critical", 97, Category.BREAKING),
        make_article("launch", 80, Category.LAUNCH),
        make_article("other", 80, Category.RESEARCH),
        make_article("notable", 60),
        make_article("trend", 85, Category.TRENDING, trending=True),
    ]

    feed = assemble(articles)
    ids = [e.article.id for e in feed]

    assert ids == ["critical", "trend", "launch", "other", "notable"]
    assert len(ids) == len(set(ids))


def test_low_scoring_trending_items_follow_notable() -> None:
    articles = [
        make_article("info", 45),
        make_article("trend", 42, trending=True),
        make_article("notable", 60),
    ]

    feed = assemble(articles)

    # trending pass places the 42 before the info bucket
    assert [e.article.id for e in feed] == ["notable", "trend", "info"]
    assert feed[1].section is Section.SPOTLIGHT


def test_noise_is_excluded() -> None:
    articles = [make_article("noise", 39), make_article("trend-noise", 10, trending=True)]
    assert assemble(articles) == []


def test_sections() -> None:
    feed = assemble([
        make_article("critical-trend", 99, trending=True),
        make_article("trend", 70, trending=True),
        make_article("plain", 70),
    ])
    sections = {e.article.id: e.section for e in feed}

    assert sections["critical-trend"] is Section.CRITICAL
    assert sections["trend"] is Section.SPOTLIGHT
    assert sections["plain"] is Section.NOTEWORTHY


def test_bucket_order_is_score_then_recency() -> None:
    older = make_article("older", 60, published_at=NOW - timedelta(days=1))
    newer = make_article("newer", 60, published_at=NOW)
    higher = make_article("higher", 70, published_at=NOW - timedelta(days=2))

    feed = assemble([older, newer, higher])

    assert [e.article.id for e in feed] == ["higher", "newer", "older"]


def test_distribution() -> None:
    buckets = bucketize([
        make_article("a", 96),
        make_article("b", 80, Category.TOOLS),
        make_article("c", 76),
        make_article("d", 56, trending=True),
        make_article("e", 41),
        make_article("f", 12),
    ])

    assert buckets.distribution() == {
        "critical": 1,
        "major": 2,
        "notable": 1,
        "info": 1,
        "trending": 1,
    }


def test_historical_entries_are_flat() -> None:
    entries = historical_entries([
        make_article("low", 50),
        make_article("trend", 90, trending=True),
        make_article("noise", 20),
    ])

    assert [e.article.id for e in entries] == ["trend", "low"]
    assert all(e.section is Section.HISTORICAL for e in entries)


def test_paginate_tail_page() -> None:
    data = assemble([make_article(f"a{i}", 50 + i) for i in range(25)])

    page = paginate(data, offset=20, limit=10)

    assert len(page) == 5
    assert page.has_more is False
    assert page.total == 25


def test_paginate_past_end_is_empty() -> None:
    data = assemble([make_article("a", 50)])
    page = paginate(data, offset=10, limit=10, tier=FeedTier.STORE)

    assert page.entries == ()
    assert page.has_more is False
    assert page.tier is FeedTier.STORE
    assert page.oldest_date is None


@pytest.mark.parametrize("offset,limit", [(-1, 10), (0, 0), (0, -5)])
def test_paginate_rejects_bad_bounds(offset: int, limit: int) -> None:
    with pytest.raises(ValueError):
        paginate([], offset, limit)


@pytest.mark.parametrize("limit", [1, 10, 50])
def test_pages_cover_dataset_exactly_once(limit: int) -> None:
    for length in (0, 1, 9, 10, 11, 49, 50, 51, 137, 500):
        data = list(range(length))
        seen = []
        offset = 0
        while True:
            page = paginate(data, offset, limit)
            seen.extend(page.entries)
            offset += limit
            if not page.has_more:
                break

        assert seen == data


def test_oldest_date() -> None:
    feed = assemble([
        make_article("a", 90, published_at=NOW),
        make_article("b", 50, published_at=NOW - timedelta(days=2)),
    ])
    assert paginate(feed, 0, 10).oldest_date == NOW - timedelta(days=2)


def test_filter_by_stack() -> None:
    feed = assemble([
        make_article("py", 60, languages={"python"}, frameworks={"pytorch"}),
        make_article("rs", 60, languages={"rust"}),
        make_article("py-tf", 60, languages={"python"}, frameworks={"tensorflow"}),
    ])

    assert len(filter_by_stack(feed)) == 3
    assert {e.article.id for e in filter_by_stack(feed, languages=["Python"])} == {"py", "py-tf"}
    assert [e.article.id for e in filter_by_stack(feed, ["python"], ["pytorch"])] == ["py"]
    assert filter_by_stack(feed, frameworks=["django"]) == []


def test_cursor_switches_to_historical_once() -> None:
    recent = assemble([make_article(f"r{i}", 60 + i) for i in range(3)])
    historical = historical_entries([make_article(f"h{i}", 50 + i) for i in range(3)])
    cursor = FeedCursor(limit=2)

    shown = cursor.advance(paginate(recent, cursor.offset, cursor.limit))
    assert len(shown) == 2
    assert cursor.mode is FeedMode.RECENT
    assert cursor.older is False

    shown = cursor.advance(paginate(recent, cursor.offset, cursor.limit))
    assert len(shown) == 1
    assert cursor.mode is FeedMode.HISTORICAL
    assert cursor.offset == 0

    cursor.advance(paginate(historical, cursor.offset, cursor.limit, FeedTier.STORE))
    assert cursor.mode is FeedMode.HISTORICAL
    assert not cursor.exhausted

    cursor.advance(paginate(historical, cursor.offset, cursor.limit, FeedTier.STORE))
    assert cursor.exhausted
    assert cursor.recent_offset == 3
    assert cursor.historical_offset == 3


def test_cursor_drops_entries_seen_in_both_tiers() -> None:
    """An article rolling out of the window between reads is shown once."""
    shared = make_article("shared", 60)
    cursor = FeedCursor(limit=10)

    cursor.advance(paginate(assemble([shared]), 0, 10))
    shown = cursor.advance(paginate(historical_entries([shared, make_article("old", 50)]), 0, 10))

    assert [e.article.id for e in shown] == ["old"]
