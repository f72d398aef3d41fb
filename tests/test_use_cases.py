"""Tests for use cases."""

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import AsyncMock, Mock, patch

import pytest

from devfeed.adapters.storage import YamlArticleStore, article_id
from devfeed.core import (
    ArticleRecord,
    ArticleStore,
    CanonicalItem,
    Category,
    ClassificationResult,
    FeedCache,
    FeedTier,
    ItemSource,
    RawItem,
    Section,
    SourceName,
    StoreError,
    SummaryResult,
)
from devfeed.use_cases import FeedService, IngestionService, ScoringService

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
SINCE = date(2026, 10, 15)


class StaticSource(ItemSource):
    name = "static"

    def __init__(self, items: list[RawItem]) -> None:
        self.items = items

    async def fetch_items(self, since: date) -> list[RawItem]:
        return self.items


class FailingSource(ItemSource):
    name = "broken"

    async def fetch_items(self, since: date) -> list[RawItem]:
        raise ConnectionError("upstream down")


ALPHA = RawItem(
    title="Alpha framework 2.0 released",
    url="https://alpha.dev/release",
    source=SourceName.HACKER_NEWS,
    published_at=NOW,
    score=100,
    hn_discussion_url="https://news.ycombinator.com/item?id=1",
)
ALPHA_MIRROR = RawItem(
    title="Alpha framework 2.0 released",
    url="https://alpha.dev/release/",
    source=SourceName.REDDIT,
    published_at=NOW,
    score=10,
)
BETA = RawItem(
    title="Benchmarking vector databases in 2026",
    url="https://beta.io/post",
    source=SourceName.BLOG,
    published_at=NOW,
    score=5,
)


def make_llm(scores: dict[str, int]) -> AsyncMock:
    """LLM double scoring items by URL; unknown URLs fail to classify."""
    mock_llm = AsyncMock()

    async def classify(item: CanonicalItem):
        if item.url not in scores:
            return None
        return ClassificationResult(score=scores[item.url], category=Category.TOOLS)

    mock_llm.classify.side_effect = classify
    mock_llm.summarize.return_value = SummaryResult(summary=["Short summary"])
    return mock_llm


def make_service(
    sources: list[ItemSource],
    llm: AsyncMock,
    store: ArticleStore,
    cache: FeedCache | None = None,
) -> IngestionService:
    return IngestionService(
        sources=sources,
        scoring=ScoringService(llm, batch_size=10, batch_delay=0),
        store=store,
        cache=cache,
    )


@pytest.mark.asyncio
async def test_run_pass_saves_classified_items() -> None:
    """Test a full pass: fetch, deduplicate, score, summarize, save."""
    with TemporaryDirectory() as tmpdir:
        store = YamlArticleStore(Path(tmpdir))
        llm = make_llm({ALPHA.url: 80, BETA.url: 30})
        service = make_service(
            [StaticSource([ALPHA, BETA]), StaticSource([ALPHA_MIRROR])],
            llm,
            store,
        )

        result = await service.run_pass(SINCE)

        assert result.success
        assert result.items_fetched == 3
        assert result.items_processed == 2
        assert result.items_saved == 2
        assert result.errors == []

        # Only items scoring >= 40 are summarized
        llm.summarize.assert_called_once()
        assert llm.summarize.call_args.args[0].url == ALPHA.url

        alpha = store.get_article(article_id(ALPHA.url))
        assert alpha.summary.summary == ["Short summary"]
        assert [d.url for d in alpha.duplicates] == [ALPHA_MIRROR.url]
        assert alpha.duplicates[0].source is SourceName.REDDIT

        beta = store.get_article(article_id(BETA.url))
        assert beta.classification.score == 30
        assert beta.summary is None
        assert "embeddings" in beta.classification.topics


@pytest.mark.asyncio
async def test_failing_source_degrades() -> None:
    with TemporaryDirectory() as tmpdir:
        store = YamlArticleStore(Path(tmpdir))
        service = make_service(
            [FailingSource(), StaticSource([BETA])],
            make_llm({BETA.url: 60}),
            store,
        )

        result = await service.run_pass(SINCE)

        assert result.success
        assert result.items_saved == 1
        assert any("broken" in e and "upstream down" in e for e in result.errors)


@pytest.mark.asyncio
async def test_unclassified_items_are_not_saved() -> None:
    with TemporaryDirectory() as tmpdir:
        store = YamlArticleStore(Path(tmpdir))
        service = make_service([StaticSource([ALPHA, BETA])], make_llm({BETA.url: 60}), store)

        result = await service.run_pass(SINCE)

        assert result.success
        assert result.items_processed == 2
        assert result.items_saved == 1
        assert store.get_article(article_id(ALPHA.url)) is None


@pytest.mark.asyncio
async def test_storage_errors_are_collected() -> None:
    store = Mock(spec=ArticleStore)
    saved = ArticleRecord(
        id="beta",
        item=BETA,
        classification=ClassificationResult(score=60, category=Category.TOOLS),
    )
    store.upsert_article.side_effect = [StoreError("disk full"), saved]
    service = make_service(
        [StaticSource([ALPHA, BETA])],
        make_llm({ALPHA.url: 80, BETA.url: 60}),
        store,
    )

    result = await service.run_pass(SINCE)

    assert result.success
    assert result.items_saved == 1
    assert result.errors == [f"Failed to save article: {ALPHA.title}"]


@pytest.mark.asyncio
async def test_all_saves_failing_is_a_failed_pass() -> None:
    store = Mock(spec=ArticleStore)
    store.upsert_article.side_effect = StoreError("store unreachable")
    cache = Mock(spec=FeedCache)
    service = make_service([StaticSource([BETA])], make_llm({BETA.url: 60}), store, cache)

    result = await service.run_pass(SINCE)

    assert not result.success
    assert result.items_saved == 0
    assert result.items_processed == 0
    cache.invalidate.assert_not_called()


@pytest.mark.asyncio
async def test_fatal_error_reports_zero_counts() -> None:
    with TemporaryDirectory() as tmpdir:
        deduplicator = Mock()
        deduplicator.deduplicate.side_effect = RuntimeError("boom")
        service = IngestionService(
            sources=[StaticSource([ALPHA])],
            scoring=ScoringService(make_llm({}), batch_delay=0),
            store=YamlArticleStore(Path(tmpdir)),
            deduplicator=deduplicator,
        )

        result = await service.run_pass(SINCE)

        assert not result.success
        assert result.items_fetched == 0
        assert result.items_processed == 0
        assert result.items_saved == 0
        assert result.errors == ["boom"]


@pytest.mark.asyncio
async def test_successful_pass_invalidates_cache() -> None:
    with TemporaryDirectory() as tmpdir:
        cache = FeedCache()
        cache.put(date(2026, 10, 15), [])
        service = make_service(
            [StaticSource([BETA])],
            make_llm({BETA.url: 60}),
            YamlArticleStore(Path(tmpdir)),
            cache,
        )

        await service.run_pass(SINCE)

        assert cache.stats().is_valid is False


@pytest.mark.asyncio
async def test_refresh_is_rate_limited() -> None:
    with TemporaryDirectory() as tmpdir:
        store = YamlArticleStore(Path(tmpdir))
        store.set_last_refresh(NOW - timedelta(hours=1))
        llm = make_llm({BETA.url: 60})
        service = make_service([StaticSource([BETA])], llm, store)

        outcome = await service.refresh(SINCE, now=NOW)

        assert outcome.rate_limited
        assert outcome.result is None
        assert outcome.status.next_refresh_at == NOW + timedelta(hours=23)
        llm.classify.assert_not_called()

        forced = await service.refresh(SINCE, force=True, now=NOW)

        assert not forced.rate_limited
        assert forced.result.success
        assert store.get_last_refresh() == NOW


@pytest.mark.asyncio
async def test_refresh_allowed_after_interval() -> None:
    with TemporaryDirectory() as tmpdir:
        store = YamlArticleStore(Path(tmpdir))
        store.set_last_refresh(NOW - timedelta(hours=25))
        service = make_service([StaticSource([BETA])], make_llm({BETA.url: 60}), store)

        assert service.refresh_status(NOW).can_refresh

        outcome = await service.refresh(SINCE, now=NOW)

        assert outcome.result.items_saved == 1
        assert not service.refresh_status(NOW + timedelta(hours=1)).can_refresh


@pytest.mark.asyncio
async def test_scoring_runs_in_batches() -> None:
    items = [
        CanonicalItem(item=RawItem(
            title=f"Item {i}",
            url=f"https://site{i}.com/post",
            source=SourceName.BLOG,
            published_at=NOW,
        ))
        for i in range(5)
    ]
    llm = AsyncMock()
    llm.classify.side_effect = [
        ClassificationResult(score=50, category=Category.RESEARCH),
        RuntimeError("model overloaded"),
        ClassificationResult(score=70, category=Category.RESEARCH),
        None,
        ClassificationResult(score=90, category=Category.RESEARCH),
    ]
    scoring = ScoringService(llm, batch_size=2, batch_delay=0.5)

    with patch("devfeed.use_cases.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        results = await scoring.classify_all(items)

    assert set(results) == {items[0].url, items[2].url, items[4].url}
    assert mock_sleep.await_count == 2
    mock_sleep.assert_awaited_with(0.5)


def test_scoring_rejects_bad_batch_size() -> None:
    with pytest.raises(ValueError):
        ScoringService(AsyncMock(), batch_size=0)


def seed_store(store: YamlArticleStore) -> None:
    def add(name: str, score: int, published_at: datetime, **kwargs) -> None:
        item = RawItem(
            title=name,
            url=f"https://{name}.example.com/",
            source=SourceName.BLOG,
            published_at=published_at,
            is_github_trending=kwargs.pop("trending", False),
        )
        store.upsert_article(
            CanonicalItem(item=item),
            ClassificationResult(score=score, category=Category.LAUNCH, **kwargs),
        )

    add("critical", 97, NOW, languages={"python"})
    add("launch", 80, NOW - timedelta(days=1), languages={"rust"})
    add("trend", 50, NOW, trending=True)
    add("noise", 20, NOW)
    add("archived", 90, NOW - timedelta(days=5))


def test_feed_recent_page_miss_then_hit() -> None:
    with TemporaryDirectory() as tmpdir:
        store = YamlArticleStore(Path(tmpdir))
        seed_store(store)
        service = FeedService(store, FeedCache())

        first = service.get_recent_page(0, 10, now=NOW)
        second = service.get_recent_page(0, 10, now=NOW)

        assert first.success
        assert not first.cached
        assert second.cached
        assert [e.article.item.title for e in first.page.entries] == ["critical", "launch", "trend"]
        assert first.page.tier is FeedTier.CACHE
        assert first.page.has_more is False
        assert first.distribution == {"critical": 1, "major": 1, "notable": 0, "info": 1, "trending": 1}
        assert first.oldest_date == NOW - timedelta(days=1)


def test_feed_recent_page_filters_by_language() -> None:
    with TemporaryDirectory() as tmpdir:
        store = YamlArticleStore(Path(tmpdir))
        seed_store(store)
        service = FeedService(store, FeedCache())

        response = service.get_recent_page(0, 10, languages=["rust"], now=NOW)

        assert [e.article.item.title for e in response.page.entries] == ["launch"]
        assert response.page.total == 1


def test_feed_historical_page() -> None:
    with TemporaryDirectory() as tmpdir:
        store = YamlArticleStore(Path(tmpdir))
        seed_store(store)
        service = FeedService(store, FeedCache())

        response = service.get_page(0, 10, older=True, now=NOW)

        assert response.success
        assert response.page.tier is FeedTier.STORE
        assert [e.article.item.title for e in response.page.entries] == ["archived"]
        assert response.page.entries[0].section is Section.HISTORICAL
        assert response.page.has_more is False


def test_feed_rebuilds_after_invalidation() -> None:
    with TemporaryDirectory() as tmpdir:
        store = YamlArticleStore(Path(tmpdir))
        cache = FeedCache()
        service = FeedService(store, cache)

        assert service.get_recent_page(0, 10, now=NOW).page.total == 0

        seed_store(store)
        assert service.get_recent_page(0, 10, now=NOW).page.total == 0

        cache.invalidate()
        assert service.get_recent_page(0, 10, now=NOW).page.total == 3


def test_feed_store_failure_returns_empty_page() -> None:
    store = Mock(spec=ArticleStore)
    store.list_articles.side_effect = StoreError("store unreachable")
    service = FeedService(store, FeedCache())

    recent = service.get_recent_page(0, 10, now=NOW)
    older = service.get_historical_page(0, 10, now=NOW)

    for response in (recent, older):
        assert not response.success
        assert response.page.entries == ()
        assert response.page.has_more is False
        assert response.error == "store unreachable"


def test_feed_rejects_bad_bounds() -> None:
    service = FeedService(Mock(spec=ArticleStore), FeedCache())

    with pytest.raises(ValueError):
        service.get_recent_page(-1, 10)

    with pytest.raises(ValueError):
        service.get_historical_page(0, 0)
