"""Business logic use cases."""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Iterable, Optional

from devfeed.core import (
    ArticleStore,
    CanonicalItem,
    ClassificationResult,
    Deduplicator,
    FeedCache,
    FeedPage,
    FeedTier,
    FetchResult,
    ItemSource,
    LLMClient,
    PipelineResult,
    RawItem,
    SummaryResult,
    paginate,
    window_key,
    window_start,
)
from devfeed.core.cache import CacheEntry
from devfeed.core.entities import INFO_THRESHOLD
from devfeed.core.feed import assemble_buckets, bucketize, filter_by_stack, historical_entries
from devfeed.core.tech_tags import enrich_tech_tags

logger = logging.getLogger(__name__)


class ScoringService:
    """Classify and summarize items in rate-limited concurrent batches."""

    def __init__(
        self,
        llm_client: LLMClient,
        batch_size: int = 10,
        batch_delay: float = 0.5,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"Batch size must be positive, got {batch_size}")
        self.llm_client = llm_client
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def classify_all(self, items: list[CanonicalItem]) -> dict[str, ClassificationResult]:
        """Classify items; failed items are left out of the result."""
        logger.info("Scoring %d items in batches of %d", len(items), self.batch_size)
        results = await self._run_batches(items, self.llm_client.classify)
        logger.info("Scored %d/%d items", len(results), len(items))
        return results

    async def summarize_all(
        self,
        items: list[CanonicalItem],
        classifications: dict[str, ClassificationResult],
        min_score: int = INFO_THRESHOLD,
    ) -> dict[str, SummaryResult]:
        """Summarize classified items scoring at least ``min_score``."""
        to_summarize = [
            item for item in items
            if item.url in classifications and classifications[item.url].score >= min_score
        ]
        logger.info("Summarizing %d/%d items (score >= %d)", len(to_summarize), len(items), min_score)

        async def summarize(item: CanonicalItem) -> Optional[SummaryResult]:
            return await self.llm_client.summarize(item, classifications[item.url])

        results = await self._run_batches(to_summarize, summarize)
        logger.info("Summarized %d/%d items", len(results), len(to_summarize))
        return results

    async def _run_batches(
        self,
        items: list[CanonicalItem],
        call: Callable[[CanonicalItem], Awaitable[Any]],
    ) -> dict[str, Any]:
        results: dict[str, Any] = {}

        for start in range(0, len(items), self.batch_size):
            batch = items[start:start + self.batch_size]
            outcomes = await asyncio.gather(*(call(item) for item in batch), return_exceptions=True)

            for item, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning("Processing %r failed: %s", item.title, outcome)
                elif outcome is not None:
                    results[item.url] = outcome

            if start + self.batch_size < len(items):
                await asyncio.sleep(self.batch_delay)

        return results


@dataclass
class RefreshStatus:
    can_refresh: bool
    last_refresh_at: Optional[datetime] = None
    next_refresh_at: Optional[datetime] = None


@dataclass
class RefreshOutcome:
    rate_limited: bool
    status: RefreshStatus
    result: Optional[PipelineResult] = None


class IngestionService:
    """Run ingestion passes: fetch, deduplicate, classify, summarize, save."""

    def __init__(
        self,
        sources: list[ItemSource],
        scoring: ScoringService,
        store: ArticleStore,
        deduplicator: Optional[Deduplicator] = None,
        cache: Optional[FeedCache] = None,
        min_score: int = INFO_THRESHOLD,
        refresh_interval: timedelta = timedelta(hours=24),
    ) -> None:
        self.sources = sources
        self.scoring = scoring
        self.store = store
        self.deduplicator = deduplicator or Deduplicator()
        self.cache = cache
        self.min_score = min_score
        self.refresh_interval = refresh_interval

    async def fetch_all(self, since: date) -> list[FetchResult]:
        """Fetch from every source concurrently; a failing source yields no items."""
        outcomes = await asyncio.gather(
            *(source.fetch(since) for source in self.sources),
            return_exceptions=True,
        )

        results = []
        for source, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Source %s failed: %s", source.name, outcome)
                outcome = FetchResult(
                    source=source.name,
                    items=[],
                    fetched_at=datetime.now(timezone.utc),
                    error=str(outcome),
                )
            elif outcome.error:
                logger.warning("Source %s returned an error: %s", source.name, outcome.error)
            else:
                logger.info("Source %s: %d items", source.name, len(outcome.items))
            results.append(outcome)

        return results

    async def run_pass(self, since: date) -> PipelineResult:
        """Run one full ingestion pass; never raises."""
        started = time.monotonic()
        errors: list[str] = []

        try:
            fetched = await self.fetch_all(since)
            all_items: list[RawItem] = [item for result in fetched for item in result.items]
            errors.extend(f"{r.source}: {r.error}" for r in fetched if r.error)
            logger.info("Fetched %d items in total", len(all_items))

            if not all_items:
                return PipelineResult(success=True, errors=errors, duration=time.monotonic() - started)

            dedup = self.deduplicator.deduplicate(all_items)
            classifications = await self.scoring.classify_all(dedup.canonical)
            summaries = await self.scoring.summarize_all(dedup.canonical, classifications, self.min_score)

            to_save = [item for item in dedup.canonical if item.url in classifications]
            saved = self._save_all(to_save, classifications, summaries, errors)

            success = saved > 0 or not to_save
            result = PipelineResult(
                success=success,
                items_fetched=len(all_items),
                items_processed=len(dedup.canonical) if success else 0,
                items_saved=saved,
                errors=errors,
                duration=time.monotonic() - started,
            )
        except Exception as e:
            logger.exception("Ingestion pass failed")
            errors.append(str(e) or e.__class__.__name__)
            return PipelineResult(success=False, errors=errors, duration=time.monotonic() - started)

        if result.success and self.cache is not None:
            self.cache.invalidate()

        logger.info(
            "Ingestion complete: processed %d, saved %d in %.2fs",
            result.items_processed, result.items_saved, result.duration,
        )
        return result

    def _save_all(
        self,
        items: list[CanonicalItem],
        classifications: dict[str, ClassificationResult],
        summaries: dict[str, SummaryResult],
        errors: list[str],
    ) -> int:
        saved = 0

        for item in items:
            classification = classifications[item.url]
            tags = enrich_tech_tags(item.item, classification)
            enriched = replace(
                classification,
                languages=set(tags.languages),
                frameworks=set(tags.frameworks),
                topics=set(tags.topics),
            )

            try:
                record = self.store.upsert_article(item, enriched, summaries.get(item.url))
                for duplicate in item.duplicates:
                    self.store.add_duplicate(record.id, duplicate)
            except Exception as e:
                logger.warning("Failed to save %r: %s", item.title, e)
                errors.append(f"Failed to save article: {item.title}")
                continue

            saved += 1

        return saved

    def refresh_status(self, now: Optional[datetime] = None) -> RefreshStatus:
        now = now or datetime.now(timezone.utc)
        last = self.store.get_last_refresh()
        if last is None:
            return RefreshStatus(can_refresh=True)

        next_at = last + self.refresh_interval
        if now >= next_at:
            return RefreshStatus(can_refresh=True, last_refresh_at=last)
        return RefreshStatus(can_refresh=False, last_refresh_at=last, next_refresh_at=next_at)

    async def refresh(
        self,
        since: date,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> RefreshOutcome:
        """Run a pass unless one already ran within the refresh interval."""
        status = self.refresh_status(now)
        if not status.can_refresh and not force:
            logger.info("Refresh skipped, next allowed at %s", status.next_refresh_at)
            return RefreshOutcome(rate_limited=True, status=status)

        result = await self.run_pass(since)
        if result.success:
            finished = now or datetime.now(timezone.utc)
            self.store.set_last_refresh(finished)
            status = RefreshStatus(
                can_refresh=False,
                last_refresh_at=finished,
                next_refresh_at=finished + self.refresh_interval,
            )
        return RefreshOutcome(rate_limited=False, status=status, result=result)


@dataclass
class FeedResponse:
    """A feed page plus the metadata shown alongside it."""

    success: bool
    page: FeedPage
    distribution: dict[str, int]
    cached: bool = False
    error: Optional[str] = None

    @property
    def oldest_date(self) -> Optional[datetime]:
        return self.page.oldest_date

    @classmethod
    def empty(cls, tier: FeedTier, error: Optional[str] = None) -> "FeedResponse":
        return cls(
            success=error is None,
            page=FeedPage(entries=(), total=0, has_more=False, tier=tier),
            distribution={},
            error=error,
        )


class FeedService:
    """Serve paginated feed reads from the cache or the store."""

    def __init__(
        self,
        store: ArticleStore,
        cache: FeedCache,
        min_score: int = INFO_THRESHOLD,
        recency_days: int = 3,
    ) -> None:
        self.store = store
        self.cache = cache
        self.min_score = min_score
        self.recency_days = recency_days

    def recent_feed(self, now: Optional[datetime] = None) -> tuple[CacheEntry, bool]:
        """Assembled feed for the current window and whether it came from the cache."""
        key = window_key(now, self.recency_days)
        entry = self.cache.get(key)
        if entry is not None:
            return entry, True

        articles = self.store.list_articles(published_since=window_start(key), min_score=self.min_score)
        buckets = bucketize(articles, self.min_score)
        entry = self.cache.put(key, assemble_buckets(buckets), buckets.distribution())
        return entry, False

    def get_page(
        self,
        offset: int = 0,
        limit: int = 10,
        older: bool = False,
        languages: Optional[Iterable[str]] = None,
        frameworks: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> FeedResponse:
        if older:
            return self.get_historical_page(offset, limit, languages, frameworks, now)
        return self.get_recent_page(offset, limit, languages, frameworks, now)

    def get_recent_page(
        self,
        offset: int,
        limit: int,
        languages: Optional[Iterable[str]] = None,
        frameworks: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> FeedResponse:
        """Page of the recent tier; ``has_more=False`` means switch to the historical tier."""
        _check_bounds(offset, limit)
        try:
            entry, cached = self.recent_feed(now)
            entries = filter_by_stack(list(entry.entries), languages, frameworks)
            return FeedResponse(
                success=True,
                page=paginate(entries, offset, limit, FeedTier.CACHE),
                distribution=dict(entry.distribution),
                cached=cached,
            )
        except Exception as e:
            logger.exception("Failed to read recent feed")
            return FeedResponse.empty(FeedTier.CACHE, str(e) or e.__class__.__name__)

    def get_historical_page(
        self,
        offset: int,
        limit: int,
        languages: Optional[Iterable[str]] = None,
        frameworks: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> FeedResponse:
        """Page of articles published before the recency window."""
        _check_bounds(offset, limit)
        try:
            start = window_start(window_key(now, self.recency_days))
            articles = self.store.list_articles(published_before=start, min_score=self.min_score)
            entries = filter_by_stack(historical_entries(articles, self.min_score), languages, frameworks)
            return FeedResponse(
                success=True,
                page=paginate(entries, offset, limit, FeedTier.STORE),
                distribution=bucketize(articles, self.min_score).distribution(),
            )
        except Exception as e:
            logger.exception("Failed to read historical feed")
            return FeedResponse.empty(FeedTier.STORE, str(e) or e.__class__.__name__)


def _check_bounds(offset: int, limit: int) -> None:
    if offset < 0:
        raise ValueError(f"Offset must be non-negative, got {offset}")
    if limit <= 0:
        raise ValueError(f"Limit must be positive, got {limit}")
