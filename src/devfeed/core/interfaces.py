"""Core interfaces for adapters."""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Optional

from devfeed.core.entities import (
    ArticleRecord,
    CanonicalItem,
    ClassificationResult,
    DuplicateRef,
    FeedPage,
    FetchResult,
    RawItem,
    SummaryResult,
)

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the article store cannot be read or written."""


class ItemSource(ABC):
    """Interface for fetching items from various sources."""

    name: str = "source"
    emoji: str = "🔍"

    @abstractmethod
    async def fetch_items(self, since: date) -> list[RawItem]:
        """Fetch items published since given date."""
        pass

    async def fetch(self, since: date) -> FetchResult:
        """Fetch items, degrading to an empty result on any failure."""
        try:
            items = await self.fetch_items(since)
        except Exception as e:
            logger.warning("Source %s failed: %s", self.name, e)
            return FetchResult(
                source=self.name,
                items=[],
                fetched_at=datetime.now(timezone.utc),
                error=str(e) or e.__class__.__name__,
            )

        return FetchResult(
            source=self.name,
            items=items,
            fetched_at=datetime.now(timezone.utc),
        )


class LLMClient(ABC):
    """Interface for classification and summarization.

    Implementations never raise: a failure for one item yields ``None``.
    """

    @abstractmethod
    async def classify(self, item: CanonicalItem) -> Optional[ClassificationResult]:
        """Score and categorize the item."""
        pass

    @abstractmethod
    async def summarize(
        self, item: CanonicalItem, classification: ClassificationResult
    ) -> Optional[SummaryResult]:
        """Generate a developer-focused summary of the item."""
        pass


class ArticleStore(ABC):
    """Interface for persisting classified articles."""

    @abstractmethod
    def upsert_article(
        self,
        item: CanonicalItem,
        classification: ClassificationResult,
        summary: Optional[SummaryResult] = None,
    ) -> ArticleRecord:
        """Insert or update the article keyed by URL."""
        pass

    @abstractmethod
    def add_duplicate(self, article_id: str, duplicate: DuplicateRef) -> None:
        """Record a merged-away duplicate against its canonical article."""
        pass

    @abstractmethod
    def list_articles(
        self,
        published_since: Optional[datetime] = None,
        published_before: Optional[datetime] = None,
        min_score: int = 0,
    ) -> list[ArticleRecord]:
        """List articles by score descending, then publish time descending."""
        pass

    @abstractmethod
    def get_last_refresh(self) -> Optional[datetime]:
        """Time of the last completed refresh, if any."""
        pass

    @abstractmethod
    def set_last_refresh(self, when: datetime) -> None:
        """Persist the time of the last completed refresh."""
        pass


class DigestGenerator(ABC):
    """Interface for rendering feed pages."""

    @abstractmethod
    def generate(self, page: FeedPage, title: str) -> str:
        """Render a feed page."""
        pass
