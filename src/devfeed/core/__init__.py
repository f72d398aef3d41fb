"""Core domain layer."""

from devfeed.core.cache import FeedCache, window_key, window_start
from devfeed.core.dedup import DeduplicationResult, Deduplicator, deduplicate
from devfeed.core.entities import (
    ArticleRecord,
    CanonicalItem,
    Category,
    ClassificationResult,
    DuplicateRef,
    FeedEntry,
    FeedPage,
    FeedTier,
    FetchResult,
    ImportanceLabel,
    PipelineResult,
    RawItem,
    Section,
    SourceName,
    SummaryResult,
    score_to_label,
)
from devfeed.core.feed import FeedCursor, FeedMode, assemble, paginate
from devfeed.core.interfaces import ArticleStore, DigestGenerator, ItemSource, LLMClient, StoreError

__all__ = [
    "RawItem",
    "CanonicalItem",
    "DuplicateRef",
    "ClassificationResult",
    "SummaryResult",
    "ArticleRecord",
    "FeedEntry",
    "FeedPage",
    "FetchResult",
    "PipelineResult",
    "SourceName",
    "ImportanceLabel",
    "Category",
    "Section",
    "FeedTier",
    "score_to_label",
    "Deduplicator",
    "DeduplicationResult",
    "deduplicate",
    "assemble",
    "paginate",
    "FeedCursor",
    "FeedMode",
    "FeedCache",
    "window_key",
    "window_start",
    "ItemSource",
    "LLMClient",
    "ArticleStore",
    "DigestGenerator",
    "StoreError",
]
