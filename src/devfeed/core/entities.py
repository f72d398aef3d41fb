"""Core domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class SourceName(str, Enum):
    """Provider an item was fetched from."""

    GITHUB = "github"
    HACKER_NEWS = "hn"
    REDDIT = "reddit"
    ARXIV = "arxiv"
    BLOG = "blog"
    DEVTO = "devto"
    HUGGINGFACE = "huggingface"


class ImportanceLabel(str, Enum):
    """Severity tier derived from the importance score."""

    BREAKING = "breaking"
    MAJOR = "major"
    NOTABLE = "notable"
    INFO = "info"
    NOISE = "noise"

    @property
    def rank(self) -> int:
        return _LABEL_RANK[self]


_LABEL_RANK = {
    ImportanceLabel.NOISE: 0,
    ImportanceLabel.INFO: 1,
    ImportanceLabel.NOTABLE: 2,
    ImportanceLabel.MAJOR: 3,
    ImportanceLabel.BREAKING: 4,
}


class Category(str, Enum):
    """Closed set of content categories."""

    BREAKING = "breaking"
    LIBRARY = "library"
    SDK = "sdk"
    LAUNCH = "launch"
    TRENDING = "trending"
    INDUSTRY = "industry"
    TOOLS = "tools"
    PERFORMANCE = "performance"
    KNOWN_ISSUE = "known_issue"
    CASE_STUDY = "case_study"
    RESEARCH = "research"
    COMMUNITY = "community"
    SECURITY = "security"


class Section(str, Enum):
    """Display grouping of a feed entry."""

    CRITICAL = "critical"
    NOTEWORTHY = "noteworthy"
    SPOTLIGHT = "spotlight"
    HISTORICAL = "historical"


class FeedTier(str, Enum):
    """Where a feed page came from."""

    CACHE = "cache"
    STORE = "store"


BREAKING_THRESHOLD = 95
MAJOR_THRESHOLD = 75
NOTABLE_THRESHOLD = 55
INFO_THRESHOLD = 40


def score_to_label(score: int) -> ImportanceLabel:
    """Map a 0-100 importance score onto its severity tier."""
    if score >= BREAKING_THRESHOLD:
        return ImportanceLabel.BREAKING
    if score >= MAJOR_THRESHOLD:
        return ImportanceLabel.MAJOR
    if score >= NOTABLE_THRESHOLD:
        return ImportanceLabel.NOTABLE
    if score >= INFO_THRESHOLD:
        return ImportanceLabel.INFO
    return ImportanceLabel.NOISE


@dataclass(frozen=True)
class RawItem:
    """One ingested record, as normalized by a source adapter."""

    title: str
    url: str
    source: SourceName
    published_at: datetime
    source_id: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    author: Optional[str] = None
    domain: Optional[str] = None

    # Engagement
    score: Optional[int] = None
    comment_count: Optional[int] = None

    # GitHub
    github_repo: Optional[str] = None
    github_stars: Optional[int] = None
    github_language: Optional[str] = None
    github_release_tag: Optional[str] = None
    is_github_trending: bool = False

    # Discussion threads
    hn_discussion_url: Optional[str] = None
    reddit_discussion_url: Optional[str] = None

    @property
    def engagement(self) -> int:
        return self.score or 0

    @property
    def text(self) -> str:
        return self.content or self.excerpt or ""


@dataclass(frozen=True)
class DuplicateRef:
    """Provenance of an item merged into a canonical item."""

    title: str
    url: str
    source: SourceName


@dataclass
class CanonicalItem:
    """Surviving representative of a duplicate group.

    ``item.url`` is the first-seen URL of the group; every other field comes
    from the highest-engagement member, with discussion URLs backfilled.
    """

    item: RawItem
    duplicates: list[DuplicateRef] = field(default_factory=list)

    @property
    def url(self) -> str:
        return self.item.url

    @property
    def title(self) -> str:
        return self.item.title

    @property
    def score(self) -> int:
        return self.item.engagement


@dataclass
class ClassificationResult:
    """Importance assessment of a canonical item."""

    score: int
    category: Category
    languages: set[str] = field(default_factory=set)
    frameworks: set[str] = field(default_factory=set)
    topics: set[str] = field(default_factory=set)
    affects_production: bool = False
    reasoning: str = ""
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError(f"Score must be within 0-100, got {self.score}")

    @property
    def label(self) -> ImportanceLabel:
        return score_to_label(self.score)


@dataclass
class SummaryResult:
    """Developer-focused summary of an item."""

    summary: list[str]
    insight: str = ""
    code_example: Optional[str] = None
    code_language: Optional[str] = None
    install_command: Optional[str] = None
    migration_guide: Optional[str] = None


@dataclass
class ArticleRecord:
    """A classified canonical item as persisted by the store."""

    id: str
    item: RawItem
    classification: ClassificationResult
    summary: Optional[SummaryResult] = None
    duplicates: list[DuplicateRef] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def url(self) -> str:
        return self.item.url

    @property
    def score(self) -> int:
        return self.classification.score

    @property
    def published_at(self) -> datetime:
        return self.item.published_at


@dataclass(frozen=True)
class FeedEntry:
    """Article placed in a feed section."""

    article: ArticleRecord
    section: Section

    @property
    def url(self) -> str:
        return self.article.url

    @property
    def score(self) -> int:
        return self.article.score


@dataclass(frozen=True)
class FeedPage:
    """One page of an ordered feed."""

    entries: tuple[FeedEntry, ...]
    total: int
    has_more: bool
    tier: FeedTier
    offset: int = 0

    @property
    def oldest_date(self) -> Optional[datetime]:
        if not self.entries:
            return None
        return min(entry.article.published_at for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class FetchResult:
    """Outcome of one source adapter call."""

    source: str
    items: list[RawItem]
    fetched_at: datetime
    error: Optional[str] = None


@dataclass
class PipelineResult:
    """Outcome of one ingestion pass."""

    success: bool
    items_fetched: int = 0
    items_processed: int = 0
    items_saved: int = 0
    errors: list[str] = field(default_factory=list)
    duration: float = 0.0
