"""Fuzzy cross-source deduplication.

Items are compared pairwise against the canonical items accumulated so far,
in arrival order. Two items are duplicates when any of these hold:

1. their URLs are equal after normalization;
2. they share a GitHub repository and both URLs point at a release page;
3. they live on the same domain and their titles are at least 85% similar;
4. their titles are at least 95% similar, whatever the domain.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Optional
from urllib.parse import urlparse

from rapidfuzz.distance import Levenshtein

from devfeed.core.entities import CanonicalItem, DuplicateRef, RawItem

logger = logging.getLogger(__name__)

DOMAIN_TITLE_THRESHOLD = 0.85
CROSS_DOMAIN_TITLE_THRESHOLD = 0.95
RELEASE_MARKER = "/releases/"

_DISCUSSION_FIELDS = ("hn_discussion_url", "reddit_discussion_url")


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit insert, delete and substitute costs."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Normalized edit similarity in [0, 1]; two empty strings are identical."""
    return Levenshtein.normalized_similarity(a, b)


def normalize_url(url: str) -> str:
    """Lowercase and strip protocol, leading www. and trailing slash."""
    url = (url or "").strip().lower()
    url = re.sub(r"^https?://", "", url)
    url = re.sub(r"^www\.", "", url)
    return re.sub(r"/$", "", url)


def extract_domain(url: str) -> str:
    """Host of the URL without www., or '' when it cannot be parsed."""
    try:
        host = urlparse(url or "").hostname
    except ValueError:
        return ""
    if not host:
        return ""
    return re.sub(r"^www\.", "", host)


def _title_key(item: RawItem) -> str:
    return (item.title or "").strip().lower()


def are_duplicates(
    a: RawItem,
    b: RawItem,
    domain_threshold: float = DOMAIN_TITLE_THRESHOLD,
    cross_domain_threshold: float = CROSS_DOMAIN_TITLE_THRESHOLD,
) -> bool:
    """Check whether two items report the same thing."""
    if normalize_url(a.url) == normalize_url(b.url):
        return True

    if (
        a.github_repo
        and a.github_repo == b.github_repo
        and RELEASE_MARKER in (a.url or "")
        and RELEASE_MARKER in (b.url or "")
    ):
        return True

    title_a = _title_key(a)
    title_b = _title_key(b)
    title_similarity = similarity(title_a, title_b)

    domain_a = extract_domain(a.url)
    if domain_a and domain_a == extract_domain(b.url):
        if title_similarity >= domain_threshold:
            return True

    return title_similarity >= cross_domain_threshold


def merge(canonical: RawItem, incoming: RawItem) -> RawItem:
    """Merge a duplicate into the canonical slot.

    The higher-engagement item supplies the fields (the existing one wins
    ties), the slot keeps its URL, and discussion URLs missing on the winner
    are backfilled from the other item.
    """
    if incoming.engagement > canonical.engagement:
        winner, other = incoming, canonical
    else:
        winner, other = canonical, incoming

    backfill = {
        name: getattr(other, name)
        for name in _DISCUSSION_FIELDS
        if not getattr(winner, name) and getattr(other, name)
    }
    return replace(winner, url=canonical.url, **backfill)


@dataclass
class DeduplicationResult:
    """Canonical items plus the duplicates merged into each, keyed by canonical URL."""

    canonical: list[CanonicalItem] = field(default_factory=list)
    duplicates: dict[str, list[RawItem]] = field(default_factory=dict)

    def duplicates_for(self, url: str) -> list[RawItem]:
        return self.duplicates.get(url, [])


class Deduplicator:
    """Single-pass, arrival-ordered grouping of raw items."""

    def __init__(
        self,
        domain_threshold: float = DOMAIN_TITLE_THRESHOLD,
        cross_domain_threshold: float = CROSS_DOMAIN_TITLE_THRESHOLD,
    ) -> None:
        self.domain_threshold = domain_threshold
        self.cross_domain_threshold = cross_domain_threshold

    def is_duplicate(self, a: RawItem, b: RawItem) -> bool:
        return are_duplicates(a, b, self.domain_threshold, self.cross_domain_threshold)

    def find_match(self, item: RawItem, canonical: list[CanonicalItem]) -> Optional[int]:
        for index, existing in enumerate(canonical):
            if self.is_duplicate(item, existing.item):
                return index
        return None

    def deduplicate(self, items: list[RawItem]) -> DeduplicationResult:
        result = DeduplicationResult()

        for item in items:
            index = self.find_match(item, result.canonical)
            if index is None:
                result.canonical.append(CanonicalItem(item=item))
                continue

            slot = result.canonical[index]
            slot.item = merge(slot.item, item)
            slot.duplicates.append(DuplicateRef(title=item.title, url=item.url, source=item.source))
            result.duplicates.setdefault(slot.url, []).append(item)

        logger.info(
            "Deduplication: %d -> %d items (removed %d duplicates)",
            len(items),
            len(result.canonical),
            len(items) - len(result.canonical),
        )
        return result


def deduplicate(items: list[RawItem]) -> DeduplicationResult:
    """Deduplicate with the default thresholds."""
    return Deduplicator().deduplicate(items)
