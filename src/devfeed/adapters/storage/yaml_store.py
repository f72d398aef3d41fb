"""Article store backed by one YAML artifact per canonical article."""

import hashlib
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from devfeed.core import (
    ArticleRecord,
    ArticleStore,
    CanonicalItem,
    Category,
    ClassificationResult,
    DuplicateRef,
    RawItem,
    SourceName,
    StoreError,
    SummaryResult,
)

logger = logging.getLogger(__name__)


def article_id(url: str) -> str:
    """Stable identity of an article, derived from its URL."""
    return hashlib.md5(url.encode()).hexdigest()[:16]


class YamlArticleStore(ArticleStore):
    """Persist articles as individual YAML artifacts."""

    def __init__(self, storage_dir: Path) -> None:
        self.storage_dir = storage_dir
        self.articles_dir = storage_dir / "articles"
        self.system_path = storage_dir / "system.yaml"
        self._ensure_structure()

    def _ensure_structure(self) -> None:
        try:
            self.articles_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create store at {self.storage_dir}: {e}") from e

    def _get_artifact_path(self, article_id: str) -> Path:
        return self.articles_dir / f"{article_id}.yaml"

    def upsert_article(
        self,
        item: CanonicalItem,
        classification: ClassificationResult,
        summary: Optional[SummaryResult] = None,
    ) -> ArticleRecord:
        """Insert a new artifact, or refresh item fields, scoring and summary of an existing one."""
        record_id = article_id(item.url)
        now = datetime.now(timezone.utc)
        existing = self._load(record_id)

        if existing is None:
            record = ArticleRecord(
                id=record_id,
                item=item.item,
                classification=classification,
                summary=summary,
                created_at=now,
                updated_at=now,
            )
        else:
            existing.item = item.item
            existing.classification = classification
            # Keep the previous summary when summarization failed this pass
            existing.summary = summary or existing.summary
            existing.updated_at = now
            record = existing

        self._save(record)
        return record

    def add_duplicate(self, article_id: str, duplicate: DuplicateRef) -> None:
        record = self._load(article_id)
        if record is None:
            raise StoreError(f"Unknown article {article_id}")

        if any(d.url == duplicate.url for d in record.duplicates):
            return

        record.duplicates.append(duplicate)
        self._save(record)

    def get_article(self, article_id: str) -> Optional[ArticleRecord]:
        return self._load(article_id)

    def list_articles(
        self,
        published_since: Optional[datetime] = None,
        published_before: Optional[datetime] = None,
        min_score: int = 0,
    ) -> list[ArticleRecord]:
        records = []

        for artifact_path in self.articles_dir.glob("*.yaml"):
            record = self._read(artifact_path)
            if record is None:
                continue
            if record.score < min_score:
                continue
            if published_since and record.published_at < published_since:
                continue
            if published_before and record.published_at >= published_before:
                continue
            records.append(record)

        records.sort(key=lambda r: (r.score, r.published_at), reverse=True)
        return records

    def get_last_refresh(self) -> Optional[datetime]:
        if not self.system_path.exists():
            return None
        data = self._read_yaml(self.system_path) or {}
        value = data.get("last_refresh_at")
        return _parse_datetime(value) if value else None

    def set_last_refresh(self, when: datetime) -> None:
        self._write_yaml(self.system_path, {"last_refresh_at": when.isoformat()})

    def get_stats(self) -> dict:
        """Article counts by source."""
        sources: dict[str, int] = {}
        total = 0

        for artifact_path in self.articles_dir.glob("*.yaml"):
            record = self._read(artifact_path)
            if record is None:
                continue
            sources[record.item.source.value] = sources.get(record.item.source.value, 0) + 1
            total += 1

        return {
            "total": total,
            "by_source": sources,
        }

    def _load(self, article_id: str) -> Optional[ArticleRecord]:
        path = self._get_artifact_path(article_id)
        if not path.exists():
            return None
        return self._read(path)

    def _read(self, path: Path) -> Optional[ArticleRecord]:
        data = self._read_yaml(path)
        if not data:
            return None
        try:
            return _record_from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping corrupt artifact %s: %s", path.name, e)
            return None

    def _save(self, record: ArticleRecord) -> None:
        self._write_yaml(self._get_artifact_path(record.id), _record_to_dict(record))

    def _read_yaml(self, path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.warning("Skipping unreadable artifact %s: %s", path.name, e)
            return None
        except OSError as e:
            raise StoreError(f"Cannot read {path}: {e}") from e

    def _write_yaml(self, path: Path, data: dict) -> None:
        try:
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, allow_unicode=True, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise StoreError(f"Cannot write {path}: {e}") from e


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _record_to_dict(record: ArticleRecord) -> dict:
    item = record.item
    classification = record.classification

    data: dict[str, Any] = {
        "id": record.id,
        "title": item.title,
        "url": item.url,
        "source": item.source.value,
        "source_id": item.source_id,
        "published_at": item.published_at.isoformat(),
        "content": item.content,
        "excerpt": item.excerpt,
        "author": item.author,
        "domain": item.domain,
        "score": item.score,
        "comment_count": item.comment_count,
        "github_repo": item.github_repo,
        "github_stars": item.github_stars,
        "github_language": item.github_language,
        "github_release_tag": item.github_release_tag,
        "is_github_trending": item.is_github_trending,
        "hn_discussion_url": item.hn_discussion_url,
        "reddit_discussion_url": item.reddit_discussion_url,
        "classification": {
            "score": classification.score,
            "label": classification.label.value,
            "category": classification.category.value,
            "languages": sorted(classification.languages),
            "frameworks": sorted(classification.frameworks),
            "topics": sorted(classification.topics),
            "affects_production": classification.affects_production,
            "reasoning": classification.reasoning,
            "tags": list(classification.tags),
        },
        "summary": None,
        "duplicates": [
            {"title": d.title, "url": d.url, "source": d.source.value}
            for d in record.duplicates
        ],
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }

    if record.summary is not None:
        data["summary"] = {
            "summary": list(record.summary.summary),
            "insight": record.summary.insight,
            "code_example": record.summary.code_example,
            "code_language": record.summary.code_language,
            "install_command": record.summary.install_command,
            "migration_guide": record.summary.migration_guide,
        }

    return data


def _record_from_dict(data: dict) -> ArticleRecord:
    item = RawItem(
        title=data["title"],
        url=data["url"],
        source=SourceName(data["source"]),
        published_at=_parse_datetime(data["published_at"]),
        source_id=data.get("source_id"),
        content=data.get("content"),
        excerpt=data.get("excerpt"),
        author=data.get("author"),
        domain=data.get("domain"),
        score=data.get("score"),
        comment_count=data.get("comment_count"),
        github_repo=data.get("github_repo"),
        github_stars=data.get("github_stars"),
        github_language=data.get("github_language"),
        github_release_tag=data.get("github_release_tag"),
        is_github_trending=bool(data.get("is_github_trending", False)),
        hn_discussion_url=data.get("hn_discussion_url"),
        reddit_discussion_url=data.get("reddit_discussion_url"),
    )

    c = data["classification"]
    classification = ClassificationResult(
        score=int(c["score"]),
        category=Category(c["category"]),
        languages=set(c.get("languages") or []),
        frameworks=set(c.get("frameworks") or []),
        topics=set(c.get("topics") or []),
        affects_production=bool(c.get("affects_production", False)),
        reasoning=c.get("reasoning") or "",
        tags=list(c.get("tags") or []),
    )

    summary = None
    if data.get("summary"):
        s = data["summary"]
        summary = SummaryResult(
            summary=list(s.get("summary") or []),
            insight=s.get("insight") or "",
            code_example=s.get("code_example"),
            code_language=s.get("code_language"),
            install_command=s.get("install_command"),
            migration_guide=s.get("migration_guide"),
        )

    return ArticleRecord(
        id=data["id"],
        item=item,
        classification=classification,
        summary=summary,
        duplicates=[
            DuplicateRef(title=d["title"], url=d["url"], source=SourceName(d["source"]))
            for d in data.get("duplicates") or []
        ],
        created_at=_parse_datetime(data["created_at"]) if data.get("created_at") else None,
        updated_at=_parse_datetime(data["updated_at"]) if data.get("updated_at") else None,
    )
