"""Configuration management."""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class ClaudeConfig:
    """Claude API settings."""
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1024
    scoring_temperature: float = 0.3
    summary_temperature: float = 0.7
    max_retries: int = 5
    initial_retry_delay: float = 2.0
    request_delay: float = 0.0
    timeout: float = 60.0


@dataclass
class PathsConfig:
    """Path settings."""
    store_dir: Path = Path("data/articles")
    digests_dir: Path = Path("digests")


@dataclass
class PipelineConfig:
    """Ingestion and feed settings."""
    batch_size: int = 10
    batch_delay: float = 0.5
    min_feed_score: int = 40
    recency_days: int = 3
    refresh_interval_hours: int = 24
    page_size: int = 10


@dataclass
class DedupConfig:
    """Title similarity thresholds."""
    domain_title_threshold: float = 0.85
    cross_domain_title_threshold: float = 0.95


@dataclass
class SourcesConfig:
    """Source-specific settings."""
    github: dict = field(default_factory=lambda: {
        "enabled": True,
        "max_items": 30,
        "topics": ["llm", "machine-learning", "generative-ai"],
        "search_days": 7,
        "min_stars": 50,
        "trending_stars": 500,
        "release_repos": [
            "huggingface/transformers",
            "pytorch/pytorch",
            "langchain-ai/langchain",
            "ollama/ollama",
        ],
    })
    hackernews: dict = field(default_factory=lambda: {
        "enabled": True,
        "max_items": 30,
        "scan_limit": 50,
    })
    arxiv: dict = field(default_factory=lambda: {
        "enabled": True,
        "max_items": 20,
        "categories": ["cs.AI", "cs.LG", "cs.CL"],
    })
    huggingface_papers: dict = field(default_factory=lambda: {
        "enabled": True,
        "max_items": 20,
        "search_days": 3,
    })
    keywords: list = field(default_factory=lambda: [
        "ai", "ml", "llm", "gpt", "openai", "anthropic", "claude",
        "machine learning", "deep learning", "neural", "transformer",
        "langchain", "pytorch", "tensorflow", "huggingface", "ollama",
        "diffusion", "embedding", "rag", "fine-tuning", "agent",
        "copilot", "inference", "model",
    ])


@dataclass
class PromptsConfig:
    """Prompts for LLM."""
    scoring: dict = field(default_factory=lambda: {
        "system": (
            "You are curating a balanced daily briefing for software engineers "
            "working with AI/ML. Score importance 0-100 for developers: "
            "95-100 breaking changes and critical security issues, "
            "75-94 new tools, major launches and trending repos, "
            "55-74 useful tools, performance insights and case studies, "
            "40-54 research and community posts, below 40 hype and noise. "
            "Categories: breaking, library, sdk, launch, trending, industry, tools, "
            "performance, known_issue, case_study, research, community, security. "
            "Respond with a single JSON object."
        ),
        "user": (
            "Title: {title}\nSource: {source}\nURL: {url}\nContent: {content}\n{extra}\n\n"
            "Return JSON with keys: score, category, languages, frameworks, topics, "
            "affects_production, reasoning, tags (1-2 emoji)."
        ),
    })
    summary: dict = field(default_factory=lambda: {
        "system": (
            "Create a code-first developer summary of this AI/ML update. Be specific "
            "about versions and API names, avoid marketing language. "
            "Respond with a single JSON object."
        ),
        "user": (
            "Title: {title}\nURL: {url}\nContent: {content}\nCategory: {category}\n"
            "Languages: {languages}\nFrameworks: {frameworks}\n"
            "Affects production code: {affects_production}\n\n"
            "Return JSON with keys: summary (3 bullets), insight, code_example, "
            "code_language, install_command, migration_guide."
        ),
    })


@dataclass
class Settings:
    """Application settings."""

    # API Keys (from environment only)
    anthropic_api_key: str = ""
    github_token: Optional[str] = None

    # Config sections
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    prompts: PromptsConfig = field(default_factory=PromptsConfig)

    @property
    def store_dir(self) -> Path:
        return self.paths.store_dir

    @property
    def digests_dir(self) -> Path:
        return self.paths.digests_dir

    @property
    def batch_size(self) -> int:
        return self.pipeline.batch_size

    @property
    def min_feed_score(self) -> int:
        return self.pipeline.min_feed_score

    @property
    def recency_days(self) -> int:
        return self.pipeline.recency_days


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _apply_section(section: Any, values: dict, name: str, convert=None) -> None:
    known = {f.name for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            logger.warning("Ignoring unknown config key %s.%s", name, key)
            continue
        current = getattr(section, key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = {**current, **value}
        setattr(section, key, convert(value) if convert else value)


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)

    settings = Settings(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        github_token=os.getenv("GITHUB_TOKEN"),
    )

    if "claude" in config:
        _apply_section(settings.claude, config["claude"], "claude")

    if "paths" in config:
        _apply_section(settings.paths, config["paths"], "paths", convert=Path)

    if "pipeline" in config:
        _apply_section(settings.pipeline, config["pipeline"], "pipeline")

    if "dedup" in config:
        _apply_section(settings.dedup, config["dedup"], "dedup")

    if "sources" in config:
        _apply_section(settings.sources, config["sources"], "sources")

    if "prompts" in config:
        _apply_section(settings.prompts, config["prompts"], "prompts")

    return settings
