"""CLI entry point for devfeed."""

import asyncio
import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

import typer

from devfeed.adapters.digest import MarkdownDigestGenerator
from devfeed.adapters.llm import ClaudeClient
from devfeed.adapters.sources import (
    ArXivRSSSource,
    GitHubSource,
    HackerNewsSource,
    HFPapersSource,
)
from devfeed.adapters.storage import YamlArticleStore
from devfeed.config import Settings, get_settings
from devfeed.core import Deduplicator, FeedCache, ItemSource
from devfeed.use_cases import FeedService, IngestionService, ScoringService

app = typer.Typer(help="Developer news feed: ingest, score and page through AI/ML updates.")

ConfigOption = typer.Option(Path("config.yaml"), "--config", help="Path to config.yaml")


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_sources(settings: Settings) -> list[ItemSource]:
    """Instantiate the enabled source adapters."""
    sources: list[ItemSource] = []
    keywords = settings.sources.keywords

    github = settings.sources.github
    if github.get("enabled", True):
        sources.append(
            GitHubSource(
                token=settings.github_token,
                max_items=github.get("max_items", 30),
                topics=github.get("topics"),
                release_repos=github.get("release_repos"),
                search_days=github.get("search_days", 7),
                min_stars=github.get("min_stars", 50),
                trending_stars=github.get("trending_stars", 500),
                request_delay=github.get("request_delay", 7 if not settings.github_token else 1),
            )
        )

    hackernews = settings.sources.hackernews
    if hackernews.get("enabled", True):
        sources.append(
            HackerNewsSource(
                max_items=hackernews.get("max_items", 30),
                scan_limit=hackernews.get("scan_limit", 50),
                keywords=keywords,
            )
        )

    arxiv = settings.sources.arxiv
    if arxiv.get("enabled", True):
        sources.append(
            ArXivRSSSource(
                categories=arxiv.get("categories"),
                max_items=arxiv.get("max_items", 20),
                keywords=keywords,
            )
        )

    hf_papers = settings.sources.huggingface_papers
    if hf_papers.get("enabled", True):
        sources.append(
            HFPapersSource(
                max_items=hf_papers.get("max_items", 20),
                search_days=hf_papers.get("search_days", 3),
            )
        )

    return sources


def build_ingestion_service(settings: Settings, cache: Optional[FeedCache] = None) -> IngestionService:
    scoring = ScoringService(
        llm_client=ClaudeClient(settings),
        batch_size=settings.pipeline.batch_size,
        batch_delay=settings.pipeline.batch_delay,
    )
    return IngestionService(
        sources=build_sources(settings),
        scoring=scoring,
        store=YamlArticleStore(settings.store_dir),
        deduplicator=Deduplicator(
            domain_threshold=settings.dedup.domain_title_threshold,
            cross_domain_threshold=settings.dedup.cross_domain_title_threshold,
        ),
        cache=cache,
        min_score=settings.min_feed_score,
        refresh_interval=timedelta(hours=settings.pipeline.refresh_interval_hours),
    )


def build_feed_service(settings: Settings, cache: Optional[FeedCache] = None) -> FeedService:
    return FeedService(
        store=YamlArticleStore(settings.store_dir),
        cache=cache or FeedCache(),
        min_score=settings.min_feed_score,
        recency_days=settings.recency_days,
    )


@app.command()
def ingest(
    force: bool = typer.Option(False, "--force", help="Ignore the refresh interval"),
    days: Optional[int] = typer.Option(None, help="Fetch items from the last N days"),
    config: Path = ConfigOption,
    debug: bool = False,
) -> None:
    """Fetch, deduplicate, score and store new items."""
    setup_logging(debug)
    asyncio.run(async_ingest(get_settings(config), force, days))


async def async_ingest(settings: Settings, force: bool, days: Optional[int]) -> None:
    print("\n" + "=" * 70)
    print("📰 DEVFEED - Ingestion")
    print("=" * 70)

    print("\n🔑 Credentials:")
    if settings.anthropic_api_key:
        print("  ✓ ANTHROPIC_API_KEY - scoring and summaries via Claude")
    else:
        print("  ✗ ANTHROPIC_API_KEY - not found (nothing will be scored)")

    if settings.github_token:
        print("  ✓ GITHUB_TOKEN - for GitHub search and releases")
    else:
        print("  ⚠️  GITHUB_TOKEN - not found (limited rate limit)")

    since = date.today() - timedelta(days=days or settings.recency_days)
    service = build_ingestion_service(settings)

    print("\n⚙️  Settings:")
    print(f"  • Since: {since.isoformat()}")
    print(f"  • Min feed score: {settings.min_feed_score}")
    print(f"  • Batch size: {settings.batch_size}")

    print("\n📡 Sources:")
    for source in service.sources:
        print(f"  {source.emoji} {source.name}")

    outcome = await service.refresh(since, force=force)

    print("\n" + "=" * 70)
    if outcome.rate_limited:
        print(f"⏳ SKIPPED: last refresh at {outcome.status.last_refresh_at:%Y-%m-%d %H:%M} UTC")
        print(f"   Next refresh allowed at {outcome.status.next_refresh_at:%Y-%m-%d %H:%M} UTC (use --force)")
        print("=" * 70)
        return

    result = outcome.result
    if not result.success:
        print("❌ INGESTION FAILED")
        print("=" * 70)
        for error in result.errors:
            print(f"  • {error}")
        raise typer.Exit(code=1)

    print("✅ DONE!")
    print("=" * 70)
    print(f"  • Fetched: {result.items_fetched}")
    print(f"  • Unique: {result.items_processed}")
    print(f"  • Saved: {result.items_saved}")
    print(f"  • Duration: {result.duration:.1f}s")
    if result.errors:
        print(f"\n⚠️  {len(result.errors)} errors:")
        for error in result.errors:
            print(f"  • {error}")
    print()


@app.command()
def feed(
    offset: int = typer.Option(0, min=0),
    limit: Optional[int] = typer.Option(None, min=1),
    older: bool = typer.Option(False, "--older", help="Read the historical tier"),
    language: list[str] = typer.Option([], "--language", "-l", help="Filter by language"),
    framework: list[str] = typer.Option([], "--framework", "-f", help="Filter by framework"),
    output: Optional[Path] = None,
    config: Path = ConfigOption,
    debug: bool = False,
) -> None:
    """Render one feed page as a markdown digest."""
    setup_logging(debug)
    settings = get_settings(config)
    service = build_feed_service(settings)

    response = service.get_page(
        offset=offset,
        limit=limit or settings.pipeline.page_size,
        older=older,
        languages=language,
        frameworks=framework,
    )

    if not response.success:
        print(f"❌ Failed to read feed: {response.error}")
        raise typer.Exit(code=1)

    title = "Earlier Articles" if older else f"Developer Feed {date.today().isoformat()}"
    digest = MarkdownDigestGenerator().generate(response.page, title)

    if output is None:
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        tier = "older" if older else "recent"
        output = settings.digests_dir / f"{timestamp}_{tier}_{offset}.md"

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(digest, encoding="utf-8")

    page = response.page
    print(f"📄 {len(page)} of {page.total} articles ({page.tier.value}) saved to {output}")
    if response.distribution:
        print("📊 " + ", ".join(f"{name}: {count}" for name, count in response.distribution.items()))
    if page.has_more:
        print(f"➡️  Next page: --offset {offset + len(page)}{' --older' if older else ''}")
    elif not older:
        print("➡️  Recent articles exhausted, continue with --older")


@app.command("cache-stats")
def cache_stats(config: Path = ConfigOption) -> None:
    """Build the recent feed twice and show cache statistics."""
    setup_logging(False)
    settings = get_settings(config)
    service = build_feed_service(settings)

    service.recent_feed()
    service.recent_feed()
    stats = service.cache.stats()

    print(f"  • Valid: {stats.is_valid}")
    print(f"  • Window starts: {stats.valid_from}")
    print(f"  • Built at: {stats.built_at}")
    print(f"  • Entries: {stats.entry_count}")
    print(f"  • Hits/misses: {stats.hits}/{stats.misses}")


@app.command()
def status(config: Path = ConfigOption) -> None:
    """Show when the next refresh is allowed."""
    settings = get_settings(config)
    store = YamlArticleStore(settings.store_dir)
    refresh = build_ingestion_service(settings).refresh_status()
    stats = store.get_stats()

    print(f"  • Articles stored: {stats['total']}")
    print(f"  • Last refresh: {refresh.last_refresh_at or 'never'}")
    if refresh.can_refresh:
        print("  • Refresh allowed now")
    else:
        print(f"  • Next refresh at: {refresh.next_refresh_at}")


if __name__ == "__main__":
    app()
