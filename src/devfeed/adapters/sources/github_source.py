"""GitHub source for new repositories and library releases."""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import httpx

from devfeed.core import ItemSource, RawItem, SourceName

logger = logging.getLogger(__name__)


class GitHubSource(ItemSource):
    """Search GitHub repositories by topic and fetch releases of tracked repos."""

    emoji = "🐙"
    name = "GitHub"

    def __init__(
        self,
        token: Optional[str] = None,
        max_items: int = 30,
        topics: Optional[list[str]] = None,
        release_repos: Optional[list[str]] = None,
        search_days: int = 7,
        min_stars: int = 50,
        trending_stars: int = 500,
        request_delay: float = 7,
    ) -> None:
        self.token = token
        self.max_items = max_items
        self.topics = topics or []
        self.release_repos = release_repos or []
        self.search_days = search_days
        self.min_stars = min_stars
        self.trending_stars = trending_stars
        self.request_delay = request_delay
        self.api_base = "https://api.github.com"

    async def fetch_items(self, since: date) -> list[RawItem]:
        """Collect new repositories by topic, then recent releases."""
        seen_urls: set[str] = set()
        repos: list[RawItem] = []
        releases: list[RawItem] = []

        search_since = date.today() - timedelta(days=self.search_days)

        async with httpx.AsyncClient(timeout=30.0) as client:
            headers = self._get_headers()

            for i, topic in enumerate(self.topics):
                if i > 0:
                    await self._rate_limit_delay()

                for item in await self._search_by_query(client, headers, f"topic:{topic}", search_since):
                    if item.url not in seen_urls:
                        seen_urls.add(item.url)
                        repos.append(item)

            for repo in self.release_repos:
                release = await self._latest_release(client, headers, repo, since)
                if release and release.url not in seen_urls:
                    seen_urls.add(release.url)
                    releases.append(release)

        repos.sort(key=lambda x: x.github_stars or 0, reverse=True)
        items = releases + repos

        logger.info("GitHub: %d releases, %d repositories", len(releases), len(repos))
        return items[:self.max_items]

    async def _search_by_query(
        self,
        client: httpx.AsyncClient,
        headers: dict[str, str],
        query: str,
        since: date,
    ) -> list[RawItem]:
        """Execute a search query and return items."""
        date_filter = f"created:{since.isoformat()}..{date.today().isoformat()}"
        stars_filter = f"stars:>={self.min_stars}"
        full_query = f"{query} {date_filter} {stars_filter}"

        response = await client.get(
            f"{self.api_base}/search/repositories",
            headers=headers,
            params={"q": full_query, "sort": "stars", "order": "desc", "per_page": 30},
        )

        if response.status_code != 200:
            logger.warning("GitHub API error %d for query %r", response.status_code, query)
            return []

        items = []
        for repo in response.json().get("items", []):
            item = self.item_from_repo(repo)
            if item:
                items.append(item)
        return items

    async def _latest_release(
        self,
        client: httpx.AsyncClient,
        headers: dict[str, str],
        repo: str,
        since: date,
    ) -> Optional[RawItem]:
        response = await client.get(f"{self.api_base}/repos/{repo}/releases/latest", headers=headers)
        if response.status_code != 200:
            logger.warning("GitHub releases error %d for %s", response.status_code, repo)
            return None

        item = self.item_from_release(repo, response.json())
        if item is None or item.published_at.date() < since:
            return None
        return item

    def item_from_repo(self, repo: dict) -> Optional[RawItem]:
        """Create item from a search API result."""
        try:
            description = repo.get("description") or "No description"
            topics = repo.get("topics", [])
            stars = int(repo.get("stargazers_count", 0))

            content = (
                f"Description: {description}\n\n"
                f"Topics: {', '.join(topics) if topics else 'No topics'}\n\n"
                f"Language: {repo.get('language') or 'Not specified'}\n"
                f"Stars: {stars}\n"
            )

            return RawItem(
                title=repo["full_name"],
                url=repo["html_url"],
                source=SourceName.GITHUB,
                source_id=repo["full_name"],
                published_at=_parse_github_time(repo.get("created_at")),
                content=content,
                excerpt=description,
                author=(repo.get("owner") or {}).get("login"),
                domain="github.com",
                score=stars,
                github_repo=repo["full_name"],
                github_stars=stars,
                github_language=repo.get("language"),
                is_github_trending=stars >= self.trending_stars,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping repository %s: %s", repo.get("full_name", "?"), e)
            return None

    def item_from_release(self, repo: str, release: dict) -> Optional[RawItem]:
        """Create item from a releases API result."""
        try:
            tag = release["tag_name"]
            name = release.get("name") or tag
            return RawItem(
                title=f"{repo.split('/')[-1]} {name}",
                url=release["html_url"],
                source=SourceName.GITHUB,
                source_id=f"{repo}@{tag}",
                published_at=_parse_github_time(release.get("published_at")),
                content=release.get("body") or "",
                excerpt=name,
                author=(release.get("author") or {}).get("login"),
                domain="github.com",
                github_repo=repo,
                github_release_tag=tag,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping release of %s: %s", repo, e)
            return None

    async def _rate_limit_delay(self) -> None:
        """Apply rate limit delay between search requests."""
        if not self.token:
            # Without token: 10 requests per minute
            await asyncio.sleep(self.request_delay)
        else:
            await asyncio.sleep(2)

    def _get_headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        return headers


def _parse_github_time(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
