"""Hacker News top stories filtered for AI/ML content."""

import logging
from datetime import date, datetime, timezone
from typing import Optional

import httpx

from devfeed.adapters.sources.filters import is_ai_related
from devfeed.core import ItemSource, RawItem, SourceName
from devfeed.core.dedup import extract_domain

logger = logging.getLogger(__name__)

ITEM_URL = "https://news.ycombinator.com/item?id={id}"


class HackerNewsSource(ItemSource):
    """Fetch top stories from the Hacker News Firebase API."""

    emoji = "🟧"
    name = "Hacker News"

    def __init__(
        self,
        max_items: int = 30,
        scan_limit: int = 50,
        keywords: Optional[list[str]] = None,
    ) -> None:
        self.max_items = max_items
        self.scan_limit = scan_limit
        self.keywords = keywords or []
        self.api_base = "https://hacker-news.firebaseio.com/v0"

    async def fetch_items(self, since: date) -> list[RawItem]:
        items: list[RawItem] = []

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.get(f"{self.api_base}/topstories.json")
            response.raise_for_status()
            story_ids = response.json()[:self.scan_limit]

            for story_id in story_ids:
                try:
                    story_response = await client.get(f"{self.api_base}/item/{story_id}.json")
                except httpx.HTTPError as e:
                    logger.warning("Hacker News story %s failed: %s", story_id, e)
                    continue
                if story_response.status_code != 200:
                    continue

                item = self.item_from_story(story_response.json())
                if item is None or item.published_at.date() < since:
                    continue

                items.append(item)
                if len(items) >= self.max_items:
                    break

        logger.info("Hacker News: %d relevant stories", len(items))
        return items

    def item_from_story(self, story: Optional[dict]) -> Optional[RawItem]:
        """Turn a story payload into an item, or None if it is not a relevant live story."""
        if not story or story.get("type") != "story" or story.get("dead") or story.get("deleted"):
            return None

        title = story.get("title") or ""
        text = story.get("text") or ""
        if not is_ai_related(title, text, self.keywords):
            return None

        discussion_url = ITEM_URL.format(id=story["id"])
        url = story.get("url") or discussion_url
        domain = extract_domain(url)

        return RawItem(
            title=title,
            url=url,
            source=SourceName.HACKER_NEWS,
            source_id=str(story["id"]),
            published_at=datetime.fromtimestamp(story.get("time", 0), tz=timezone.utc),
            content=text,
            excerpt=title,
            author=story.get("by") or "unknown",
            domain=domain,
            score=story.get("score") or 0,
            comment_count=story.get("descendants") or 0,
            hn_discussion_url=discussion_url,
        )
