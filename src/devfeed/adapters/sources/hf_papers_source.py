"""HuggingFace daily papers source."""

import json
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from devfeed.core import ItemSource, RawItem, SourceName

logger = logging.getLogger(__name__)


class HFPapersSource(ItemSource):
    """Fetch daily papers from HuggingFace."""

    emoji = "📄"
    name = "HuggingFace Papers"

    def __init__(self, max_items: int = 20, search_days: int = 3) -> None:
        self.max_items = max_items
        self.search_days = search_days
        self.base_url = "https://huggingface.co"

    async def fetch_items(self, since: date) -> list[RawItem]:
        """Fetch papers from the daily pages of the last N days."""
        items: list[RawItem] = []
        seen_paper_ids: set[str] = set()
        end_date = date.today()

        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
            for day_offset in range(self.search_days):
                current_date = end_date - timedelta(days=day_offset)
                if current_date < since:
                    break

                if day_offset == 0:
                    url = f"{self.base_url}/papers"
                else:
                    url = f"{self.base_url}/papers?date={current_date.isoformat()}"

                response = await client.get(url)
                if response.status_code != 200:
                    logger.warning("HuggingFace papers %s: HTTP %d", current_date, response.status_code)
                    continue

                for paper_data in self._extract_papers_from_html(response.text):
                    item = self.item_from_paper(paper_data, current_date)
                    if item is None or item.source_id in seen_paper_ids:
                        continue
                    seen_paper_ids.add(item.source_id)
                    items.append(item)

                    if len(items) >= self.max_items:
                        break

                if len(items) >= self.max_items:
                    break

        logger.info("HuggingFace: %d papers", len(items))
        return items

    def item_from_paper(self, paper_data: dict, published: date) -> Optional[RawItem]:
        paper = paper_data.get("paper") or {}
        paper_id = paper.get("id")
        title = paper_data.get("title") or paper.get("title")
        if not paper_id or not title:
            return None

        summary = paper_data.get("summary") or paper.get("summary") or ""
        return RawItem(
            title=" ".join(title.split()),
            url=f"{self.base_url}/papers/{paper_id}",
            source=SourceName.HUGGINGFACE,
            source_id=paper_id,
            published_at=datetime.combine(published, time.min, tzinfo=timezone.utc),
            content=summary,
            excerpt=summary[:280],
            domain="huggingface.co",
            score=int(paper.get("upvotes") or 0),
            comment_count=int(paper_data.get("numComments") or 0),
        )

    def _extract_papers_from_html(self, html: str) -> list[dict]:
        """Extract papers data from the hydration JSON embedded in the HTML."""
        soup = BeautifulSoup(html, "html.parser")

        hydrate_div = soup.find("div", {"class": "SVELTE_HYDRATER", "data-target": "DailyPapers"})
        if not hydrate_div:
            logger.warning("HuggingFace: DailyPapers block not found")
            return []

        data_props = hydrate_div.get("data-props")
        if not data_props:
            return []

        try:
            props_data = json.loads(data_props)
        except json.JSONDecodeError as e:
            logger.warning("HuggingFace: cannot parse papers JSON: %s", e)
            return []

        return props_data.get("dailyPapers") or []
