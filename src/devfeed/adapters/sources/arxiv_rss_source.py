"""ArXiv RSS feed source for research papers."""

import logging
import re
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from xml.etree import ElementTree as ET

import httpx

from devfeed.adapters.sources.filters import is_ai_related
from devfeed.core import ItemSource, RawItem, SourceName

logger = logging.getLogger(__name__)


class ArXivRSSSource(ItemSource):
    """Fetch papers from ArXiv RSS feeds."""

    emoji = "📚"
    name = "ArXiv RSS"

    CATEGORIES = {
        "cs.AI": "Artificial Intelligence (cs.AI)",
        "cs.LG": "Machine Learning (cs.LG)",
        "cs.CL": "Computation and Language (cs.CL)",
        "cs.CV": "Computer Vision (cs.CV)",
    }

    def __init__(
        self,
        categories: Optional[list[str]] = None,
        max_items: int = 20,
        keywords: Optional[list[str]] = None,
    ) -> None:
        self.categories = categories or ["cs.AI", "cs.LG", "cs.CL"]
        self.max_items = max_items
        self.keywords = keywords or []
        self.base_url = "https://rss.arxiv.org/rss"

    async def fetch_items(self, since: date) -> list[RawItem]:
        """Fetch papers from each category feed."""
        items: list[RawItem] = []
        seen_arxiv_ids: set[str] = set()

        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
            for category in self.categories:
                response = await client.get(f"{self.base_url}/{category}")

                if response.status_code != 200:
                    logger.warning("ArXiv %s: HTTP %d", category, response.status_code)
                    continue

                for paper in self._parse_feed(response.text):
                    if len(items) >= self.max_items:
                        break

                    arxiv_id = paper["id"]
                    if not arxiv_id or arxiv_id in seen_arxiv_ids:
                        continue
                    seen_arxiv_ids.add(arxiv_id)

                    if not is_ai_related(paper["title"], paper["abstract"], self.keywords):
                        continue

                    item = self.item_from_paper(paper)
                    if item.published_at.date() >= since:
                        items.append(item)

                if len(items) >= self.max_items:
                    break

        logger.info("ArXiv: %d papers from %s", len(items), ", ".join(self.categories))
        return items

    def item_from_paper(self, paper: dict) -> RawItem:
        arxiv_id = paper["id"]
        return RawItem(
            title=paper["title"],
            url=paper["link"] or f"https://arxiv.org/abs/{arxiv_id}",
            source=SourceName.ARXIV,
            source_id=arxiv_id,
            published_at=paper["published"],
            content=paper["abstract"],
            excerpt=paper["abstract"][:280],
            author=paper["authors"] or None,
            domain="arxiv.org",
        )

    def _parse_feed(self, xml_content: str) -> list[dict]:
        """Parse ArXiv RSS 2.0 feed XML."""
        papers = []

        try:
            root = ET.fromstring(xml_content)
        except ET.ParseError as e:
            logger.warning("ArXiv feed is not valid XML: %s", e)
            return papers

        for item in root.findall(".//item"):
            title = _text(item, "title")
            link = _text(item, "link")
            if not title or not link:
                continue

            # Description format: "arXiv:ID Announce Type: ...\nAbstract: ..."
            description = _text(item, "description")
            abstract_match = re.search(r"Abstract:\s*(.*)", description, re.DOTALL)
            abstract = abstract_match.group(1).strip() if abstract_match else description

            id_match = re.search(r"(\d{4}\.\d{4,5})", link)

            papers.append({
                "id": id_match.group(1) if id_match else "",
                "title": " ".join(title.split()),
                "abstract": abstract,
                "link": link,
                "published": _parse_pubdate(_text(item, "pubDate")),
                "authors": _text(item, "{http://purl.org/dc/elements/1.1/}creator"),
            })

        return papers


def _text(element: ET.Element, tag: str) -> str:
    child = element.find(tag)
    if child is None or not child.text:
        return ""
    return child.text.strip()


def _parse_pubdate(value: str) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
