"""Markdown digest generator."""

from devfeed.core import DigestGenerator, FeedEntry, FeedPage, Section

SECTION_HEADINGS = {
    Section.CRITICAL: "## 🔴 Critical",
    Section.SPOTLIGHT: "## ⭐ Spotlight",
    Section.NOTEWORTHY: "## 📌 Noteworthy",
    Section.HISTORICAL: "## 🗂️ Earlier Articles",
}


class MarkdownDigestGenerator(DigestGenerator):
    """Render a feed page as markdown, grouped by section."""

    def generate(self, page: FeedPage, title: str) -> str:
        if not page.entries:
            return f"# {title}\n\nNo articles found."

        lines = [
            f"# {title}",
            "",
            f"Showing {len(page)} of {page.total} articles",
        ]
        if page.oldest_date:
            lines.append(f"Through {page.oldest_date.strftime('%Y-%m-%d')}")
        lines.append("")

        # Sections keep feed order inside, headings follow a fixed order
        for section, heading in SECTION_HEADINGS.items():
            entries = [e for e in page.entries if e.section is section]
            if not entries:
                continue
            lines.extend([heading, ""])
            for entry in entries:
                lines.extend(self._format_entry(entry))

        return "\n".join(lines)

    def _format_entry(self, entry: FeedEntry) -> list[str]:
        article = entry.article
        item = article.item
        classification = article.classification
        tags = " ".join(classification.tags)

        lines = [
            f"### [{item.title}]({item.url}) {tags}".rstrip(),
            "",
            f"**Score:** {classification.score} ({classification.label.value}) · "
            f"**Category:** {classification.category.value} · "
            f"**Published:** {item.published_at.strftime('%Y-%m-%d')}",
            "",
        ]

        if article.summary:
            for bullet in article.summary.summary:
                lines.append(f"- {bullet}")
            lines.append("")
            if article.summary.insight:
                lines.extend([f"> {article.summary.insight}", ""])
            if article.summary.install_command:
                lines.extend([f"`{article.summary.install_command}`", ""])
        elif classification.reasoning:
            lines.extend([classification.reasoning, ""])

        links = []
        if item.hn_discussion_url:
            links.append(f"[HN]({item.hn_discussion_url})")
        if item.reddit_discussion_url:
            links.append(f"[Reddit]({item.reddit_discussion_url})")
        if item.github_repo:
            stars = f" ★{item.github_stars}" if item.github_stars else ""
            links.append(f"`{item.github_repo}`{stars}")
        if links:
            lines.extend([" · ".join(links), ""])

        return lines
