"""Shared filtering utilities for sources."""

import re


def is_ai_related(title: str, content: str, keywords: list[str]) -> bool:
    """
    Check if content is about AI/ML based on keywords.

    Short keywords (up to three characters, e.g. "ai", "rag") must match a
    whole word so that "said" or "drag" do not count.

    Args:
        title: Title of the item
        content: Content/abstract/description of the item
        keywords: List of keywords to check against

    Returns:
        True if any keyword is found in title or content (case-insensitive)
    """
    if not keywords:
        return True  # No filtering if no keywords provided

    text = f"{title} {content}".lower()
    for keyword in keywords:
        keyword = keyword.lower()
        if len(keyword) <= 3:
            if re.search(rf"\b{re.escape(keyword)}\b", text):
                return True
        elif keyword in text:
            return True
    return False
