"""AI/ML developer news feed: ingestion, deduplication, scoring and balanced feed assembly."""

__version__ = "0.1.0"
