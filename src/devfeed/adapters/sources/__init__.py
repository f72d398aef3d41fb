"""Source adapters for fetching items."""

from devfeed.adapters.sources.arxiv_rss_source import ArXivRSSSource
from devfeed.adapters.sources.github_source import GitHubSource
from devfeed.adapters.sources.hackernews_source import HackerNewsSource
from devfeed.adapters.sources.hf_papers_source import HFPapersSource

__all__ = ["ArXivRSSSource", "GitHubSource", "HackerNewsSource", "HFPapersSource"]
