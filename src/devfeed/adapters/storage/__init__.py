"""Storage adapters."""

from devfeed.adapters.storage.yaml_store import YamlArticleStore, article_id

__all__ = ["YamlArticleStore", "article_id"]
