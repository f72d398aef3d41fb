"""LLM adapters."""

from devfeed.adapters.llm.claude_client import ClaudeClient

__all__ = ["ClaudeClient"]
