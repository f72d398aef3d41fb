"""Claude API client for scoring and summarization."""

import asyncio
import json
import logging
import re
from typing import Any, Optional

import httpx

from devfeed.config import Settings
from devfeed.core import (
    CanonicalItem,
    Category,
    ClassificationResult,
    LLMClient,
    SummaryResult,
)

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 8000


class ClaudeClient(LLMClient):
    """Claude API client implementation."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.api_key = settings.anthropic_api_key
        self.model = settings.claude.model
        self.max_tokens = settings.claude.max_tokens
        self.base_url = "https://api.anthropic.com/v1"
        self.max_retries = settings.claude.max_retries
        self.initial_retry_delay = settings.claude.initial_retry_delay
        self.request_delay = settings.claude.request_delay
        self.timeout = settings.claude.timeout
        self._last_request_time = 0.0

    async def classify(self, item: CanonicalItem) -> Optional[ClassificationResult]:
        """Score and categorize an item; None if the call or parse fails."""
        raw = item.item
        extra = []
        if raw.github_repo:
            extra.append(f"GitHub: {raw.github_repo} ({raw.github_stars or 0} stars)")
        if raw.score:
            extra.append(f"Community: {raw.score} points")
        if raw.comment_count:
            extra.append(f"Comments: {raw.comment_count}")

        prompt = self.settings.prompts.scoring.get("user", "").format(
            title=raw.title,
            source=raw.source.value,
            url=raw.url,
            content=(raw.text or "(no content)")[:MAX_CONTENT_CHARS],
            extra="\n".join(extra),
        )
        system_prompt = self.settings.prompts.scoring.get("system", "")

        try:
            response = await self._call_api(
                prompt=prompt,
                system=system_prompt,
                temperature=self.settings.claude.scoring_temperature,
            )
        except (httpx.HTTPError, RuntimeError, KeyError, IndexError) as e:
            logger.warning("Failed to score %r: %s", raw.title, e)
            return None

        try:
            result = self.parse_classification(response)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Invalid scoring response for %r: %s: %s", raw.title, type(e).__name__, e)
            logger.debug("Response was: %s", response[:500])
            return None

        logger.info("Scored %r -> %d (%s)", raw.title, result.score, result.label.value)
        return result

    async def summarize(
        self, item: CanonicalItem, classification: ClassificationResult
    ) -> Optional[SummaryResult]:
        """Generate a code-first summary; None if the call or parse fails."""
        raw = item.item
        prompt = self.settings.prompts.summary.get("user", "").format(
            title=raw.title,
            url=raw.url,
            content=(raw.text or "(no content)")[:MAX_CONTENT_CHARS],
            category=classification.category.value,
            languages=", ".join(sorted(classification.languages)),
            frameworks=", ".join(sorted(classification.frameworks)),
            affects_production="YES" if classification.affects_production else "NO",
        )
        system_prompt = self.settings.prompts.summary.get("system", "")

        try:
            response = await self._call_api(
                prompt=prompt,
                system=system_prompt,
                temperature=self.settings.claude.summary_temperature,
            )
            return self.parse_summary(response)
        except (httpx.HTTPError, RuntimeError, KeyError, IndexError) as e:
            logger.warning("Failed to summarize %r: %s", raw.title, e)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning("Invalid summary response for %r: %s: %s", raw.title, type(e).__name__, e)
        return None

    def parse_classification(self, response: str) -> ClassificationResult:
        """Build a ClassificationResult from the model's JSON answer."""
        data = json.loads(self._extract_json(response))
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")

        score = int(round(float(data["score"])))

        category_value = str(data.get("category", "")).strip().lower()
        try:
            category = Category(category_value)
        except ValueError:
            logger.warning("Unknown category %r, using community", category_value)
            category = Category.COMMUNITY

        return ClassificationResult(
            score=max(0, min(100, score)),
            category=category,
            languages=_tag_set(data.get("languages")),
            frameworks=_tag_set(data.get("frameworks")),
            topics=_tag_set(data.get("topics")),
            affects_production=bool(data.get("affects_production", data.get("affectsProduction", False))),
            reasoning=str(data.get("reasoning", "")),
            tags=[str(tag) for tag in (data.get("tags") or [])][:2],
        )

    def parse_summary(self, response: str) -> SummaryResult:
        data = json.loads(self._extract_json(response))
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")

        bullets = data.get("summary") or []
        if isinstance(bullets, str):
            bullets = [bullets]

        return SummaryResult(
            summary=[str(b) for b in bullets],
            insight=str(data.get("insight") or ""),
            code_example=data.get("code_example") or None,
            code_language=data.get("code_language") or None,
            install_command=data.get("install_command") or None,
            migration_guide=data.get("migration_guide") or None,
        )

    async def _call_api(self, prompt: str, system: str, temperature: float = 0.3) -> str:
        """Call Claude API with retry logic and rate limiting."""
        # Rate limiting: ensure minimum delay between requests
        current_time = asyncio.get_running_loop().time()
        time_since_last_request = current_time - self._last_request_time
        if time_since_last_request < self.request_delay:
            await asyncio.sleep(self.request_delay - time_since_last_request)

        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        f"{self.base_url}/messages",
                        headers={
                            "x-api-key": self.api_key,
                            "anthropic-version": "2023-06-01",
                            "content-type": "application/json",
                        },
                        json={
                            "model": self.model,
                            "max_tokens": self.max_tokens,
                            "temperature": temperature,
                            "system": system,
                            "messages": [
                                {"role": "user", "content": prompt}
                            ],
                        },
                    )

                    self._last_request_time = asyncio.get_running_loop().time()

                    if response.status_code == 200:
                        data = response.json()
                        return data["content"][0]["text"]

                    if response.status_code == 429:
                        retry_after = self._get_retry_delay(response, attempt)
                        logger.info(
                            "Rate limit hit, retrying after %.1fs (attempt %d/%d)",
                            retry_after, attempt + 1, self.max_retries,
                        )
                        await asyncio.sleep(retry_after)
                        continue

                    if response.status_code >= 500:
                        retry_delay = self.initial_retry_delay * (2 ** attempt)
                        logger.info("Server error %d, retrying after %.1fs", response.status_code, retry_delay)
                        await asyncio.sleep(retry_delay)
                        continue

                    # Other errors - raise immediately
                    response.raise_for_status()

            except httpx.HTTPStatusError:
                raise
            except httpx.RequestError as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    retry_delay = self.initial_retry_delay * (2 ** attempt)
                    logger.info("Network error, retrying after %.1fs", retry_delay)
                    await asyncio.sleep(retry_delay)
                    continue
                raise

        if last_exception:
            raise last_exception
        raise RuntimeError("Failed to call API after all retries")

    def _get_retry_delay(self, response: httpx.Response, attempt: int) -> float:
        """Calculate retry delay from response headers or use exponential backoff."""
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass

        return self.initial_retry_delay * (2 ** attempt)

    def _fix_json(self, text: str) -> str:
        """Try to fix common JSON issues."""
        # Remove trailing commas before } or ]
        return re.sub(r',(\s*[}\]])', r'\1', text)

    def _extract_json(self, text: str) -> str:
        """Extract JSON from markdown code block or raw text."""
        code_block_match = re.search(r'```(?:json)?\s*\n(.*?)\n```', text, re.DOTALL)
        if code_block_match:
            return self._fix_json(code_block_match.group(1).strip())

        # Prefer an object carrying the score field
        json_with_score = re.search(r'\{[^{}]*"score"\s*:\s*\d+[^{}]*\}', text, re.DOTALL)
        if json_with_score:
            candidate = self._fix_json(json_with_score.group(0))
            if _is_json(candidate):
                return candidate

        json_object_match = re.search(r'\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}', text, re.DOTALL)
        if json_object_match:
            candidate = self._fix_json(json_object_match.group(0))
            if _is_json(candidate):
                return candidate

        json_array_match = re.search(r'\[[^\[\]]*(?:\[[^\[\]]*\][^\[\]]*)*\]', text, re.DOTALL)
        if json_array_match:
            candidate = self._fix_json(json_array_match.group(0))
            if _is_json(candidate):
                return candidate

        return self._fix_json(text.strip())


def _is_json(text: str) -> bool:
    try:
        json.loads(text)
    except json.JSONDecodeError:
        return False
    return True


def _tag_set(value: Any) -> set[str]:
    if not value:
        return set()
    if isinstance(value, str):
        value = [value]
    return {str(tag).strip().lower() for tag in value if str(tag).strip()}
