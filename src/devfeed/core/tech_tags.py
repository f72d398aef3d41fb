"""Keyword-based tech stack tagging."""

from dataclasses import dataclass

from devfeed.core.entities import ClassificationResult, RawItem

LANGUAGE_KEYWORDS: dict[str, frozenset[str]] = {
    "python": frozenset({"python", "pip install", "pytorch", "tensorflow", "pandas", "numpy"}),
    "javascript": frozenset({"javascript", "npm", "node.js", "nodejs", "react", "next.js"}),
    "typescript": frozenset({"typescript", ".tsx"}),
    "rust": frozenset({"rust", "cargo", "rustc"}),
    "go": frozenset({"golang", " go ", "go-"}),
    "cpp": frozenset({"c++", "cpp", "cmake"}),
    "java": frozenset({"java ", "maven", "gradle"}),
}

FRAMEWORK_KEYWORDS: dict[str, frozenset[str]] = {
    "pytorch": frozenset({"pytorch", "torch"}),
    "tensorflow": frozenset({"tensorflow", "keras"}),
    "langchain": frozenset({"langchain", "lcel"}),
    "llamaindex": frozenset({"llama index", "llamaindex"}),
    "transformers": frozenset({"transformers", "huggingface", "hugging face"}),
    "openai": frozenset({"openai", "gpt", "chatgpt"}),
    "anthropic": frozenset({"anthropic", "claude"}),
    "react": frozenset({"react", "next.js", "nextjs"}),
    "fastapi": frozenset({"fastapi", "fast api"}),
    "flask": frozenset({"flask"}),
    "django": frozenset({"django"}),
}

TOPIC_KEYWORDS: dict[str, frozenset[str]] = {
    "llm": frozenset({"llm", "large language model", "language model"}),
    "rag": frozenset({"rag", "retrieval augmented", "retrieval-augmented"}),
    "fine-tuning": frozenset({"fine-tuning", "fine-tune", "finetune", "finetuning"}),
    "computer-vision": frozenset({"computer vision", "image", "vision"}),
    "nlp": frozenset({"nlp", "natural language"}),
    "embeddings": frozenset({"embedding", "vector"}),
    "agents": frozenset({"agent", "autonomous"}),
    "multimodal": frozenset({"multimodal", "multi-modal", "vision-language"}),
}


@dataclass(frozen=True)
class TechTags:
    languages: frozenset[str]
    frameworks: frozenset[str]
    topics: frozenset[str]


def normalized_text(item: RawItem) -> str:
    return f"{item.title} {item.content or ''} {item.excerpt or ''}".lower()


def match_keywords(text: str, table: dict[str, frozenset[str]]) -> set[str]:
    """Tags whose trigger keywords occur in already-lowercased text."""
    return {tag for tag, keywords in table.items() if any(kw in text for kw in keywords)}


def enrich_tech_tags(item: RawItem, classification: ClassificationResult) -> TechTags:
    """Union the classifier's tags with keyword detections."""
    text = normalized_text(item)

    languages = {tag.lower() for tag in classification.languages}
    languages |= match_keywords(text, LANGUAGE_KEYWORDS)
    if item.github_language:
        languages.add(item.github_language.lower())

    frameworks = {tag.lower() for tag in classification.frameworks}
    frameworks |= match_keywords(text, FRAMEWORK_KEYWORDS)

    topics = {tag.lower() for tag in classification.topics}
    topics |= match_keywords(text, TOPIC_KEYWORDS)

    return TechTags(
        languages=frozenset(languages),
        frameworks=frozenset(frameworks),
        topics=frozenset(topics),
    )
