from __future__ import annotations

import logging
import threading
from typing import Dict

from .datamodels import Article

logger = logging.getLogger("newshub")

RELEVANCE_KEYWORDS = [
    "economy",
    "politics",
    "technology",
    "health",
    "environment",
    "society",
    "global affairs",
    "local community",
]
FALLBACK_KEY_POINT = "The article provides detailed information on this topic."


class ArticleSummarizer:
    """Builds short offline summaries from an article's own text, cached by url."""

    def __init__(self) -> None:
        self._cache: Dict[str, str] = {}
        self._lock = threading.Lock()

    def summarize(self, article: Article) -> str:
        with self._lock:
            cached = self._cache.get(article.url)
        if cached is not None:
            return cached

        subject = article.title.lower().replace(".", "")
        summary = (
            f"This article from {article.source_name} discusses {subject}.\n\n"
            "Key points:\n"
            f"• {key_point(article.title)}\n"
            f"• {key_point(article.description or '')}\n"
            "• The article provides context on the implications and potential outcomes.\n\n"
            "In conclusion, this is an important development worth following for its "
            f"impact on {relevance(article.title)}."
        )
        with self._lock:
            self._cache[article.url] = summary
        return summary

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


def key_point(text: str) -> str:
    """First sentence of a text, capitalized and terminated."""
    sentence = text.split(". ")[0].strip()
    if not sentence:
        return FALLBACK_KEY_POINT
    sentence = sentence[0].upper() + sentence[1:]
    if not sentence.endswith("."):
        sentence += "."
    return sentence


def relevance(title: str) -> str:
    lowered = title.lower()
    for keyword in RELEVANCE_KEYWORDS:
        if keyword in lowered:
            return keyword
    return "current events"
