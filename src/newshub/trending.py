from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, List

from .config import TRENDING_TOPICS_LIMIT
from .datamodels import Article, TrendingTopic

STOP_WORDS = frozenset(
    {
        "the", "and", "that", "have", "for", "not", "with", "you", "this", "but",
        "from", "they", "will", "would", "there", "their", "what", "about", "which",
        "when", "your", "said", "says", "were", "been", "than", "into", "after",
        "over", "more", "could", "should", "also", "just", "like", "some", "other",
    }
)
MIN_TOKEN_LENGTH = 4

_TOKEN = re.compile(r"[^\W_]+")


def tokenize(text: str) -> List[str]:
    """Lowercase alphanumeric tokens worth ranking."""
    return [
        token
        for token in _TOKEN.findall(text.lower())
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    ]


def rank_trending_topics(
    headlines: Iterable[Article], top_n: int = TRENDING_TOPICS_LIMIT
) -> List[TrendingTopic]:
    counts: Counter = Counter()
    for article in headlines:
        counts.update(tokenize(article.title))
    # Counter keeps first-seen order and sorted() is stable, so ties keep it too
    ranked = sorted(
        (item for item in counts.items() if item[1] > 1), key=lambda item: -item[1]
    )
    return [TrendingTopic(term, frequency) for term, frequency in ranked[:top_n]]


def extract_trending_topics(
    headlines: Iterable[Article], top_n: int = TRENDING_TOPICS_LIMIT
) -> List[str]:
    return [topic.term for topic in rank_trending_topics(headlines, top_n)]


def extract_keywords(text: str, limit: int = 5) -> List[str]:
    """First distinct significant words of a text, in order."""
    keywords: List[str] = []
    for token in tokenize(text):
        if token not in keywords:
            keywords.append(token)
        if len(keywords) == limit:
            break
    return keywords
