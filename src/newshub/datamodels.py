from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .config import MAX_PERSONALIZED_INTERESTS, WORDS_PER_MINUTE
from .errors import EmptyInputError

HEADLINES = "headlines"
CATEGORY = "category"
SEARCH = "search"
PERSONALIZED = "personalized"
GUARDIAN_SECTION = "guardianSection"

QUERY_KINDS = (HEADLINES, CATEGORY, SEARCH, PERSONALIZED, GUARDIAN_SECTION)


# --- Data models ---
@dataclass(frozen=True, eq=False)
class Article:
    url: str
    title: str
    source_name: str
    published_at: str
    source_id: Optional[str] = None
    description: Optional[str] = None
    url_to_image: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Article):
            return NotImplemented
        return self.url == other.url

    def __hash__(self) -> int:
        return hash(self.url)

    @property
    def reading_time_minutes(self) -> int:
        words = sum(
            len(text.split())
            for text in (self.title, self.description or "", self.content or "")
        )
        return max(1, math.ceil(words / WORDS_PER_MINUTE))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": {"id": self.source_id, "name": self.source_name},
            "author": self.author,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "urlToImage": self.url_to_image,
            "publishedAt": self.published_at,
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        source = data.get("source") or {}
        return cls(
            url=data["url"],
            title=data["title"],
            source_name=source.get("name") or "",
            published_at=data.get("publishedAt") or "",
            source_id=source.get("id"),
            description=data.get("description"),
            url_to_image=data.get("urlToImage"),
            content=data.get("content"),
            author=data.get("author"),
        )


def interests_query(interests: Iterable[str]) -> str:
    """Join the first few interests into one OR query term."""
    terms = []
    for interest in list(interests)[:MAX_PERSONALIZED_INTERESTS]:
        interest = interest.strip()
        if not interest:
            continue
        terms.append(f'"{interest}"' if " " in interest else interest)
    return " OR ".join(terms)


@dataclass(frozen=True)
class ProviderQuery:
    """A request signature; its serialization is the cache key."""

    kind: str
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.kind not in QUERY_KINDS:
            raise ValueError(f"Unknown query kind: {self.kind}")

    def get(self, name: str, default: Any = None) -> Any:
        value = self.params.get(name)
        return default if value is None else value

    def cache_key(self) -> str:
        params = {k: v for k, v in self.params.items() if v is not None}
        return json.dumps(
            {"kind": self.kind, "params": params}, sort_keys=True, separators=(",", ":")
        )

    @classmethod
    def headlines(cls, country: str, page_size: int = 20, page: int = 1) -> "ProviderQuery":
        return cls(HEADLINES, {"country": country, "pageSize": page_size, "page": page})

    @classmethod
    def category(cls, category: str, country: str, page_size: int = 20) -> "ProviderQuery":
        if not category or not category.strip():
            raise EmptyInputError("category must not be empty")
        return cls(
            CATEGORY,
            {"category": category.strip().lower(), "country": country, "pageSize": page_size},
        )

    @classmethod
    def search(
        cls, query: str, sort_by: str = "relevancy", page_size: int = 30, page: int = 1
    ) -> "ProviderQuery":
        if not query or not query.strip():
            raise EmptyInputError("search query must not be empty")
        return cls(
            SEARCH,
            {"query": query.strip(), "sortBy": sort_by, "pageSize": page_size, "page": page},
        )

    @classmethod
    def personalized(cls, interests: Iterable[str], page_size: int = 30) -> "ProviderQuery":
        term = interests_query(interests)
        if not term:
            raise EmptyInputError("no interests selected")
        return cls(
            PERSONALIZED, {"query": term, "sortBy": "publishedAt", "pageSize": page_size}
        )

    @classmethod
    def guardian_section(cls, section: str, page_size: int = 20) -> "ProviderQuery":
        if not section or not section.strip():
            raise EmptyInputError("section must not be empty")
        return cls(GUARDIAN_SECTION, {"section": section.strip(), "pageSize": page_size})


@dataclass
class CacheEntry:
    query: ProviderQuery
    fetched_at: float
    articles: List[Article]


@dataclass(frozen=True)
class TrendingTopic:
    term: str
    frequency: int


@dataclass
class HistoryEntry:
    article: Article
    timestamp: float
    progress: float = 0.0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "article": self.article.to_dict(),
            "timestamp": self.timestamp,
            "progress": self.progress,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        return cls(
            article=Article.from_dict(data["article"]),
            timestamp=float(data["timestamp"]),
            progress=float(data.get("progress", 0.0)),
            id=data.get("id") or str(uuid.uuid4()),
        )


@dataclass(frozen=True)
class Country:
    code: str
    name: str
    flag: str


COUNTRIES = [
    Country("in", "India", "🇮🇳"),
    Country("us", "United States", "🇺🇸"),
    Country("gb", "United Kingdom", "🇬🇧"),
    Country("ca", "Canada", "🇨🇦"),
    Country("au", "Australia", "🇦🇺"),
    Country("sg", "Singapore", "🇸🇬"),
    Country("jp", "Japan", "🇯🇵"),
    Country("de", "Germany", "🇩🇪"),
    Country("fr", "France", "🇫🇷"),
    Country("it", "Italy", "🇮🇹"),
    Country("ru", "Russia", "🇷🇺"),
    Country("br", "Brazil", "🇧🇷"),
    Country("mx", "Mexico", "🇲🇽"),
    Country("za", "South Africa", "🇿🇦"),
    Country("cn", "China", "🇨🇳"),
    Country("ae", "UAE", "🇦🇪"),
    Country("pk", "Pakistan", "🇵🇰"),
    Country("ng", "Nigeria", "🇳🇬"),
]

_COUNTRIES_BY_CODE = {c.code: c for c in COUNTRIES}


def get_country(code: Optional[str]) -> Optional[Country]:
    if not code:
        return None
    return _COUNTRIES_BY_CODE.get(code.lower())


@dataclass
class WeatherReport:
    city: str
    temperature: float
    feels_like: float
    temp_min: float
    temp_max: float
    humidity: int
    pressure: int
    condition: str
    description: str
    icon: str
    country: Optional[str] = None
    sunrise: Optional[int] = None
    sunset: Optional[int] = None
    wind_speed: Optional[float] = None
    wind_deg: Optional[int] = None


@dataclass
class ForecastItem:
    timestamp: int
    dt_txt: str
    temperature: float
    condition: str
    icon: str
    wind_speed: float = 0.0
