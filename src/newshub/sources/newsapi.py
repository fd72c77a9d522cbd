from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config import NEWSAPI_BASE_URL, NEWSAPI_CATEGORIES
from ..datamodels import CATEGORY, HEADLINES, PERSONALIZED, SEARCH, Article, ProviderQuery
from ..errors import DecodeError
from .base import Source, category_filter, require_text

logger = logging.getLogger("newshub")

# Placeholder NewsAPI returns for articles taken down after indexing
REMOVED_MARKER = "[Removed]"


class NewsAPISource(Source):
    """Headlines, category feeds and search from newsapi.org."""

    name = "newsapi"
    supported_kinds = (HEADLINES, CATEGORY, SEARCH, PERSONALIZED)
    supported_categories = NEWSAPI_CATEGORIES

    def __init__(self, config: Dict[str, Any], api_key: Optional[str] = None, **kwargs: Any):
        super().__init__(config, api_key=api_key, **kwargs)
        self.base_url = config.get("newsapi_url", NEWSAPI_BASE_URL).rstrip("/")

    def build_request(self, query: ProviderQuery) -> Tuple[str, Dict[str, Any]]:
        if query.kind in (HEADLINES, CATEGORY):
            params: Dict[str, Any] = {
                "country": query.get("country"),
                "pageSize": query.get("pageSize", 20),
                "page": query.get("page", 1),
            }
            category = category_filter(query)
            if category is not None:
                params["category"] = category
            url = f"{self.base_url}/top-headlines"
        else:
            params = {
                "q": query.get("query"),
                "sortBy": query.get("sortBy", "relevancy"),
                "pageSize": query.get("pageSize", 30),
                "page": query.get("page", 1),
            }
            url = f"{self.base_url}/everything"
        params["apiKey"] = self.api_key
        return url, {k: v for k, v in params.items() if v is not None}

    def extract_items(self, payload: Any) -> List[Dict[str, Any]]:
        if not isinstance(payload, dict):
            raise DecodeError("newsapi: unexpected payload")
        articles = payload.get("articles")
        if not isinstance(articles, list):
            raise DecodeError("newsapi: payload has no article list")
        return articles

    def to_article(self, item: Dict[str, Any]) -> Optional[Article]:
        title = require_text(item.get("title"), "title")
        if title == REMOVED_MARKER:
            return None
        source = item.get("source") or {}
        return Article(
            url=require_text(item.get("url"), "url"),
            title=title,
            source_name=source.get("name") or "Unknown",
            published_at=item.get("publishedAt") or "",
            source_id=source.get("id"),
            description=item.get("description"),
            url_to_image=item.get("urlToImage"),
            content=item.get("content"),
            author=item.get("author"),
        )
