from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..config import NEWSDATA_BASE_URL, NEWSDATA_CATEGORIES
from ..datamodels import CATEGORY, HEADLINES, PERSONALIZED, SEARCH, Article, ProviderQuery
from ..errors import DecodeError
from .base import Source, category_filter, require_text, strip_html

logger = logging.getLogger("newshub")

PAID_PLAN_PLACEHOLDER = "ONLY AVAILABLE IN PAID PLANS"
PUB_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class NewsDataSource(Source):
    """The newsdata.io aggregator: one endpoint for latest, category and keyword news."""

    name = "newsdata"
    supported_kinds = (HEADLINES, CATEGORY, SEARCH, PERSONALIZED)
    supported_categories = NEWSDATA_CATEGORIES

    def __init__(self, config: Dict[str, Any], api_key: Optional[str] = None, **kwargs: Any):
        super().__init__(config, api_key=api_key, **kwargs)
        self.base_url = config.get("newsdata_url", NEWSDATA_BASE_URL)

    def build_request(self, query: ProviderQuery) -> Tuple[str, Dict[str, Any]]:
        params: Dict[str, Any] = {"apikey": self.api_key, "size": query.get("pageSize")}
        if query.kind in (HEADLINES, CATEGORY):
            params["country"] = query.get("country")
            category = category_filter(query)
            if category is not None:
                params["category"] = category
        else:
            params["q"] = query.get("query")
        # newsdata pages with an opaque cursor rather than page numbers
        page = query.get("page")
        if isinstance(page, str):
            params["page"] = page
        return self.base_url, {k: v for k, v in params.items() if v is not None}

    def extract_items(self, payload: Any) -> List[Dict[str, Any]]:
        if not isinstance(payload, dict):
            raise DecodeError("newsdata: unexpected payload")
        results = payload.get("results")
        if not isinstance(results, list):
            raise DecodeError("newsdata: payload has no result list")
        return results

    def to_article(self, item: Dict[str, Any]) -> Optional[Article]:
        creators = item.get("creator") or []
        content = item.get("content")
        if content and content.strip().upper() == PAID_PLAN_PLACEHOLDER:
            content = None
        source_id = item.get("source_id")
        return Article(
            url=require_text(item.get("link"), "link"),
            title=require_text(item.get("title"), "title"),
            source_name=item.get("source_name") or source_id or "Unknown",
            published_at=normalize_pub_date(item.get("pubDate")),
            source_id=source_id,
            description=strip_html(item.get("description")),
            url_to_image=item.get("image_url"),
            content=strip_html(content),
            author=creators[0] if creators else None,
        )


def normalize_pub_date(value: Optional[str]) -> str:
    """Convert newsdata's "YYYY-MM-DD HH:MM:SS" (UTC) timestamps to ISO-8601."""
    if not value:
        return ""
    try:
        parsed = datetime.strptime(value, PUB_DATE_FORMAT)
    except ValueError:
        return value
    return parsed.replace(tzinfo=timezone.utc).isoformat().replace("+00:00", "Z")
