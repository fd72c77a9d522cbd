from __future__ import annotations

import logging
import textwrap
from typing import Any, Dict, List, Optional, Tuple

from ..config import GUARDIAN_BASE_URL
from ..datamodels import GUARDIAN_SECTION, Article, ProviderQuery
from ..errors import DecodeError
from .base import Source, require_text, strip_html

logger = logging.getLogger("newshub")

SHOW_FIELDS = "headline,byline,thumbnail,body"
DESCRIPTION_WIDTH = 200


class GuardianSource(Source):
    """Long-form articles from the Guardian content API, one section at a time."""

    name = "guardian"
    supported_kinds = (GUARDIAN_SECTION,)

    def __init__(self, config: Dict[str, Any], api_key: Optional[str] = None, **kwargs: Any):
        super().__init__(config, api_key=api_key, **kwargs)
        self.base_url = config.get("guardian_url", GUARDIAN_BASE_URL)

    def build_request(self, query: ProviderQuery) -> Tuple[str, Dict[str, Any]]:
        params = {
            "section": query.get("section"),
            "page-size": query.get("pageSize", 20),
            "api-key": self.api_key,
            "show-fields": SHOW_FIELDS,
        }
        return self.base_url, {k: v for k, v in params.items() if v is not None}

    def extract_items(self, payload: Any) -> List[Dict[str, Any]]:
        response = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(response, dict):
            raise DecodeError("guardian: payload has no response envelope")
        results = response.get("results")
        if not isinstance(results, list):
            raise DecodeError("guardian: payload has no result list")
        return results

    def to_article(self, item: Dict[str, Any]) -> Optional[Article]:
        fields = item.get("fields") or {}
        title = fields.get("headline") or item.get("webTitle")
        body = strip_html(fields.get("body"))
        description = None
        if body:
            description = textwrap.shorten(body, width=DESCRIPTION_WIDTH, placeholder="…")
        return Article(
            url=require_text(item.get("webUrl"), "webUrl"),
            title=require_text(title, "webTitle"),
            source_name="The Guardian",
            published_at=item.get("webPublicationDate") or "",
            source_id="the-guardian",
            description=description,
            url_to_image=fields.get("thumbnail"),
            content=body,
            author=fields.get("byline"),
        )
