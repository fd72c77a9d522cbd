from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .datamodels import Article, Country

logger = logging.getLogger("newshub")


class EventTracker:
    """Records usage events to the application log.

    Events are plain names with a small parameter dict. Nothing leaves the
    machine; with ``--debug`` they end up in the debug log file.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def track_event(self, name: str, parameters: Optional[Dict[str, Any]] = None) -> None:
        if not self.enabled:
            return
        if parameters:
            logger.info("Event: %s %s", name, parameters)
        else:
            logger.info("Event: %s", name)

    def track_screen_view(self, screen_name: str, screen_class: str) -> None:
        if self.enabled:
            logger.info("Screen view: %s (%s)", screen_name, screen_class)

    def set_user_property(self, name: str, value: Any) -> None:
        if self.enabled:
            logger.info("User property: %s = %s", name, value)

    # --- articles ---
    def track_article_view(self, article: Article, category: Optional[str] = None) -> None:
        self.track_event(
            "article_view",
            {
                "article_id": article.url,
                "title": article.title,
                "source": article.source_name,
                "category": category or "none",
            },
        )

    def track_article_bookmarked(self, article: Article) -> None:
        self.track_event("article_bookmarked", {"article_id": article.url, "title": article.title})

    def track_article_shared(self, article: Article, platform: Optional[str] = None) -> None:
        params = {"article_id": article.url, "title": article.title}
        if platform:
            params["platform"] = platform
        self.track_event("article_shared", params)

    # --- search and personalization ---
    def track_search(self, query: str, result_count: int) -> None:
        self.track_event("search_performed", {"query": query, "result_count": result_count})

    def track_interest_selected(self, interest: str) -> None:
        self.track_event("interest_selected", {"interest": interest})

    def track_interest_removed(self, interest: str) -> None:
        self.track_event("interest_removed", {"interest": interest})

    def track_country_changed(self, country: Country) -> None:
        self.track_event(
            "country_changed", {"country_code": country.code, "country_name": country.name}
        )

    # --- app usage ---
    def track_app_open(self) -> None:
        self.track_event("app_open")

    def track_session_duration(self, duration_seconds: int) -> None:
        self.track_event("session_duration", {"duration_seconds": duration_seconds})

    def track_error(self, error_code: str, error_message: str, screen: str) -> None:
        self.track_event(
            "error_occurred",
            {"error_code": error_code, "error_message": error_message, "screen": screen},
        )

    def track_feature_used(self, feature_name: str) -> None:
        self.track_event("feature_used", {"feature_name": feature_name})

    def track_setting_changed(self, setting_name: str, value: Any) -> None:
        self.track_event("setting_changed", {"setting_name": setting_name, "value": str(value)})
