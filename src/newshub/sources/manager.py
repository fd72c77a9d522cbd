from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

from ..config import DEFAULT_CONFIG, DEFAULT_COUNTRY, api_key
from ..datamodels import Article, ProviderQuery
from ..errors import SourceUnavailableError, UnsupportedQueryError
from .base import Source
from .guardian import GuardianSource
from .newsapi import NewsAPISource
from .newsdata import NewsDataSource
from .weather import WeatherClient

logger = logging.getLogger("newshub")

AVAILABLE_SOURCES: Dict[str, Type[Source]] = {
    "newsapi": NewsAPISource,
    "newsdata": NewsDataSource,
    "guardian": GuardianSource,
}


class SourceManager:
    """Builds the configured adapters and routes each query kind to one of them."""

    def __init__(self, config: Dict[str, Any], sources: Optional[Dict[str, Source]] = None):
        self.config = config
        self.routes: Dict[str, str] = dict(DEFAULT_CONFIG["routes"])
        self.routes.update(config.get("routes", {}))
        self.sources: Dict[str, Source] = {}
        if sources is None:
            self._load_sources()
        else:
            self.sources.update(sources)

    def _load_sources(self) -> None:
        """Load every source that has an API key."""
        for name, source_class in AVAILABLE_SOURCES.items():
            key = api_key(self.config, name)
            if not key:
                logger.info("No API key for %s, source disabled", name)
                continue
            self.sources[name] = source_class(self.config, api_key=key)

    def get_source(self, name: str) -> Source | None:
        """Get a source by name."""
        return self.sources.get(name)

    def get_all_sources(self) -> List[Source]:
        """Get a list of all loaded sources."""
        return list(self.sources.values())

    def source_for(self, kind: str) -> Source:
        name = self.routes.get(kind)
        source = self.sources.get(name) if name else None
        if source is None:
            raise SourceUnavailableError(f"No configured source for {kind} queries ({name})")
        return source

    def source_for_query(self, query: ProviderQuery) -> Source:
        """The routed source for a query, or another loaded source when the routed one
        cannot serve it (such as a category its provider does not have)."""
        routed = self.sources.get(self.routes.get(query.kind) or "")
        if routed is not None and routed.supports_query(query):
            return routed
        for source in self.sources.values():
            if source is not routed and source.supports_query(query):
                logger.debug("Routing %s query to %s", query.kind, source.name)
                return source
        if routed is None:
            raise SourceUnavailableError(f"No configured source for {query.kind} queries")
        raise UnsupportedQueryError(f"No configured source can serve {query.cache_key()}")

    def supports_category(self, category: str) -> bool:
        query = ProviderQuery.category(category, DEFAULT_COUNTRY)
        return any(source.supports_query(query) for source in self.sources.values())

    def fetch(self, query: ProviderQuery) -> List[Article]:
        return self.source_for_query(query).fetch(query)

    def weather_client(self) -> Optional[WeatherClient]:
        key = api_key(self.config, "openweather")
        if not key:
            return None
        return WeatherClient(self.config, api_key=key)
