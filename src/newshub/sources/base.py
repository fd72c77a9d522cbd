from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from ..config import HTTP_TIMEOUT, REQUEST_HEADERS, UNFILTERED_CATEGORIES
from ..datamodels import CATEGORY, Article, ProviderQuery
from ..errors import DecodeError, HttpError, TransportError, UnsupportedQueryError

logger = logging.getLogger("newshub")

_WHITESPACE = re.compile(r"\s+")


class Source(ABC):
    """Abstract base class for a news provider adapter."""

    name = "source"
    supported_kinds: Tuple[str, ...] = ()
    # None accepts any category filter
    supported_categories: Optional[FrozenSet[str]] = None

    def __init__(
        self,
        config: Dict[str, Any],
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.api_key = api_key
        self.timeout = config.get("http_timeout", HTTP_TIMEOUT)
        self.session = session or create_session()

    def supports(self, kind: str) -> bool:
        return kind in self.supported_kinds

    def supports_query(self, query: ProviderQuery) -> bool:
        """Whether this source can serve the query without the provider rejecting it."""
        if not self.supports(query.kind):
            return False
        if query.kind != CATEGORY or self.supported_categories is None:
            return True
        category = category_filter(query)
        return category is None or category in self.supported_categories

    def fetch(self, query: ProviderQuery) -> List[Article]:
        """Issue one request for the query and return normalized articles."""
        if not self.supports(query.kind):
            raise UnsupportedQueryError(f"{self.name} cannot serve {query.kind} queries")
        if not self.supports_query(query):
            raise UnsupportedQueryError(
                f"{self.name} has no {query.get('category')!r} category"
            )
        url, params = self.build_request(query)
        payload = self._get_json(url, params)
        return self._normalize_batch(self.extract_items(payload))

    @abstractmethod
    def build_request(self, query: ProviderQuery) -> Tuple[str, Dict[str, Any]]:
        """Return the endpoint url and query parameters for a query."""
        pass

    @abstractmethod
    def extract_items(self, payload: Any) -> List[Dict[str, Any]]:
        """Return the raw article items of a decoded payload."""
        pass

    @abstractmethod
    def to_article(self, item: Dict[str, Any]) -> Optional[Article]:
        """Map one raw item to an Article, or None to drop it."""
        pass

    def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        return get_json(self.session, url, params, self.timeout, self.name)

    def _normalize_batch(self, items: Iterable[Any]) -> List[Article]:
        articles: List[Article] = []
        seen = set()
        for item in items:
            try:
                article = self.to_article(item)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Dropping malformed %s item: %s", self.name, e)
                continue
            if article is None:
                continue
            if article.url in seen:
                continue
            seen.add(article.url)
            articles.append(article)
        logger.debug("%s returned %d articles", self.name, len(articles))
        return articles


def category_filter(query: ProviderQuery) -> Optional[str]:
    """The category to send for a query, or None when it means no filter."""
    category = (query.get("category") or "").lower()
    if category in UNFILTERED_CATEGORIES:
        return None
    return category


def create_session() -> requests.Session:
    s = requests.Session()
    s.headers.update(REQUEST_HEADERS)
    return s


def get_json(
    session: requests.Session,
    url: str,
    params: Dict[str, Any],
    timeout: float = HTTP_TIMEOUT,
    name: str = "source",
) -> Any:
    """Issue one GET and decode its JSON body, mapping failures to FetchError."""
    logger.debug("Fetching %s (%s)", url, name)
    try:
        resp = session.get(url, params=params, timeout=timeout)
    except requests.Timeout as e:
        raise TransportError(f"{name}: request timed out") from e
    except requests.RequestException as e:
        raise TransportError(f"{name}: {e}") from e

    if not 200 <= resp.status_code < 300:
        raise HttpError(resp.status_code, _error_message(resp))

    try:
        payload = resp.json()
    except ValueError as e:
        raise DecodeError(f"{name}: response is not valid JSON") from e
    if _is_provider_error(payload):
        raise HttpError(resp.status_code, _payload_message(payload))
    logger.debug("Fetched %s OK", url)
    return payload


def strip_html(text: Optional[str]) -> Optional[str]:
    """Return the visible text of an HTML fragment, whitespace collapsed."""
    if not text:
        return None
    plain = BeautifulSoup(text, "lxml").get_text(" ", strip=True)
    plain = _WHITESPACE.sub(" ", plain).strip()
    return plain or None


def require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"missing {field_name}")
    return value.strip()


def _is_provider_error(payload: Any) -> bool:
    """Providers report some failures as "status": "error" in a 2xx body."""
    if not isinstance(payload, dict):
        return False
    if payload.get("status") == "error":
        return True
    response = payload.get("response")
    return isinstance(response, dict) and response.get("status") == "error"


def _error_message(resp: requests.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    return _payload_message(body)


def _payload_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        message = body.get("message")
        if message is None and isinstance(body.get("results"), dict):
            message = body["results"].get("message")
        if message is None and isinstance(body.get("response"), dict):
            message = body["response"].get("message")
        return message
    return None
