from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional

from .analytics import EventTracker
from .cache import AggregationCache
from .config import MAX_RELATED_ARTICLES, TRENDING_TOPICS_LIMIT, WORKER_THREADS
from .datamodels import Article, ProviderQuery
from .errors import EmptyInputError, FetchError
from .preferences import PreferenceStore
from .sources.manager import SourceManager
from .trending import extract_keywords, extract_trending_topics

logger = logging.getLogger("newshub")

TOP_HEADLINES = "top_headlines"
SEARCH_RESULTS = "search_results"
PERSONALIZED_NEWS = "personalized_news"
RELATED_ARTICLES = "related_articles"
TRENDING_TOPICS = "trending_topics"

Listener = Callable[[str], None]
OnApplied = Callable[[List[Article], int], None]


def category_feed(category: str) -> str:
    return f"category:{category}"


def guardian_feed(section: str) -> str:
    return f"guardian:{section}"


class FeedState:
    """Published value of one collection plus its loading and error flags."""

    def __init__(self, name: str):
        self.name = name
        self.value: List[Any] = []
        self.last_error: Optional[Exception] = None
        self.issued = 0
        self.applied = 0
        self.pending = 0
        self.last_query: Optional[ProviderQuery] = None
        self.reload: Optional[Callable[[], Future]] = None

    @property
    def is_loading(self) -> bool:
        return self.pending > 0

    def __repr__(self) -> str:
        return (
            f"FeedState({self.name!r}, items={len(self.value)}, "
            f"loading={self.is_loading}, error={self.last_error!r})"
        )


def _completed(value: Any = None) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


class NewsAggregator:
    """Fetches, caches and publishes the article collections the UI shows.

    Each fetch runs on a worker thread and returns a Future. A collection only
    accepts a result (or an error) newer than the last one it applied, so a
    slow, superseded request never overwrites a fresher one.
    """

    def __init__(
        self,
        sources: SourceManager,
        preferences: PreferenceStore,
        cache: Optional[AggregationCache] = None,
        executor: Optional[Executor] = None,
        trending_limit: int = TRENDING_TOPICS_LIMIT,
        analytics: Optional[EventTracker] = None,
    ):
        self.sources = sources
        self.preferences = preferences
        self.cache = cache or AggregationCache()
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=WORKER_THREADS, thread_name_prefix="newshub"
        )
        self.trending_limit = trending_limit
        self.analytics = analytics or EventTracker()
        self._feeds: Dict[str, FeedState] = {}
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    # --- observation ---
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with a collection name after it changes."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self, name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(name)
            except Exception:
                logger.exception("Aggregator listener failed for %s", name)

    def feed(self, name: str) -> FeedState:
        with self._lock:
            state = self._feeds.get(name)
            if state is None:
                state = self._feeds[name] = FeedState(name)
            return state

    def articles(self, name: str) -> List[Any]:
        state = self.feed(name)
        with self._lock:
            return list(state.value)

    @property
    def top_headlines(self) -> List[Article]:
        return self.articles(TOP_HEADLINES)

    def category_news(self, category: str) -> List[Article]:
        return self.articles(category_feed(category))

    @property
    def search_results(self) -> List[Article]:
        return self.articles(SEARCH_RESULTS)

    @property
    def personalized_news(self) -> List[Article]:
        return self.articles(PERSONALIZED_NEWS)

    def guardian_news(self, section: str) -> List[Article]:
        return self.articles(guardian_feed(section))

    @property
    def related_articles(self) -> List[Article]:
        return self.articles(RELATED_ARTICLES)

    @property
    def trending_topics(self) -> List[str]:
        return self.articles(TRENDING_TOPICS)

    # --- request plumbing ---
    def _clear(self, name: str) -> Future:
        state = self.feed(name)
        with self._lock:
            state.issued += 1
            state.applied = state.issued
            state.value = []
            state.last_error = None
            state.last_query = None
        self._notify(name)
        return _completed([])

    def _submit(
        self,
        name: str,
        query: ProviderQuery,
        transform: Optional[Callable[[List[Article]], List[Article]]] = None,
        on_applied: Optional[OnApplied] = None,
    ) -> Future:
        state = self.feed(name)
        with self._lock:
            state.issued += 1
            seq = state.issued
            state.pending += 1
            state.last_query = query
            state.reload = lambda: self._submit(name, query, transform, on_applied)
        self._notify(name)
        return self.executor.submit(self._load, state, seq, query, transform, on_applied)

    def _load(
        self,
        state: FeedState,
        seq: int,
        query: ProviderQuery,
        transform: Optional[Callable[[List[Article]], List[Article]]],
        on_applied: Optional[OnApplied],
    ) -> List[Article]:
        try:
            articles = self.cache.get_or_fetch(query, self.sources.fetch)
            if transform is not None:
                articles = transform(articles)
        except FetchError as e:
            logger.error("Fetching %s failed: %s", state.name, e)
            self.analytics.track_error(type(e).__name__, str(e), state.name)
            with self._lock:
                state.pending -= 1
                if seq > state.applied:
                    state.applied = seq
                    state.last_error = e
            self._notify(state.name)
            raise
        except Exception:
            with self._lock:
                state.pending -= 1
            self._notify(state.name)
            raise

        with self._lock:
            state.pending -= 1
            applied = seq > state.applied
            if applied:
                state.applied = seq
                state.value = articles
                state.last_error = None
            else:
                logger.debug("Discarding superseded result for %s (#%d)", state.name, seq)
        if applied and on_applied is not None:
            on_applied(articles, seq)
        self._notify(state.name)
        return articles

    def _set_trending(self, headlines: List[Article], seq: int) -> None:
        topics = extract_trending_topics(headlines, self.trending_limit)
        source = self.feed(TOP_HEADLINES)
        state = self.feed(TRENDING_TOPICS)
        with self._lock:
            # A newer headline list was applied meanwhile
            if seq != source.applied:
                return
            state.value = topics
        self._notify(TRENDING_TOPICS)

    # --- public operations ---
    def fetch_top_headlines(
        self, country: Optional[str] = None, page_size: int = 20, page: int = 1
    ) -> Future:
        country = country or self.preferences.selected_country.code
        query = ProviderQuery.headlines(country, page_size=page_size, page=page)
        return self._submit(TOP_HEADLINES, query, on_applied=self._set_trending)

    def fetch_category_news(
        self, category: str, country: Optional[str] = None, page_size: int = 20
    ) -> Future:
        country = country or self.preferences.selected_country.code
        query = ProviderQuery.category(category, country, page_size=page_size)
        return self._submit(category_feed(query.get("category")), query)

    def search_news(
        self, query: str, sort_by: str = "relevancy", page_size: int = 30, page: int = 1
    ) -> Future:
        try:
            provider_query = ProviderQuery.search(
                query, sort_by=sort_by, page_size=page_size, page=page
            )
        except EmptyInputError:
            return self._clear(SEARCH_RESULTS)

        def track(articles: List[Article], seq: int) -> None:
            self.analytics.track_search(provider_query.get("query"), len(articles))

        return self._submit(SEARCH_RESULTS, provider_query, on_applied=track)

    def fetch_personalized_news(
        self, interests: Optional[Iterable[str]] = None, page_size: int = 30
    ) -> Future:
        if interests is None:
            interests = self.preferences.interests
        try:
            query = ProviderQuery.personalized(interests, page_size=page_size)
        except EmptyInputError:
            return self._clear(PERSONALIZED_NEWS)
        return self._submit(PERSONALIZED_NEWS, query)

    def fetch_guardian_section(self, section: str, page_size: int = 20) -> Future:
        query = ProviderQuery.guardian_section(section, page_size=page_size)
        return self._submit(guardian_feed(query.get("section")), query)

    def fetch_related_articles(self, seed: Article) -> Future:
        keywords = extract_keywords(f"{seed.title} {seed.description or ''}")
        if not keywords:
            return self._clear(RELATED_ARTICLES)
        query = ProviderQuery.search(" OR ".join(keywords), page_size=MAX_RELATED_ARTICLES * 2)

        def exclude_seed(articles: List[Article]) -> List[Article]:
            return [a for a in articles if a.url != seed.url][:MAX_RELATED_ARTICLES]

        return self._submit(RELATED_ARTICLES, query, transform=exclude_seed)

    def refresh_all(self) -> List[Future]:
        """Start a refresh of headlines, personalized news and visible categories."""
        logger.info("Refreshing all feeds")
        futures = [self.fetch_top_headlines()]
        if self.preferences.interests:
            futures.append(self.fetch_personalized_news())
        for category in self.preferences.visible_category_names():
            if not self.sources.supports_category(category):
                continue
            futures.append(self.fetch_category_news(category))
        return futures

    def retry(self, name: str) -> Optional[Future]:
        """Re-issue the last request of a collection."""
        state = self.feed(name)
        if state.reload is None:
            return None
        return state.reload()

    def ensure_fresh(self, name: str) -> Optional[Future]:
        """Re-issue the last request of a collection if its cached result expired."""
        state = self.feed(name)
        if state.reload is None or state.last_query is None:
            return None
        if state.is_loading or self.cache.is_fresh(state.last_query):
            return None
        return state.reload()

    def clear_cache(self) -> None:
        self.cache.clear()

    def close(self) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=False)
