from __future__ import annotations

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from newshub.aggregator import (
    PERSONALIZED_NEWS,
    SEARCH_RESULTS,
    TOP_HEADLINES,
    TRENDING_TOPICS,
    NewsAggregator,
    category_feed,
)
from newshub.cache import AggregationCache
from newshub.datamodels import Article
from newshub.errors import TransportError
from newshub.preferences import PreferenceStore


class ImmediateExecutor(Executor):
    """Runs submitted work on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def article(n, title=None):
    return Article(
        url=f"https://a/{n}", title=title or f"Story {n}", source_name="X", published_at=""
    )


@pytest.fixture
def preferences(tmp_path):
    prefs = PreferenceStore(path=str(tmp_path / "preferences.json"), default_country="us")
    prefs.selected_country = "us"
    return prefs


@pytest.fixture
def sources():
    manager = MagicMock()
    manager.fetch.return_value = [article(1)]
    return manager


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def aggregator(sources, preferences, clock):
    return NewsAggregator(
        sources, preferences, cache=AggregationCache(clock=clock), executor=ImmediateExecutor()
    )


def test_fetch_top_headlines_uses_selected_country(aggregator, sources):
    aggregator.fetch_top_headlines().result()
    query = sources.fetch.call_args[0][0]
    assert query.kind == "headlines"
    assert query.get("country") == "us"
    assert aggregator.top_headlines == [article(1)]


def test_headlines_update_trending_topics(aggregator, sources):
    sources.fetch.return_value = [
        article(1, "Stocks rise as markets react"),
        article(2, "Markets react to stocks news"),
        article(3, "Weather update"),
    ]
    events = []
    aggregator.subscribe(events.append)

    aggregator.fetch_top_headlines().result()

    assert aggregator.trending_topics == ["stocks", "markets", "react"]
    assert TRENDING_TOPICS in events
    assert TOP_HEADLINES in events


def test_blank_search_makes_no_request(aggregator, sources):
    assert aggregator.search_news("   ").result() == []
    assert aggregator.search_results == []
    sources.fetch.assert_not_called()


def test_blank_search_clears_previous_results(aggregator, sources):
    aggregator.search_news("climate").result()
    assert aggregator.search_results == [article(1)]
    aggregator.search_news("")
    assert aggregator.search_results == []


def test_personalized_uses_first_five_interests(aggregator, sources):
    interests = ["space", "climate", "football", "machine learning", "music", "film", "food"]
    aggregator.fetch_personalized_news(interests).result()
    query = sources.fetch.call_args[0][0]
    assert query.kind == "personalized"
    assert query.get("query") == 'space OR climate OR football OR "machine learning" OR music'
    assert query.get("sortBy") == "publishedAt"


def test_personalized_without_interests_clears(aggregator, sources, preferences):
    assert preferences.interests == []
    aggregator.fetch_personalized_news().result()
    assert aggregator.personalized_news == []
    sources.fetch.assert_not_called()


def test_error_keeps_previous_value(aggregator, sources):
    aggregator.fetch_top_headlines().result()
    aggregator.clear_cache()
    sources.fetch.side_effect = TransportError("offline")

    future = aggregator.fetch_top_headlines()

    assert isinstance(future.exception(), TransportError)
    state = aggregator.feed(TOP_HEADLINES)
    assert state.value == [article(1)]
    assert isinstance(state.last_error, TransportError)
    assert not state.is_loading


def test_success_clears_last_error(aggregator, sources):
    sources.fetch.side_effect = [TransportError("offline"), [article(2)]]
    aggregator.fetch_category_news("science").exception()
    assert aggregator.feed(category_feed("science")).last_error is not None

    aggregator.retry(category_feed("science")).result()

    assert aggregator.feed(category_feed("science")).last_error is None
    assert aggregator.category_news("science") == [article(2)]


def test_retry_unknown_feed_returns_none(aggregator):
    assert aggregator.retry("nothing-here") is None


def test_superseded_result_is_discarded(sources, preferences):
    release = threading.Event()
    started = threading.Event()

    def fetch(query):
        if query.get("country") == "gb":
            started.set()
            release.wait(5)
            return [article("gb")]
        return [article("us")]

    sources.fetch.side_effect = fetch
    executor = ThreadPoolExecutor(max_workers=2)
    aggregator = NewsAggregator(sources, preferences, executor=executor)
    try:
        slow = aggregator.fetch_top_headlines(country="gb")
        assert started.wait(5)
        aggregator.fetch_top_headlines(country="us").result(5)
        release.set()
        slow.result(5)
    finally:
        executor.shutdown(wait=True)

    assert aggregator.top_headlines == [article("us")]


def test_related_articles_exclude_seed_and_are_capped(aggregator, sources):
    seed = article(0, "Central bank cuts interest rates again")
    sources.fetch.return_value = [seed] + [article(n) for n in range(1, 9)]

    related = aggregator.fetch_related_articles(seed).result()

    query = sources.fetch.call_args[0][0]
    assert query.kind == "search"
    assert "central" in query.get("query")
    assert seed not in related
    assert len(related) == 5
    assert aggregator.related_articles == related


def test_refresh_all(aggregator, sources, preferences):
    preferences.toggle_interest("space")
    for category in preferences.all_categories():
        preferences.toggle_category_visibility(category, category in ("science", "sports"))

    futures = aggregator.refresh_all()

    assert len(futures) == 4
    kinds = sorted(call[0][0].kind for call in sources.fetch.call_args_list)
    assert kinds == ["category", "category", "headlines", "personalized"]


def test_refresh_all_skips_categories_no_source_has(aggregator, sources, preferences):
    for category in preferences.all_categories():
        preferences.toggle_category_visibility(category, category in ("science", "food"))
    sources.supports_category.side_effect = lambda category: category != "food"

    futures = aggregator.refresh_all()

    assert len(futures) == 2
    categories = [
        call[0][0].get("category")
        for call in sources.fetch.call_args_list
        if call[0][0].kind == "category"
    ]
    assert categories == ["science"]


def test_ensure_fresh_refetches_only_after_expiry(aggregator, sources, clock):
    aggregator.fetch_top_headlines().result()
    assert aggregator.ensure_fresh(TOP_HEADLINES) is None
    assert sources.fetch.call_count == 1

    clock.now += 16 * 60
    future = aggregator.ensure_fresh(TOP_HEADLINES)

    assert future is not None
    future.result()
    assert sources.fetch.call_count == 2


def test_ensure_fresh_for_never_loaded_feed(aggregator):
    assert aggregator.ensure_fresh(SEARCH_RESULTS) is None


def test_listener_errors_do_not_break_fetch(aggregator):
    aggregator.subscribe(MagicMock(side_effect=RuntimeError("boom")))
    assert aggregator.fetch_top_headlines().result() == [article(1)]


def test_loading_flag_is_published(aggregator, sources):
    seen = []
    aggregator.subscribe(
        lambda name: seen.append(aggregator.feed(name).is_loading) if name == PERSONALIZED_NEWS else None
    )
    aggregator.fetch_personalized_news(["space"]).result()
    assert seen == [True, False]


def test_stale_headlines_do_not_replace_trending(aggregator, sources):
    sources.fetch.return_value = [article(1, "Stocks rise"), article(2, "Stocks fall")]
    aggregator.fetch_top_headlines().result()
    aggregator.clear_cache()
    sources.fetch.return_value = [article(3, "Storm warning"), article(4, "Storm passes")]
    aggregator.fetch_top_headlines().result()
    assert aggregator.trending_topics == ["storm"]

    stale = [article(1, "Stocks rise"), article(2, "Stocks fall")]
    aggregator._set_trending(stale, 1)
    assert aggregator.trending_topics == ["storm"]

    aggregator._set_trending(stale, aggregator.feed(TOP_HEADLINES).applied)
    assert aggregator.trending_topics == ["stocks"]


def test_search_is_tracked(sources, preferences, clock):
    analytics = MagicMock()
    aggregator = NewsAggregator(
        sources,
        preferences,
        cache=AggregationCache(clock=clock),
        executor=ImmediateExecutor(),
        analytics=analytics,
    )
    sources.fetch.return_value = [article(1), article(2)]

    aggregator.search_news("space").result()

    analytics.track_search.assert_called_once_with("space", 2)


def test_fetch_errors_are_tracked(sources, preferences, clock):
    analytics = MagicMock()
    aggregator = NewsAggregator(
        sources,
        preferences,
        cache=AggregationCache(clock=clock),
        executor=ImmediateExecutor(),
        analytics=analytics,
    )
    sources.fetch.side_effect = TransportError("offline")

    aggregator.fetch_top_headlines().exception()

    analytics.track_error.assert_called_once_with("TransportError", "offline", TOP_HEADLINES)
