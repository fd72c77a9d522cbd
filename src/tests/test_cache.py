from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock

import pytest

from newshub.cache import AggregationCache
from newshub.datamodels import Article, ProviderQuery
from newshub.errors import TransportError


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def article(n):
    return Article(url=f"https://a/{n}", title=f"Story {n}", source_name="X", published_at="")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return AggregationCache(clock=clock)


def test_hit_within_ttl(cache, clock):
    fetcher = MagicMock(return_value=[article(1)])
    query = ProviderQuery.headlines("us")

    first = cache.get_or_fetch(query, fetcher)
    clock.now += 14 * 60
    second = cache.get_or_fetch(query, fetcher)

    assert first == second == [article(1)]
    fetcher.assert_called_once_with(query)
    assert cache.is_fresh(query)


def test_refetch_after_expiry(cache, clock):
    fetcher = MagicMock(side_effect=[[article(1)], [article(2)]])
    query = ProviderQuery.headlines("us")

    cache.get_or_fetch(query, fetcher)
    clock.now += 15 * 60
    assert not cache.is_fresh(query)
    assert cache.get_or_fetch(query, fetcher) == [article(2)]
    assert fetcher.call_count == 2


def test_personalized_has_shorter_ttl(cache, clock):
    fetcher = MagicMock(return_value=[article(1)])
    query = ProviderQuery.personalized(["space"])
    cache.get_or_fetch(query, fetcher)
    clock.now += 8 * 60
    assert not cache.is_fresh(query)


def test_search_is_never_stored(cache):
    fetcher = MagicMock(return_value=[article(1)])
    query = ProviderQuery.search("election")

    cache.get_or_fetch(query, fetcher)
    cache.get_or_fetch(query, fetcher)

    assert fetcher.call_count == 2
    assert cache.peek(query) is None
    assert len(cache) == 0


def test_distinct_params_are_distinct_keys(cache):
    fetcher = MagicMock(side_effect=lambda q: [article(q.get("country"))])
    us = cache.get_or_fetch(ProviderQuery.headlines("us"), fetcher)
    gb = cache.get_or_fetch(ProviderQuery.headlines("gb"), fetcher)
    assert us != gb
    assert len(cache) == 2


def test_failure_leaves_cache_unchanged(cache, clock):
    query = ProviderQuery.headlines("us")
    cache.get_or_fetch(query, MagicMock(return_value=[article(1)]))
    stored = cache.peek(query)
    clock.now += 20 * 60

    with pytest.raises(TransportError):
        cache.get_or_fetch(query, MagicMock(side_effect=TransportError("offline")))

    assert cache.peek(query) is stored
    assert cache.peek(query).articles == [article(1)]


def test_returned_list_is_a_copy(cache):
    query = ProviderQuery.headlines("us")
    result = cache.get_or_fetch(query, MagicMock(return_value=[article(1)]))
    result.append(article(2))
    assert cache.peek(query).articles == [article(1)]


def test_concurrent_misses_share_one_fetch(cache):
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_fetch(query):
        calls.append(query)
        started.set()
        release.wait(5)
        return [article(1)]

    query = ProviderQuery.headlines("us")
    results = []

    def worker():
        results.append(cache.get_or_fetch(query, slow_fetch))

    first = threading.Thread(target=worker)
    first.start()
    assert started.wait(5)
    others = [threading.Thread(target=worker) for _ in range(3)]
    for t in others:
        t.start()
    release.set()
    for t in [first] + others:
        t.join(5)

    assert len(calls) == 1
    assert results == [[article(1)]] * 4


def test_concurrent_misses_share_one_failure(cache):
    started = threading.Event()
    release = threading.Event()
    failure = TransportError("offline")
    calls = []

    def failing_fetch(query):
        calls.append(query)
        started.set()
        release.wait(5)
        raise failure

    query = ProviderQuery.headlines("us")
    errors = []

    def worker():
        try:
            cache.get_or_fetch(query, failing_fetch)
        except TransportError as e:
            errors.append(e)

    first = threading.Thread(target=worker)
    first.start()
    assert started.wait(5)
    others = [threading.Thread(target=worker) for _ in range(3)]
    for t in others:
        t.start()
    time.sleep(0.05)
    release.set()
    for t in [first] + others:
        t.join(5)

    assert len(calls) == 1
    assert len(errors) == 4
    assert all(e is failure for e in errors)
    assert cache._in_flight == {}
    assert cache.peek(query) is None

    fetcher = MagicMock(return_value=[article(1)])
    assert cache.get_or_fetch(query, fetcher) == [article(1)]
    fetcher.assert_called_once_with(query)


def test_clear(cache):
    query = ProviderQuery.headlines("us")
    cache.get_or_fetch(query, MagicMock(return_value=[article(1)]))
    cache.clear()
    assert cache.peek(query) is None
