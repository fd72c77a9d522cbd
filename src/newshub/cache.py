from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from typing import Callable, Dict, List, Mapping, Optional

from .config import CACHE_TTL
from .datamodels import Article, CacheEntry, ProviderQuery

logger = logging.getLogger("newshub")

Fetcher = Callable[[ProviderQuery], List[Article]]


class AggregationCache:
    """In-memory article cache keyed by query signature, with per-kind TTLs.

    Concurrent misses on the same key share a single in-flight fetch.
    """

    def __init__(
        self,
        ttl: Optional[Mapping[str, float]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl: Dict[str, float] = dict(CACHE_TTL)
        if ttl:
            self.ttl.update(ttl)
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def ttl_for(self, kind: str) -> float:
        return self.ttl.get(kind, 0)

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.fetched_at < self.ttl_for(entry.query.kind)

    def is_fresh(self, query: ProviderQuery) -> bool:
        with self._lock:
            entry = self._entries.get(query.cache_key())
            return entry is not None and self._is_fresh(entry)

    def peek(self, query: ProviderQuery) -> Optional[CacheEntry]:
        """Return the stored entry for a query, fresh or not."""
        with self._lock:
            return self._entries.get(query.cache_key())

    def get_or_fetch(self, query: ProviderQuery, fetcher: Fetcher) -> List[Article]:
        key = query.cache_key()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry):
                logger.debug("Cache hit for key: %s", key)
                return list(entry.articles)
            pending = self._in_flight.get(key)
            owner = pending is None
            if owner:
                pending = Future()
                self._in_flight[key] = pending

        if not owner:
            logger.debug("Joining in-flight fetch for key: %s", key)
            return list(pending.result())

        logger.debug("Cache miss for key: %s", key)
        try:
            articles = list(fetcher(query))
        except BaseException as e:
            with self._lock:
                del self._in_flight[key]
            pending.set_exception(e)
            raise

        with self._lock:
            if self.ttl_for(query.kind) > 0:
                self._entries[key] = CacheEntry(
                    query=query, fetched_at=self.clock(), articles=articles
                )
            del self._in_flight[key]
        pending.set_result(articles)
        return list(articles)

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()
        logger.info("Cache cleared.")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
