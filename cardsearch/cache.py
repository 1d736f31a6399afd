"""Caching of category aggregations, Redis first with an in-memory fallback.

Grouping categories by hit count is the most expensive backend call of a
request and depends only on the query text and the request filters, so its
merged result is kept for ``settings.cache_ttl_seconds``.
"""
from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Tuple

import redis

from .config import settings
from .models import CategoryCandidate, SearchParams

logger = logging.getLogger(__name__)

CATEGORY_AGGREGATION_PREFIX = "cardsearch:categories"


class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl: int) -> None: ...


def cache_key(prefix: str, *parts: object) -> str:
    """Stable key for a namespace and the request fields that shape a value."""
    raw = json.dumps([str(part) for part in parts], ensure_ascii=False)
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"


@dataclass
class RedisCache:
    client: redis.Redis

    def get(self, key: str) -> Optional[Any]:
        try:
            data = self.client.get(key)
        except redis.RedisError as exc:  # pragma: no cover - protective
            logger.warning("Redis get failed key=%s: %s", key, exc)
            return None
        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Dropping undecodable cache entry key=%s", key)
            return None

    def set(self, key: str, value: Any, ttl: int) -> None:
        try:
            self.client.setex(key, ttl, json.dumps(value, ensure_ascii=False))
        except redis.RedisError as exc:  # pragma: no cover - protective
            logger.warning("Redis set failed key=%s: %s", key, exc)


class InMemoryCache:
    def __init__(self) -> None:
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at < time.time():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (time.time() + ttl, value)


class CategoryAggregationCache:
    """Typed view over a cache backend for ``(ranked_ids, categories)`` pairs."""

    def __init__(self, backend: CacheBackend, ttl: int | None = None) -> None:
        self.backend = backend
        self.ttl = settings.cache_ttl_seconds if ttl is None else ttl

    @staticmethod
    def key_for(params: SearchParams) -> str:
        return cache_key(
            CATEGORY_AGGREGATION_PREFIX,
            params.query,
            params.lang,
            params.marketplace,
            params.marketTypeIndividual,
            params.priceFrom,
            params.priceTo,
            params.feedId,
            params.status,
        )

    def load(self, params: SearchParams) -> Optional[Tuple[List[int], List[CategoryCandidate]]]:
        cached = self.backend.get(self.key_for(params))
        if not cached:
            return None
        ranked_ids = [int(category_id) for category_id in cached.get("ids", [])]
        categories = [CategoryCandidate(**item) for item in cached.get("categories", [])]
        logger.debug("category aggregation cache hit q=%r ids=%s", params.query, ranked_ids)
        return ranked_ids, categories

    def store(self, params: SearchParams, ranked_ids: List[int], categories: List[CategoryCandidate]) -> None:
        value = {
            "ids": list(ranked_ids),
            "categories": [category.model_dump() for category in categories],
        }
        self.backend.set(self.key_for(params), value, self.ttl)


_cache: CacheBackend | None = None


def get_cache() -> CacheBackend:
    global _cache
    if _cache is not None:
        return _cache
    try:
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, decode_responses=False)
        client.ping()
        logger.info("Using Redis cache at %s:%s", settings.redis_host, settings.redis_port)
        _cache = RedisCache(client)
    except redis.RedisError:
        logger.warning("Redis not available, using in-memory cache")
        _cache = InMemoryCache()
    return _cache
