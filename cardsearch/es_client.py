"""Elasticsearch client factory.

The rest of the code works against the official synchronous client. Blocking
calls are wrapped via ``asyncio.to_thread`` by the caller where necessary.
Transport-level timeouts follow the pipeline deadline so a stuck node cannot
hold a worker thread longer than the request waits for it.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from elasticsearch import Elasticsearch

from .config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_client() -> Elasticsearch:
    logger.info(
        "Connecting to Elasticsearch at %s (index=%s, timeout=%.1fs)",
        settings.es_host,
        settings.es_index,
        settings.backend_timeout_seconds,
    )
    return Elasticsearch(settings.es_host, request_timeout=settings.backend_timeout_seconds)
