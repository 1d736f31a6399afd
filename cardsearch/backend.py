"""Product card search backend on top of Elasticsearch."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from elasticsearch import ApiError, Elasticsearch, TransportError
from pydantic import ValidationError

from .config import settings
from .errors import UpstreamFailure
from .models import WILDCARD, BackendQuery, ProductRecord, SearchParams, SearchResult, price_range
from .transliteration import looks_like_wrong_layout

logger = logging.getLogger(__name__)

NAME_FIELDS = [
    "name^3",
    "name.russian^2",
    "name.english^2",
    "name.autocomplete^1.5",
]
FACET_FIELD = "nameFacet"
FACET_SIZE = 50
CATEGORY_FIELD = "categoryId"
# Characters with a meaning in Lucene regular expressions.
_LUCENE_REGEX_RESERVED = frozenset('.?+*|{}[]()"\\#@&<>~')


def _escape_lucene_regex(text: str) -> str:
    return "".join(f"\\{ch}" if ch in _LUCENE_REGEX_RESERVED else ch for ch in text)


def _token_clauses(tokens: List[str]) -> List[dict]:
    words = [token for token in tokens if token and token != WILDCARD]
    if not words:
        return [{"match_all": {}}]
    return [
        {
            "multi_match": {
                "query": word,
                "fields": NAME_FIELDS,
                "type": "most_fields",
                "fuzziness": "AUTO",
            }
        }
        for word in words
    ]


def _request_filters(
    price: Optional[Dict[str, float]],
    feed_ids: Optional[List[int]],
    moderate_statuses: Optional[List[str]],
    marketplace: Optional[int],
) -> List[dict]:
    filters: List[dict] = []
    if price:
        bounds = {}
        if "from" in price:
            bounds["gte"] = price["from"]
        if "to" in price:
            bounds["lte"] = price["to"]
        filters.append({"range": {"price": bounds}})
    if feed_ids:
        filters.append({"terms": {"feedId": feed_ids}})
    if moderate_statuses:
        filters.append({"terms": {"moderateStatus": moderate_statuses}})
    if marketplace is not None:
        filters.append({"term": {"marketplaceId": marketplace}})
    return filters


def build_search_body(query: BackendQuery, size: int) -> Dict[str, Any]:
    filters = _request_filters(query.price, query.feed_ids, query.moderate_statuses, query.marketplace)
    if query.category_ids:
        filters.insert(0, {"terms": {CATEGORY_FIELD: list(query.category_ids)}})

    body: Dict[str, Any] = {
        "size": size,
        "track_total_hits": True,
        "query": {"bool": {"must": _token_clauses(query.tokens), "filter": filters}},
    }
    if query.facet_prefix is not None:
        body["aggs"] = {
            "name_facets": {
                "terms": {
                    "field": FACET_FIELD,
                    "include": f"{_escape_lucene_regex(query.facet_prefix)}.*",
                    "size": FACET_SIZE,
                }
            }
        }
    logger.debug("ES search payload=%s", body)
    return body


def build_category_body(params: SearchParams, size: int) -> Dict[str, Any]:
    """Hit counts per category under the same filters as the card search."""
    filters = _request_filters(
        price_range(params),
        None if params.feedId is None else [params.feedId],
        None if params.status is None else [params.status],
        params.marketplace,
    )
    body = {
        "size": 0,
        "query": {"bool": {"must": _token_clauses(params.query.split()), "filter": filters}},
        "aggs": {"categories": {"terms": {"field": CATEGORY_FIELD, "size": size}}},
    }
    logger.debug("ES category payload=%s", body)
    return body


def _total_hits(response: Dict[str, Any]) -> int:
    total = response.get("hits", {}).get("total", 0)
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)


def _parse_records(hits: List[Dict[str, Any]]) -> List[ProductRecord]:
    records: List[ProductRecord] = []
    for hit in hits:
        try:
            records.append(ProductRecord(**hit.get("_source", {})))
        except ValidationError as exc:
            logger.warning("Skipping malformed product card hit id=%s: %s", hit.get("_id"), exc)
    return records


class ElasticsearchBackend:
    """Search backend querying one product card index."""

    def __init__(self, es: Elasticsearch, index: str | None = None, size: int | None = None) -> None:
        self.es = es
        self.index = index or settings.es_index
        self.size = size or settings.search_result_size

    async def _search(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await asyncio.to_thread(self.es.search, index=self.index, body=body)
        except (ApiError, TransportError) as exc:
            logger.exception("Elasticsearch request failed: %s", exc)
            raise UpstreamFailure(f"Elasticsearch request failed: {exc}") from exc
        return response

    async def search_product_cards(self, query: BackendQuery) -> SearchResult:
        response = await self._search(build_search_body(query, self.size))
        hits = response.get("hits", {}).get("hits", [])
        records = _parse_records(hits)
        total = _total_hits(response)
        buckets = response.get("aggregations", {}).get("name_facets", {}).get("buckets", [])
        facets = {str(bucket["key"]): int(bucket["doc_count"]) for bucket in buckets}
        transliterate = total <= 0 and looks_like_wrong_layout(query.raw_query)
        logger.info(
            "search tokens=%s prefix=%r categories=%s hits=%s total=%s translit=%s took=%sms",
            query.tokens,
            query.facet_prefix,
            query.category_ids,
            len(records),
            total,
            transliterate,
            response.get("took", 0),
        )
        return SearchResult(records=records, total_count=total, transliterate=transliterate, facets=facets)

    async def group_categories(self, params: SearchParams) -> List[int]:
        response = await self._search(build_category_body(params, settings.category_facet_size))
        buckets = response.get("aggregations", {}).get("categories", {}).get("buckets", [])
        category_ids = [int(bucket["key"]) for bucket in buckets]
        logger.info("group_categories q=%r categories=%s", params.query, category_ids)
        return category_ids
