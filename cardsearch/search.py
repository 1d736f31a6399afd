"""Product card search orchestration.

One call to :meth:`SearchOrchestrator.get` runs the whole request:

1. normalize the language and resolve the query to candidate categories and,
   when the resolver is confident, one exact category;
2. aggregate categories by hit count and search product cards concurrently;
3. if nothing matched and the backend hints at a keyboard layout mix-up,
   search once more with the transliterated query;
4. attach links and review aggregates, reorder around the exact category or,
   while autocompleting, lift cards that continue a partially typed facet;
5. assemble the payload (facets and properties are skipped for autocomplete).

Every value that depends on the request travels through arguments and return
values; the orchestrator itself holds only collaborators.
"""
from __future__ import annotations

import asyncio
import logging
from decimal import ROUND_HALF_UP, Decimal
from time import perf_counter
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .cache import CategoryAggregationCache
from .categories import CategoryResolver, aggregate_categories, normalize_language
from .deadline import with_deadline
from .errors import NoResultsError
from .facets import lift_partial_matches
from .hierarchy import reorder_by_hierarchy
from .interfaces import CatalogStore, CategoryResolutionService, HierarchyService, SearchBackend
from .models import (
    BackendQuery,
    CategoryCandidate,
    ProductRecord,
    ResolutionResult,
    SearchParams,
    SearchPayload,
    SearchResult,
    WILDCARD,
    price_range,
)
from .transliteration import transliterate_keyboard_layout

logger = logging.getLogger(__name__)


def tokenize_query(query: str, exact_match: bool) -> List[str]:
    # An exact category filter constrains the results on its own.
    if not query or exact_match:
        return [WILDCARD]
    return query.split()


def facet_prefix(query: str) -> Optional[str]:
    if not query:
        return None
    return query.lower()[:-2]


def pinned_category(params: SearchParams) -> Optional[int]:
    # A pinned category replaces category discovery entirely.
    if params.category is not None and params.category > 0:
        return params.category
    return None


def build_backend_query(params: SearchParams, resolution: ResolutionResult) -> BackendQuery:
    pinned = pinned_category(params)
    exact_match = resolution.exact_match and pinned is None
    if pinned is not None:
        category_ids = [pinned]
    elif exact_match:
        category_ids = [resolution.exact_category_id]
    else:
        category_ids = list(resolution.candidate_ids)
    return BackendQuery(
        tokens=tokenize_query(params.query, exact_match),
        facet_prefix=facet_prefix(params.query),
        category_ids=category_ids,
        lang=params.lang,
        price=price_range(params),
        feed_ids=None if params.feedId is None else [params.feedId],
        moderate_statuses=None if params.status is None else [params.status],
        marketplace=params.marketplace,
        market_type_individual=params.marketTypeIndividual,
        raw_query=params.query,
    )


def round_rating(value: float) -> float:
    """Round half away from zero to one decimal place."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class SearchOrchestrator:
    def __init__(
        self,
        backend: SearchBackend,
        store: CatalogStore,
        resolution_service: CategoryResolutionService,
        hierarchy: HierarchyService,
        category_cache: CategoryAggregationCache | None = None,
    ) -> None:
        self.backend = backend
        self.store = store
        self.resolver = CategoryResolver(resolution_service)
        self.hierarchy = hierarchy
        self.category_cache = category_cache

    async def search(self, params: SearchParams, resolution: ResolutionResult) -> SearchResult:
        """Query the backend once and attach product links.

        Raises :class:`NoResultsError` carrying the backend's transliteration
        hint when nothing matched.
        """
        query = build_backend_query(params, resolution)
        result = await with_deadline(self.backend.search_product_cards(query), "product card search")
        if result.total_count <= 0 or not result.records:
            raise NoResultsError(transliterate=result.transliterate)
        await self._attach_links(result.records)
        return result

    async def get(self, params: SearchParams) -> Tuple[SearchPayload, int]:
        t0 = perf_counter()
        params = params.model_copy(update={"lang": normalize_language(params.lang)})
        resolution = await self.resolver.resolve(
            params.query,
            params.lang,
            params.marketplace,
            params.marketTypeIndividual,
        )
        t1 = perf_counter()

        aggregation: Optional[asyncio.Future] = None
        if not params.isAutocomplete:
            aggregation = asyncio.ensure_future(
                aggregate_categories(params, self.backend, self.store, self.category_cache)
            )
        try:
            result, query_echo = await self._search_with_fallback(params, resolution)
        except BaseException:
            if aggregation is not None:
                aggregation.cancel()
            raise
        categories: List[CategoryCandidate] = []
        if aggregation is not None:
            _, categories = await aggregation
        t2 = perf_counter()

        records = result.records
        await self._attach_reviews(records)
        if resolution.exact_match and pinned_category(params) is None:
            records = await with_deadline(
                reorder_by_hierarchy(records, resolution.exact_category_id, self.hierarchy),
                "hierarchy lookup",
            )
        elif params.isAutocomplete:
            records = lift_partial_matches(records, query_echo, result.facets)

        if params.isAutocomplete:
            payload = SearchPayload(queryEcho=query_echo, productCards=records)
        else:
            product_properties, category_properties = await asyncio.gather(
                self._product_properties(resolution.candidate_ids, params),
                self._category_properties(resolution.candidate_ids),
            )
            payload = SearchPayload(
                queryEcho=query_echo,
                productCards=records,
                categoryFacets=categories,
                productProperties=product_properties,
                categoryProperties=category_properties,
            )
        t3 = perf_counter()

        logger.info(
            "timing: total=%.2fms resolve=%.2fms search=%.2fms enrich=%.2fms q=%r echo=%r exact=%s cards=%s total_count=%s",
            (t3 - t0) * 1000,
            (t1 - t0) * 1000,
            (t2 - t1) * 1000,
            (t3 - t2) * 1000,
            params.query,
            query_echo,
            resolution.exact_category_id,
            len(records),
            result.total_count,
        )
        return payload, result.total_count

    async def _search_with_fallback(
        self,
        params: SearchParams,
        resolution: ResolutionResult,
    ) -> Tuple[SearchResult, str]:
        try:
            result = await self.search(params, resolution)
        except NoResultsError as exc:
            if not exc.transliterate:
                raise
            switched = transliterate_keyboard_layout(params.query)
            if switched == params.query:
                raise
            logger.info("no results for q=%r, retrying with layout switched q=%r", params.query, switched)
            result = await self.search(params.model_copy(update={"query": switched}), resolution)
            return result, switched

        if result.transliterate:
            return result, transliterate_keyboard_layout(params.query)
        return result, params.query

    async def _attach_links(self, records: List[ProductRecord]) -> None:
        product_ids = [record.productId for record in records]
        links = await with_deadline(self.store.get_products_links(product_ids), "product links lookup")
        for record in records:
            record.link = links.get(record.productId) or ""

    async def _attach_reviews(self, records: List[ProductRecord]) -> None:
        if not records:
            return
        card_ids = list(dict.fromkeys(record.productCardId for record in records))
        reviews = await with_deadline(
            self.store.get_average_and_count_reviews(card_ids),
            "review aggregates lookup",
        )
        by_card = {review.productCardId: review for review in reviews}
        for record in records:
            review = by_card.get(record.productCardId)
            if review is None:
                continue
            record.rating = round_rating(review.rating)
            record.countReviews = review.countReviews

    async def _product_properties(
        self,
        candidate_ids: Sequence[int],
        params: SearchParams,
    ) -> Optional[List[Dict[str, Any]]]:
        if not candidate_ids:
            return None
        # The last candidate is the most specific resolved category.
        return await with_deadline(
            self.store.get_property_values(candidate_ids[-1], params),
            "product property values lookup",
        )

    async def _category_properties(self, candidate_ids: Sequence[int]) -> Optional[List[Dict[str, Any]]]:
        if not candidate_ids:
            return None
        return await with_deadline(
            self.store.get_category_properties(list(candidate_ids)),
            "category properties lookup",
        )
