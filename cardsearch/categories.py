"""Category resolution and hit-count ordered category aggregation."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .cache import CategoryAggregationCache
from .config import settings
from .deadline import with_deadline
from .errors import DataInconsistency
from .interfaces import CatalogStore, CategoryResolutionService, SearchBackend
from .models import CategoryCandidate, ResolutionResult, SearchParams

logger = logging.getLogger(__name__)

# Upper bound of category records fetched for the facet list.
CATEGORY_METADATA_LIMIT = 25


def normalize_language(lang: Optional[str]) -> str:
    """Return a supported language code in capitalized form (``"Ru"``)."""
    code = (lang or "").strip().lower()
    if code not in settings.supported_languages:
        code = settings.default_language
    return code.capitalize()


class CategoryResolver:
    def __init__(self, service: CategoryResolutionService) -> None:
        self.service = service

    async def resolve(
        self,
        query: str,
        lang: str,
        marketplace: Optional[int],
        market_type_individual: bool,
    ) -> ResolutionResult:
        language = normalize_language(lang)
        candidate_ids, exact_id = await with_deadline(
            self.service.user_search_category(query, language, marketplace, market_type_individual),
            "category resolution",
        )
        if not exact_id or exact_id <= 0:
            exact_id = None
        result = ResolutionResult(
            candidate_ids=tuple(int(category_id) for category_id in candidate_ids or ()),
            exact_category_id=exact_id,
        )
        logger.info(
            "resolve q=%r lang=%s candidates=%s exact=%s",
            query,
            language,
            list(result.candidate_ids),
            result.exact_category_id,
        )
        return result


def order_by_rank(
    ranked_ids: Sequence[int],
    records: Iterable[CategoryCandidate],
    *,
    strict: bool = False,
) -> List[CategoryCandidate]:
    """Arrange ``records`` in the order of ``ranked_ids``.

    Ids without a record are skipped, or raise :class:`DataInconsistency` when
    ``strict`` is set.
    """
    by_id: Dict[int, CategoryCandidate] = {record.id: record for record in records}
    ordered: List[CategoryCandidate] = []
    missing: List[int] = []
    for category_id in ranked_ids:
        record = by_id.get(category_id)
        if record is None:
            missing.append(category_id)
            continue
        ordered.append(record)
    if missing:
        if strict:
            raise DataInconsistency(f"No category metadata for ids {missing}", missing)
        logger.warning("Skipping ranked categories without metadata: %s", missing)
    return ordered


async def aggregate_categories(
    params: SearchParams,
    backend: SearchBackend,
    store: CatalogStore,
    cache: CategoryAggregationCache | None = None,
) -> Tuple[List[int], List[CategoryCandidate]]:
    """Category ids ranked by hit count plus their metadata in the same order."""
    if params.category is not None and params.category > 0:
        return [], []

    if cache is not None:
        cached = cache.load(params)
        if cached is not None:
            return cached

    ranked_ids = list(await with_deadline(backend.group_categories(params), "category grouping"))
    top_ids = ranked_ids[:CATEGORY_METADATA_LIMIT]
    records: List[CategoryCandidate] = []
    if top_ids:
        records = await with_deadline(
            store.get_categories_by_ids(top_ids, CATEGORY_METADATA_LIMIT),
            "category metadata lookup",
        )
    categories = order_by_rank(top_ids, records)
    logger.info(
        "aggregate_categories q=%r ranked=%s with_metadata=%s",
        params.query,
        len(ranked_ids),
        len(categories),
    )

    if cache is not None:
        cache.store(params, ranked_ids, categories)
    return ranked_ids, categories
