"""Protocols for the collaborators the search pipeline talks to.

Only the calls the pipeline makes are described here. Implementations live
outside this package, except for the Elasticsearch backend in
:mod:`cardsearch.backend`.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .models import BackendQuery, CategoryCandidate, ReviewAggregate, SearchParams, SearchResult


class HierarchyNode(Protocol):
    id: int


class SearchBackend(Protocol):
    async def search_product_cards(self, query: BackendQuery) -> SearchResult: ...

    async def group_categories(self, params: SearchParams) -> List[int]: ...


class CatalogStore(Protocol):
    async def get_categories_by_ids(self, ids: Sequence[int], limit: int) -> List[CategoryCandidate]: ...

    async def get_products_links(self, product_ids: Sequence[int]) -> Dict[int, str]: ...

    async def get_average_and_count_reviews(self, product_card_ids: Sequence[int]) -> List[ReviewAggregate]: ...

    async def get_category_properties(self, category_ids: Sequence[int]) -> List[Dict[str, Any]]: ...

    async def get_property_values(self, category_id: int, params: SearchParams) -> List[Dict[str, Any]]: ...


class CategoryResolutionService(Protocol):
    async def user_search_category(
        self,
        text: str,
        lang: str,
        marketplace: Optional[int],
        market_type_individual: bool,
    ) -> Tuple[List[int], Optional[int]]: ...


class HierarchyService(Protocol):
    async def get_node(self, category_id: int) -> HierarchyNode: ...

    async def get_sibling_branch(self, node: HierarchyNode) -> Sequence[HierarchyNode]: ...
