"""Shared fakes for the collaborator protocols."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import pytest

from cardsearch.models import CategoryCandidate, ProductRecord, ReviewAggregate, SearchResult


def make_record(product_id: int, category_id: int, card_id: Optional[int] = None, name: str = "") -> ProductRecord:
    return ProductRecord(
        productId=product_id,
        productCardId=card_id if card_id is not None else product_id * 10,
        categoryId=category_id,
        name=name or f"product {product_id}",
        price=100.0,
    )


def empty_result(transliterate: bool = False) -> SearchResult:
    return SearchResult(records=[], total_count=0, transliterate=transliterate)


class FakeBackend:
    def __init__(self, results: Sequence[SearchResult] = (), categories: Sequence[int] = ()) -> None:
        self.results = list(results)
        self.categories = list(categories)
        self.queries = []
        self.group_calls = 0

    async def search_product_cards(self, query):
        self.queries.append(query)
        if self.results:
            return self.results.pop(0)
        return empty_result()

    async def group_categories(self, params):
        self.group_calls += 1
        return list(self.categories)


class FakeStore:
    def __init__(
        self,
        categories: Sequence[CategoryCandidate] = (),
        links: Optional[Dict[int, str]] = None,
        reviews: Sequence[ReviewAggregate] = (),
    ) -> None:
        self.categories = {category.id: category for category in categories}
        self.links = links or {}
        self.reviews = list(reviews)
        self.calls: Dict[str, list] = {}

    def _record(self, name, *args):
        self.calls.setdefault(name, []).append(args)

    async def get_categories_by_ids(self, ids, limit):
        self._record("categories", list(ids), limit)
        found = [self.categories[category_id] for category_id in ids if category_id in self.categories]
        return sorted(found, key=lambda category: category.id)[:limit]

    async def get_products_links(self, product_ids):
        self._record("links", list(product_ids))
        return {product_id: self.links[product_id] for product_id in product_ids if product_id in self.links}

    async def get_average_and_count_reviews(self, product_card_ids):
        self._record("reviews", list(product_card_ids))
        return [review for review in self.reviews if review.productCardId in product_card_ids]

    async def get_category_properties(self, category_ids):
        self._record("category_properties", list(category_ids))
        return [{"categoryId": category_id, "name": "color"} for category_id in category_ids]

    async def get_property_values(self, category_id, params):
        self._record("property_values", category_id)
        return [{"categoryId": category_id, "name": "color", "values": ["red", "black"]}]


class FakeResolutionService:
    def __init__(self, candidates: Sequence[int] = (), exact: Optional[int] = None) -> None:
        self.candidates = list(candidates)
        self.exact = exact
        self.calls = []

    async def user_search_category(self, text, lang, marketplace, market_type_individual):
        self.calls.append((text, lang, marketplace, market_type_individual))
        return list(self.candidates), self.exact


@dataclass
class Node:
    id: int


class FakeHierarchy:
    def __init__(self, siblings: Optional[Dict[int, List[int]]] = None) -> None:
        self.siblings = siblings or {}
        self.node_calls = 0
        self.branch_calls = 0

    async def get_node(self, category_id):
        self.node_calls += 1
        return Node(category_id)

    async def get_sibling_branch(self, node):
        self.branch_calls += 1
        return [Node(category_id) for category_id in self.siblings.get(node.id, [])]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore(
        categories=[
            CategoryCandidate(id=3, name="Phones"),
            CategoryCandidate(id=7, name="Smartphones"),
            CategoryCandidate(id=12, name="Accessories"),
        ],
        links={1: "/p/1", 2: "/p/2"},
    )


@pytest.fixture
def hierarchy() -> FakeHierarchy:
    return FakeHierarchy({42: [43, 44]})
