"""Pydantic models for request/response payloads and pipeline value objects."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# Match-all token understood by search backends.
WILDCARD = "*"


class SearchParams(BaseModel):
    query: str = Field("", description="Free-text search query")
    lang: str = Field("ru", description="Language code, normalized before use")
    category: Optional[int] = Field(None, description="Explicit category id")
    priceFrom: Optional[float] = None
    priceTo: Optional[float] = None
    feedId: Optional[int] = None
    status: Optional[str] = Field(None, description="Moderation status filter")
    marketplace: Optional[int] = None
    marketTypeIndividual: bool = False
    isAutocomplete: bool = False


def price_range(params: SearchParams) -> Optional[Dict[str, float]]:
    """Single range filter from the price bounds; absent bounds are omitted."""
    if params.priceFrom is None and params.priceTo is None:
        return None
    bounds: Dict[str, float] = {}
    if params.priceFrom is not None:
        bounds["from"] = params.priceFrom
    if params.priceTo is not None:
        bounds["to"] = params.priceTo
    return bounds


class ProductRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    productId: int
    productCardId: int
    categoryId: Optional[int] = None
    name: str = ""
    price: Optional[float] = None
    link: Optional[str] = None
    rating: Optional[float] = None
    countReviews: Optional[int] = None


class CategoryCandidate(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: Optional[str] = None


class ReviewAggregate(BaseModel):
    productCardId: int
    rating: float
    countReviews: int


class SearchPayload(BaseModel):
    queryEcho: str
    productCards: List[ProductRecord]
    categoryFacets: Optional[List[CategoryCandidate]] = None
    productProperties: Optional[List[Dict[str, Any]]] = None
    categoryProperties: Optional[List[Dict[str, Any]]] = None


class SearchResponse(SearchPayload):
    totalCount: int


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of category resolution for one request."""

    candidate_ids: Tuple[int, ...] = ()
    exact_category_id: Optional[int] = None

    @property
    def exact_match(self) -> bool:
        return self.exact_category_id is not None


@dataclass
class BackendQuery:
    """Request assembled for the full-text search backend."""

    tokens: List[str]
    facet_prefix: Optional[str]
    category_ids: List[int]
    lang: str
    price: Optional[Dict[str, float]] = None
    feed_ids: Optional[List[int]] = None
    moderate_statuses: Optional[List[str]] = None
    marketplace: Optional[int] = None
    market_type_individual: bool = False
    raw_query: str = ""


@dataclass
class SearchResult:
    records: List[ProductRecord]
    total_count: int
    transliterate: bool = False
    facets: Dict[str, int] = field(default_factory=dict)
