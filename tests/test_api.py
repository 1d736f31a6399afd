"""Tests for the HTTP adapter."""

from fastapi.testclient import TestClient

from cardsearch import main
from cardsearch.cache import InMemoryCache
from cardsearch.main import build_orchestrator, create_app
from cardsearch.models import CategoryCandidate, SearchResult
from cardsearch.search import SearchOrchestrator

from conftest import FakeBackend, FakeHierarchy, FakeResolutionService, FakeStore, empty_result, make_record


def make_client(backend, store=None):
    orchestrator = SearchOrchestrator(
        backend=backend,
        store=store or FakeStore(links={1: "/p/1"}),
        resolution_service=FakeResolutionService(candidates=[3]),
        hierarchy=FakeHierarchy(),
    )
    return TestClient(create_app(orchestrator))


def test_search_returns_payload_and_total():
    """A successful search returns cards with the total count."""

    backend = FakeBackend(results=[SearchResult(records=[make_record(1, 3)], total_count=8)])
    response = make_client(backend).get("/search", params={"query": "phone", "lang": "EN"})

    assert response.status_code == 200
    body = response.json()
    assert body["totalCount"] == 8
    assert body["queryEcho"] == "phone"
    assert body["productCards"][0]["link"] == "/p/1"
    assert backend.queries[0].lang == "En"


def test_autocomplete_response_has_null_facets():
    """Autocomplete mode nulls the facet fields in JSON."""

    backend = FakeBackend(results=[SearchResult(records=[make_record(1, 3)], total_count=1)])
    body = make_client(backend).get("/search", params={"query": "pho", "isAutocomplete": "true"}).json()

    assert body["categoryFacets"] is None
    assert body["productProperties"] is None
    assert body["categoryProperties"] is None


def test_no_results_maps_to_404():
    """An empty search is reported with status 404."""

    response = make_client(FakeBackend(results=[empty_result()])).get("/search", params={"query": "zzz"})

    assert response.status_code == 404
    assert response.json() == {"detail": "No search products result"}


def test_missing_orchestrator_is_503():
    """Requests fail cleanly until an orchestrator is configured."""

    response = TestClient(create_app()).get("/search", params={"query": "phone"})

    assert response.status_code == 503


def test_non_positive_category_is_rejected():
    """Category ids must be positive."""

    response = make_client(FakeBackend()).get("/search", params={"query": "phone", "category": 0})

    assert response.status_code == 422


class FakeES:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def search(self, index, body):
        self.calls.append(body)
        return self.response


def test_built_orchestrator_serves_search_from_elasticsearch():
    """The wired Elasticsearch backend and cache answer a full search."""

    es = FakeES(
        {
            "hits": {
                "total": {"value": 1},
                "hits": [{"_source": {"productId": 1, "productCardId": 10, "categoryId": 3, "name": "Phone"}}],
            },
            "aggregations": {"categories": {"buckets": [{"key": 3, "doc_count": 1}]}},
        }
    )
    cache = InMemoryCache()
    orchestrator = build_orchestrator(
        FakeStore(categories=[CategoryCandidate(id=3, name="Phones")], links={1: "/p/1"}),
        FakeResolutionService(candidates=[3]),
        FakeHierarchy(),
        es=es,
        cache=cache,
    )

    body = TestClient(create_app(orchestrator)).get("/search", params={"query": "phone"}).json()

    assert body["totalCount"] == 1
    assert body["productCards"][0]["link"] == "/p/1"
    assert [category["id"] for category in body["categoryFacets"]] == [3]
    assert len(es.calls) == 2
    assert orchestrator.category_cache.backend is cache


def test_build_orchestrator_defaults_to_shared_clients(monkeypatch):
    """Without explicit clients the process-wide ones are used."""

    es = FakeES({})
    cache = InMemoryCache()
    monkeypatch.setattr(main, "get_client", lambda: es)
    monkeypatch.setattr(main, "get_cache", lambda: cache)

    orchestrator = build_orchestrator(FakeStore(), FakeResolutionService(), FakeHierarchy())

    assert orchestrator.backend.es is es
    assert orchestrator.category_cache.backend is cache
