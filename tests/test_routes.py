"""HTTP surface tests for the catalog server."""

from __future__ import annotations

import asyncio
import random

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.main import create_app, register_routes
from app.services.catalog import CatalogCache, CatalogService
from app.store import RecordStore
from conftest import build_settings, film


@pytest.fixture
def service(tmp_path) -> CatalogService:
    settings = build_settings(tmp_path, PAGE_SIZE=10, SERVE_ENRICHMENT=True)
    store = RecordStore(settings.collection_paths)

    async def seed() -> None:
        await store.save(
            "recent",
            [film("tt0000001", 100, poster="https://example.com/own.jpg"), film("unknown__film_x_", 0)],
        )
        await store.save("short", [film(f"tt10000{index:02d}", 90) for index in range(25)])
        await store.save("long", [film("tt2000000", 150)])
        await store.reload()

    asyncio.run(seed())
    cache = CatalogCache(store, rng=random.Random(4))
    return CatalogService(settings, store, cache)


@pytest.fixture
def client(service: CatalogService) -> TestClient:
    app = FastAPI()
    register_routes(app)
    app.state.catalog_service = service
    with TestClient(app) as test_client:
        yield test_client


def test_manifest_lists_skip_extra(client: TestClient) -> None:
    response = client.get("/short/manifest.json")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    payload = response.json()
    assert payload["id"] == "com.letterstream.short"
    assert payload["resources"] == ["catalog"]
    assert payload["types"] == ["movie"]
    assert payload["catalogs"][0]["id"] == "letterstream_short"
    assert payload["catalogs"][0]["extra"] == [{"name": "skip", "isRequired": False}]


def test_unknown_namespace_returns_404(client: TestClient) -> None:
    assert client.get("/medium/manifest.json").status_code == 404
    assert client.get("/short/catalog/movie/letterstream_long.json").status_code == 404
    assert client.get("/short/catalog/series/letterstream_short.json").status_code == 404


def test_catalog_pages_cover_collection_once(client: TestClient) -> None:
    seen: list[str] = []
    for skip in (0, 10, 20):
        response = client.get(f"/short/catalog/movie/letterstream_short/skip={skip}.json")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        seen.extend(meta["id"] for meta in response.json()["metas"])

    assert len(seen) == 25
    assert sorted(seen) == sorted(f"tt10000{index:02d}" for index in range(25))


def test_first_page_matches_across_route_variants(client: TestClient) -> None:
    plain = client.get("/short/catalog/movie/letterstream_short.json").json()
    path_extra = client.get("/short/catalog/movie/letterstream_short/skip=0.json").json()
    query = client.get("/short/catalog/movie/letterstream_short", params={"skip": "0"}).json()

    assert plain == path_extra == query
    assert len(plain["metas"]) == 10


def test_query_skip_variant_pages(client: TestClient) -> None:
    first = client.get("/short/catalog/movie/letterstream_short.json").json()["metas"]
    second = client.get("/short/catalog/movie/letterstream_short", params={"skip": "10"}).json()["metas"]

    assert len(second) == 10
    assert {meta["id"] for meta in first}.isdisjoint(meta["id"] for meta in second)


def test_pagination_boundaries(client: TestClient) -> None:
    at_end = client.get("/short/catalog/movie/letterstream_short/skip=25.json").json()
    last = client.get("/short/catalog/movie/letterstream_short/skip=24.json").json()

    assert at_end == {"metas": []}
    assert len(last["metas"]) == 1


@pytest.mark.parametrize("raw_skip", ["-5", "abc", ""])
def test_invalid_skip_treated_as_zero(client: TestClient, raw_skip: str) -> None:
    first = client.get("/short/catalog/movie/letterstream_short.json").json()
    response = client.get("/short/catalog/movie/letterstream_short", params={"skip": raw_skip})

    assert response.status_code == 200
    assert response.json() == first


def test_recent_catalog_returns_whole_window_with_artwork(client: TestClient) -> None:
    metas = client.get("/recent/catalog/movie/letterstream_recent.json").json()["metas"]

    assert [meta["id"] for meta in metas] == ["tt0000001", "unknown__film_x_"]
    assert metas[0]["poster"] == "https://example.com/own.jpg"
    assert metas[0]["logo"] == "https://images.metahub.space/logo/medium/tt0000001"
    assert "poster" not in metas[1]


def test_reload_picks_up_new_films(client: TestClient, service: CatalogService, tmp_path) -> None:
    asyncio.run(service._store.save("long", [film("tt2000000", 150), film("tt2000001", 170)]))

    before = client.get("/long/catalog/movie/letterstream_long.json").json()["metas"]
    response = client.post("/reload")
    after = client.get("/long/catalog/movie/letterstream_long.json").json()["metas"]

    assert len(before) == 1
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["counts"] == {"recent": 2, "short": 25, "long": 2}
    assert "timestamp" in payload
    assert {meta["id"] for meta in after} == {"tt2000000", "tt2000001"}


def test_health_and_index(client: TestClient) -> None:
    health = client.get("/health")
    index = client.get("/").json()

    assert health.json()["status"] == "ok"
    assert health.headers["content-type"] == "application/json"
    assert index["status"] == "online"
    films = {addon["manifest"]: addon["films"] for addon in index["addons"]}
    assert films == {
        "http://testserver/recent/manifest.json": 2,
        "http://testserver/short/manifest.json": 25,
        "http://testserver/long/manifest.json": 1,
    }


def test_options_and_cors_headers(service: CatalogService) -> None:
    app = create_app()
    app.state.catalog_service = service
    client = TestClient(app)

    plain = client.options("/short/manifest.json")
    preflight = client.options(
        "/short/manifest.json",
        headers={"Origin": "https://tv.example", "Access-Control-Request-Method": "GET"},
    )

    assert plain.status_code == 200
    assert preflight.status_code == 200
    assert preflight.headers["access-control-allow-origin"] == "*"


def test_request_failure_does_not_break_server(service: CatalogService) -> None:
    class BrokenCache(CatalogCache):
        async def get_ordered(self, name):  # type: ignore[override]
            raise RuntimeError("boom")

    service._cache = BrokenCache(service._store)
    app = create_app()
    app.state.catalog_service = service
    client = TestClient(app, raise_server_exceptions=False)

    broken = client.get(
        "/short/catalog/movie/letterstream_short.json",
        headers={"Origin": "https://tv.example"},
    )
    healthy = client.get("/short/manifest.json")

    assert broken.status_code == 500
    assert broken.json() == {"error": "internal_error"}
    assert broken.headers["access-control-allow-origin"] == "*"
    assert healthy.status_code == 200
