"""Entry point for the FastAPI-powered Stremio add-ons."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qsl

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .config import settings
from .services.catalog import CatalogCache, CatalogService
from .services.tmdb import TMDBClient
from .store import RecordStore
from .utils import parse_skip

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    store = RecordStore(settings.collection_paths)
    cache = CatalogCache(store, shuffle_interval=settings.shuffle_interval_seconds)
    catalog_service = CatalogService(
        settings, store, cache, TMDBClient(settings, tmdb_http_client)
    )

    fastapi_app.state.catalog_service = catalog_service
    await catalog_service.start()
    counts = store.snapshot.counts()
    logger.info(
        "%s serving recent=%s short=%s long=%s (base URL %s)",
        settings.app_name,
        counts["recent"],
        counts["short"],
        counts["long"],
        settings.base_url or "auto",
    )

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await catalog_service.stop()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Letterboxd ratings served as shuffled Stremio catalogs",
        version="1.0.1",
        lifespan=lifespan,
        default_response_class=JSONResponse,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_catalog_service(app: FastAPI) -> CatalogService:
    service = getattr(app.state, "catalog_service", None)
    if not isinstance(service, CatalogService):
        raise RuntimeError("Catalog service not initialised")
    return service


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Request %s %s failed: %s", request.method, request.url.path, exc)
        # Served outside the CORS middleware, so the header is set here.
        return JSONResponse(
            {"error": "internal_error"},
            status_code=500,
            headers={"Access-Control-Allow-Origin": "*"},
        )

    async def _catalog_endpoint(
        namespace: str,
        content_type: str,
        catalog_id: str,
        skip: object,
    ) -> JSONResponse:
        service = get_catalog_service(fastapi_app)
        try:
            payload = await service.catalog_page(
                namespace, content_type, catalog_id, parse_skip(skip)
            )
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return JSONResponse(payload)

    @fastapi_app.get("/")
    async def index(request: Request) -> dict[str, Any]:
        service = get_catalog_service(fastapi_app)
        base_url = settings.base_url or str(request.base_url)
        return service.describe(base_url)

    @fastapi_app.get("/health")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok", "timestamp": _timestamp()}

    @fastapi_app.post("/reload")
    async def reload_collections() -> dict[str, Any]:
        service = get_catalog_service(fastapi_app)
        counts = await service.reload()
        logger.info("Collections reloaded on request: %s", counts)
        return {"success": True, "timestamp": _timestamp(), "counts": counts}

    @fastapi_app.options("/{path:path}")
    async def preflight(path: str) -> Response:
        return Response(status_code=200)

    @fastapi_app.get("/{namespace}/manifest.json")
    async def manifest(namespace: str) -> dict[str, Any]:
        service = get_catalog_service(fastapi_app)
        try:
            return service.manifest(namespace)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @fastapi_app.get("/{namespace}/catalog/{content_type}/{catalog_id}.json")
    async def catalog(
        request: Request, namespace: str, content_type: str, catalog_id: str
    ) -> JSONResponse:
        return await _catalog_endpoint(
            namespace, content_type, catalog_id, request.query_params.get("skip")
        )

    @fastapi_app.get("/{namespace}/catalog/{content_type}/{catalog_id}/{extra}.json")
    async def catalog_with_extra(
        request: Request,
        namespace: str,
        content_type: str,
        catalog_id: str,
        extra: str,
    ) -> JSONResponse:
        extras = dict(parse_qsl(extra, keep_blank_values=True))
        skip = extras.get("skip", request.query_params.get("skip"))
        return await _catalog_endpoint(namespace, content_type, catalog_id, skip)

    @fastapi_app.get("/{namespace}/catalog/{content_type}/{catalog_id}")
    async def catalog_with_query(
        request: Request, namespace: str, content_type: str, catalog_id: str
    ) -> JSONResponse:
        return await _catalog_endpoint(
            namespace,
            content_type,
            catalog_id.removesuffix(".json"),
            request.query_params.get("skip"),
        )


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
