"""Entry point for the FastAPI-powered series tracker."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
from fastapi import FastAPI, Form, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from .config import settings
from .errors import DuplicateExternalIDError, ExternalUnavailableError, RecordNotFoundError
from .models import calculate_stats
from .services.catalog_store import CatalogStore
from .services.enrichment import CoverEnricher
from .services.images import ImageFetcher, build_image_client
from .services.omdb import OMDbClient
from .services.report import ReportRenderer
from .services.snapshot import SnapshotFile
from .web import PageContext, render_index_page, render_poster_page

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    metadata_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.metadata_timeout_seconds, connect=5.0)
        )
    )
    image_http_client = exit_stack.enter_context(
        build_image_client(settings.image_timeout_seconds)
    )

    if not settings.has_usable_api_key:
        logger.warning(
            "No OMDb API key configured; set OMDB_API_KEY to enable lookups"
        )

    store = CatalogStore(SnapshotFile(settings.data_file))
    store.load()
    metadata_client = OMDbClient(settings, metadata_http_client)
    enricher = CoverEnricher(store, metadata_client)
    renderer = ReportRenderer(
        ImageFetcher(image_http_client),
        items_per_page=settings.report_items_per_page,
    )

    fastapi_app.state.catalog_store = store
    fastapi_app.state.metadata_client = metadata_client
    fastapi_app.state.cover_enricher = enricher
    fastapi_app.state.report_renderer = renderer

    if settings.enrich_on_startup:
        await enricher.run()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Personal TV series tracker backed by OMDb metadata",
        version="1.0.0",
        lifespan=lifespan,
    )
    register_routes(fastapi_app)
    return fastapi_app


def get_catalog_store(app: FastAPI) -> CatalogStore:
    store = getattr(app.state, "catalog_store", None)
    if not isinstance(store, CatalogStore):
        raise RuntimeError("Catalog store not initialised")
    return store


def get_metadata_client(app: FastAPI) -> OMDbClient:
    client = getattr(app.state, "metadata_client", None)
    if not isinstance(client, OMDbClient):
        raise RuntimeError("Metadata client not initialised")
    return client


def get_cover_enricher(app: FastAPI) -> CoverEnricher:
    enricher = getattr(app.state, "cover_enricher", None)
    if not isinstance(enricher, CoverEnricher):
        raise RuntimeError("Cover enricher not initialised")
    return enricher


def get_report_renderer(app: FastAPI) -> ReportRenderer:
    renderer = getattr(app.state, "report_renderer", None)
    if not isinstance(renderer, ReportRenderer):
        raise RuntimeError("Report renderer not initialised")
    return renderer


def register_routes(fastapi_app: FastAPI) -> None:
    async def _page_context(**extra: object) -> PageContext:
        store = get_catalog_store(fastapi_app)
        records = store.list_records()
        api_available = await get_metadata_client(fastapi_app).ping()
        return PageContext(
            records=records,
            stats=calculate_stats(records),
            api_available=api_available,
            **extra,
        )

    async def _save(store: CatalogStore) -> None:
        if not await asyncio.to_thread(store.save):
            logger.warning("Catalog change kept in memory only; snapshot write failed")

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        context = await _page_context()
        return HTMLResponse(render_index_page(settings, context))

    @fastapi_app.get("/mylist", response_class=HTMLResponse)
    async def my_list() -> HTMLResponse:
        context = await _page_context()
        return HTMLResponse(render_poster_page(settings, context))

    @fastapi_app.post("/add", response_class=HTMLResponse)
    async def add_series(identifier: str = Form("")) -> HTMLResponse:
        identifier = identifier.strip()
        if not identifier:
            raise HTTPException(status_code=400, detail="Identifier required")

        store = get_catalog_store(fastapi_app)
        metadata_client = get_metadata_client(fastapi_app)
        try:
            metadata = await metadata_client.lookup(identifier)
        except ExternalUnavailableError as exc:
            context = await _page_context(error_message=f"Could not add series: {exc}")
            return HTMLResponse(render_index_page(settings, context))

        record = metadata.to_record(episodes_per_season=settings.episodes_per_season)
        try:
            store.add(record)
        except DuplicateExternalIDError:
            context = await _page_context(
                error_message="This series is already in your library"
            )
            return HTMLResponse(render_index_page(settings, context))

        await _save(store)
        context = await _page_context(
            success_message=f"'{metadata.title}' added to your library"
        )
        return HTMLResponse(render_index_page(settings, context))

    @fastapi_app.post("/update")
    async def update_series(
        id: str = Form(""), episodes: str = Form("")
    ) -> RedirectResponse:
        record_id = _parse_int(id, "Invalid ID")
        episodes_watched = _parse_int(episodes, "Invalid episodes number")

        store = get_catalog_store(fastapi_app)
        try:
            store.update(record_id, episodes_watched)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Series not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        await _save(store)
        return RedirectResponse(url="/", status_code=303)

    @fastapi_app.post("/delete")
    async def delete_series(id: str = Form("")) -> RedirectResponse:
        record_id = _parse_int(id, "Invalid ID")

        store = get_catalog_store(fastapi_app)
        store.delete(record_id)
        await _save(store)
        return RedirectResponse(url="/", status_code=303)

    @fastapi_app.get("/search", response_model=None)
    async def search(q: str = "") -> HTMLResponse | RedirectResponse:
        query = q.strip()
        if not query:
            return RedirectResponse(url="/", status_code=303)

        metadata_client = get_metadata_client(fastapi_app)
        try:
            results = await metadata_client.search(query)
        except ExternalUnavailableError as exc:
            context = await _page_context(
                search_query=query, error_message=f"Search failed: {exc}"
            )
            return HTMLResponse(render_index_page(settings, context))

        series_results = [item for item in results if item.type == "series"]
        error_message = ""
        if not series_results and results:
            error_message = "No series found (only movies or other types)"
        elif not series_results:
            error_message = "No results found"

        context = await _page_context(
            search_results=series_results,
            search_query=query,
            error_message=error_message,
        )
        return HTMLResponse(render_index_page(settings, context))

    @fastapi_app.get("/api/series")
    async def list_series() -> JSONResponse:
        store = get_catalog_store(fastapi_app)
        return JSONResponse([record.to_payload() for record in store.list_records()])

    @fastapi_app.get("/api/stats")
    async def catalog_stats() -> dict[str, int]:
        stats = get_catalog_store(fastapi_app).stats()
        return {"total": stats.total, "fully_watched": stats.fully_watched}

    @fastapi_app.post("/api/enrich")
    async def enrich_covers() -> dict[str, int]:
        updated = await get_cover_enricher(fastapi_app).run()
        return {"updated": updated}

    @fastapi_app.get("/pdf")
    async def export_pdf() -> Response:
        records = get_catalog_store(fastapi_app).list_records()
        renderer = get_report_renderer(fastapi_app)
        report = await asyncio.to_thread(renderer.render, records)
        return Response(
            content=report.content,
            media_type="application/pdf",
            headers={"Content-Disposition": "attachment; filename=mylist.pdf"},
        )


def _parse_int(value: str, detail: str) -> int:
    try:
        return int(value.strip())
    except (AttributeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=detail) from exc


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
