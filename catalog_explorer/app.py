"""
FastAPI Web Application for the Catalog Explorer

Endpoints:
  POST /api/explore/build                    - Build the index (no-op if built)
  POST /api/explore/rebuild                  - Tear down and build again
  POST /api/explore/teardown                 - Release the index
  GET  /api/explore/facets                   - Facets available for drill-down
  GET  /api/explore/facets/{facet}/values    - Distinct values of one facet
  GET  /api/explore/records                  - Matching records
  GET  /api/explore/records/{record_id}      - Content path of one record

Filters are passed as repeated ``filter`` query parameters of the form
``<facet key>:<rank>`` or ``<facet key>:unknown``, e.g.
``?filter=genre:3&filter=region:unknown``.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from loguru import logger

from .config import ExploreConfig
from .errors import InvalidFilterError, RecordNotFoundError
from .explorer import Explorer
from .models import Facet, FacetFilter, facet_from_key


# ---------------------------------------------------------------------------
# Filter parsing
# ---------------------------------------------------------------------------

def parse_facet(key: str) -> Facet:
    facet = facet_from_key(key)
    if facet is None:
        raise InvalidFilterError(f"Unknown facet '{key}'")
    return facet


def parse_filter(text: str) -> FacetFilter:
    """'genre:3' -> FacetFilter(GENRE, 3); 'genre:unknown' -> unknown bucket."""
    key, sep, value = text.partition(":")
    if not sep:
        raise InvalidFilterError(f"Malformed filter '{text}', expected <facet>:<rank>")
    facet = parse_facet(key)
    value = value.strip().lower()
    if value in ("unknown", "null", ""):
        return FacetFilter(facet=facet, rank=None)
    if not (value.isascii() and value.isdigit()):
        raise InvalidFilterError(f"Malformed rank '{value}' in filter '{text}'")
    return FacetFilter(facet=facet, rank=int(value))


def parse_filters(filters: Optional[List[str]]) -> List[FacetFilter]:
    return [parse_filter(f) for f in filters or []]


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(explorer: Optional[Explorer] = None, build_on_startup: bool = True) -> FastAPI:
    if explorer is None:
        explorer = ExploreConfig.from_env().create_explorer()

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        if build_on_startup:
            stats = explorer.build()
            logger.info(f"Catalog Explorer ready. {stats.records} records indexed.")
        yield
        explorer.teardown()

    app = FastAPI(title="Catalog Explorer", lifespan=lifespan)
    app.state.explorer = explorer

    # --- Lifecycle ---

    @app.post("/api/explore/build")
    async def build():
        return JSONResponse(explorer.build().model_dump(mode="json"))

    @app.post("/api/explore/rebuild")
    async def rebuild():
        return JSONResponse(explorer.rebuild().model_dump(mode="json"))

    @app.post("/api/explore/teardown")
    async def teardown():
        explorer.teardown()
        return {"success": True}

    # --- Queries ---

    @app.get("/api/explore/facets")
    async def facets(filter: Optional[List[str]] = Query(None)):
        try:
            active = parse_filters(filter)
        except InvalidFilterError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return JSONResponse([s.model_dump(mode="json") for s in explorer.list_facets(active)])

    @app.get("/api/explore/facets/{facet}/values")
    async def facet_values(
        facet: str,
        filter: Optional[List[str]] = Query(None),
        search: Optional[str] = None,
    ):
        try:
            listing = explorer.list_values(parse_facet(facet), parse_filters(filter), search)
        except InvalidFilterError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return JSONResponse(listing.model_dump(mode="json"))

    @app.get("/api/explore/records")
    async def records(
        filter: Optional[List[str]] = Query(None),
        search: Optional[str] = None,
    ):
        try:
            listing = explorer.list_records(parse_filters(filter), search)
        except InvalidFilterError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return JSONResponse(listing.model_dump(mode="json"))

    @app.get("/api/explore/records/{record_id}")
    async def record(record_id: int):
        try:
            resolved = explorer.resolve_record(record_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return JSONResponse(resolved.model_dump(mode="json"))

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    config = ExploreConfig.from_env()
    config.configure_logging()
    logger.info(f"Starting Catalog Explorer on port {config.port}")
    uvicorn.run(
        create_app(config.create_explorer()),
        host="0.0.0.0",
        port=config.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
