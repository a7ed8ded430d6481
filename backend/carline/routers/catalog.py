"""Data Service endpoints: entity lists, graph snapshot and writes."""

import logging

from fastapi import APIRouter, HTTPException, Request

from carline.models.catalog_models import (
    AddModelRequest,
    AddTechRequest,
    CatalogStats,
    ModelListResponse,
    ModelResponse,
    SeriesListResponse,
    TechListResponse,
    WriteResult,
)
from carline.models.graph_models import GraphSnapshotResponse
from carline.rate_limit import limiter, write_limit
from carline.services.catalog_store import get_catalog, get_data_file, persist_enabled
from carline.services.errors import CatalogConstraintError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


def _persist() -> None:
    if not persist_enabled():
        return
    path = get_data_file()
    try:
        get_catalog().save(path)
    except OSError:
        logger.exception("Failed to save catalog to %s", path)
        raise HTTPException(status_code=500, detail="Change applied but the catalog file could not be saved")


@router.get("/series", response_model=SeriesListResponse)
async def list_series() -> SeriesListResponse:
    return SeriesListResponse(data=get_catalog().list_series())


@router.get("/techs", response_model=TechListResponse)
async def list_techs() -> TechListResponse:
    return TechListResponse(data=get_catalog().list_techs())


@router.get("/models", response_model=ModelListResponse)
async def list_models(series_id: int | None = None, energy_type: str | None = None) -> ModelListResponse:
    """List models, optionally filtered by series and energy type, cheapest first."""
    return ModelListResponse(data=get_catalog().list_models(series_id=series_id, energy_type=energy_type))


@router.get("/model", response_model=ModelResponse)
async def get_model(id: int) -> ModelResponse:
    model = get_catalog().get_model(id)
    if model is None:
        raise HTTPException(status_code=404, detail="Model not found")
    return ModelResponse(data=model)


@router.get("/search", response_model=ModelListResponse)
async def search_models(q: str = "") -> ModelListResponse:
    """Match models by model, series or technology name."""
    keyword = q.strip()
    if not keyword:
        raise HTTPException(status_code=400, detail="Search keyword is empty")
    return ModelListResponse(data=get_catalog().search_models(keyword))


@router.get("/stats", response_model=CatalogStats)
async def catalog_stats() -> CatalogStats:
    series_count, model_count, tech_count = get_catalog().stats()
    return CatalogStats(series_count=series_count, model_count=model_count, tech_count=tech_count)


@router.get("/graph", response_model=GraphSnapshotResponse)
async def graph_snapshot() -> GraphSnapshotResponse:
    """Three-layer graph: series -> models -> technologies."""
    snapshot = get_catalog().graph_snapshot()
    return GraphSnapshotResponse(nodes=snapshot.nodes, links=snapshot.links)


@router.post("/model/add", response_model=WriteResult)
@limiter.limit(write_limit)
async def add_model(request: Request, body: AddModelRequest) -> WriteResult:
    try:
        model = get_catalog().add_model(body)
    except CatalogConstraintError as e:
        logger.info("Rejected model %r: %s", body.model_name, e)
        raise HTTPException(status_code=400, detail=str(e))
    _persist()
    return WriteResult(ok=True, message="Model added", model_id=model.model_id)


@router.post("/tech/add", response_model=WriteResult)
@limiter.limit(write_limit)
async def add_tech(request: Request, body: AddTechRequest) -> WriteResult:
    try:
        tech = get_catalog().add_tech(body.tech_name, body.intro)
    except CatalogConstraintError as e:
        logger.info("Rejected tech %r: %s", body.tech_name, e)
        raise HTTPException(status_code=400, detail=str(e))
    _persist()
    return WriteResult(ok=True, message="Technology added", tech_id=tech.tech_id)
