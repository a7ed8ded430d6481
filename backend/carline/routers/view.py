"""Graph view endpoints: server-side layouts of the current catalog graph."""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import HTMLResponse

from carline.models.graph_models import EntitySummary, Layer, LayoutNotFound, PositionedGraph, RelevanceResponse
from carline.services.catalog_store import get_catalog
from carline.services.graph_builder import build_graph_from_snapshot, node_id as make_node_id
from carline.services.graph_index import GraphIndex
from carline.services.layout_engine import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    layout_global,
    layout_single_entity_table,
    layout_single_entity_tree,
)
from carline.services.relevance import apply_highlight, compute_relevance
from carline.services.rendering import build_echarts_option, render_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/view", tags=["view"])

OutputFormat = Literal["graph", "echarts"]


def _current_index() -> GraphIndex:
    return GraphIndex(build_graph_from_snapshot(get_catalog().graph_snapshot()))


def _model_node(model_id: int) -> str:
    return make_node_id(Layer.MODEL, model_id)


@router.get("/global", response_model=None)
async def global_view(
    width: float = Query(DEFAULT_WIDTH, gt=0),
    height: float = Query(DEFAULT_HEIGHT, gt=0),
    format: OutputFormat = "graph",
) -> PositionedGraph | dict:
    """Whole graph in the three-band layered layout."""
    positioned = layout_global(_current_index(), width, height)
    return build_echarts_option(positioned) if format == "echarts" else positioned


@router.get("/relevance/{node_id}", response_model=None)
async def relevance_view(
    node_id: str,
    width: float = Query(DEFAULT_WIDTH, gt=0),
    height: float = Query(DEFAULT_HEIGHT, gt=0),
    format: OutputFormat = "graph",
) -> RelevanceResponse | dict:
    """Global layout with the neighbourhood of ``node_id`` emphasised."""
    index = _current_index()
    if node_id not in index.node_by_id:
        raise HTTPException(status_code=404, detail=f"Node {node_id} not found")
    relevance = compute_relevance(index, node_id)
    graph = apply_highlight(layout_global(index, width, height), relevance)
    if format == "echarts":
        return build_echarts_option(graph)
    return RelevanceResponse(
        node_id=node_id,
        related_nodes=sorted(relevance.related_nodes),
        related_edges=sorted(relevance.related_edges),
        graph=graph,
    )


@router.get("/tree/{model_id}", response_model=None)
async def tree_view(
    model_id: int,
    width: float = Query(DEFAULT_WIDTH, gt=0),
    height: float = Query(DEFAULT_HEIGHT, gt=0),
    format: OutputFormat = "graph",
) -> PositionedGraph | dict:
    """Series -> model -> technologies tree for one model."""
    result = layout_single_entity_tree(_current_index(), _model_node(model_id), width, height)
    if isinstance(result, LayoutNotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    return build_echarts_option(result) if format == "echarts" else result


@router.get("/table/{model_id}", response_model=EntitySummary)
async def table_view(model_id: int) -> EntitySummary:
    """Structured summary of one model, its series and technologies."""
    catalog = get_catalog()
    result = layout_single_entity_table(
        _current_index(),
        _model_node(model_id),
        catalog.get_model(model_id),
        catalog.list_series(),
    )
    if isinstance(result, LayoutNotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    return result


@router.get("/page", response_class=HTMLResponse)
async def graph_page(
    width: float = Query(DEFAULT_WIDTH, gt=0),
    height: float = Query(DEFAULT_HEIGHT, gt=0),
    highlight: str | None = None,
) -> HTMLResponse:
    """Standalone HTML page with the interactive global graph."""
    index = _current_index()
    positioned = layout_global(index, width, height)
    if highlight and highlight in index.node_by_id:
        positioned = apply_highlight(positioned, compute_relevance(index, highlight))
    return HTMLResponse(render_page(build_echarts_option(positioned)))
