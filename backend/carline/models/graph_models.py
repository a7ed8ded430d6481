"""Pydantic models for the relationship graph: snapshot, graph, layout."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class Layer(IntEnum):
    SERIES = 0
    MODEL = 1
    TECHNOLOGY = 2


class RelationKind(str, Enum):
    BELONGS_TO = "belongs_to"  # series -> model
    EQUIPPED_WITH = "equipped_with"  # model -> technology


# --- Data Service snapshot shape ---


class SnapshotNode(BaseModel):
    id: str
    name: str
    layer: Layer
    series_id: int | None = None
    category: int | None = None


class SnapshotLink(BaseModel):
    source: str
    target: str
    relation: RelationKind


class GraphSnapshot(BaseModel):
    """Graph payload as served by ``/api/graph``."""

    nodes: list[SnapshotNode]
    links: list[SnapshotLink]


class GraphSnapshotResponse(GraphSnapshot):
    ok: bool = True


# --- In-memory graph ---


class GraphNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # layer prefix + numeric key, e.g. "m_12"
    name: str
    layer: Layer
    series_id: int | None = None


class GraphEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    relation: RelationKind

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.target)


class Graph(BaseModel):
    """Validated graph. Nodes and edges keep their input order."""

    model_config = ConfigDict(frozen=True)

    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()
    dropped_nodes: int = 0
    dropped_edges: int = 0


# --- Layout output ---


class PositionedNode(BaseModel):
    id: str
    name: str
    x: float
    y: float
    fixed: bool = True
    symbol_size: int
    category: int
    layer: Layer
    series_id: int | None = None
    opacity: float = 1.0
    border_width: int = 1
    show_label: bool = True
    bold_label: bool = False


class PositionedEdge(BaseModel):
    source: str
    target: str
    relation: RelationKind
    curveness: float = 0.2
    opacity: float = 0.5
    width: int = 1


class Category(BaseModel):
    name: str
    color: str


class PositionedGraph(BaseModel):
    kind: Literal["graph"] = "graph"
    nodes: list[PositionedNode]
    edges: list[PositionedEdge]
    categories: list[Category]
    title: str | None = None


class LayoutNotFound(BaseModel):
    """Layout was requested for an entity missing from the current graph."""

    kind: Literal["not_found"] = "not_found"
    reason: str


class SeriesSummary(BaseModel):
    id: str
    name: str
    intro: str = ""


class EntitySummary(BaseModel):
    """Structured (non-graph) view of one model."""

    kind: Literal["table"] = "table"
    model_id: str
    model_name: str
    price: float | None = None
    range_km: float | None = None
    energy_type: str | None = None
    body_type: str | None = None
    seats: int | None = None
    launch_year: str | None = None
    series: SeriesSummary | None = None
    techs: list[str] = []


class RelevanceResponse(BaseModel):
    node_id: str
    related_nodes: list[str]
    related_edges: list[tuple[str, str]]
    graph: PositionedGraph
