"""Selection relevance: which nodes and edges to emphasize for a click.

Rules by layer of the clicked node:

- every layer: the node itself, each neighbour (either direction) and the
  connecting edge;
- series: additionally each technology equipped by the series' models, with
  the ``equipped_with`` edges;
- technology: additionally the series owning each model that carries the
  technology, with the ``belongs_to`` edges;
- model: neighbours only.

Edge keys are ``(source, target)`` exactly as stored.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from carline.models.graph_models import Graph, Layer, PositionedGraph, RelationKind
from carline.services.graph_index import GraphIndex, ensure_index

logger = logging.getLogger(__name__)

EdgeKey = tuple[str, str]

DIM_NODE_OPACITY = 0.2
DIM_EDGE_OPACITY = 0.1
RELATED_EDGE_OPACITY = 0.9


class Relevance(BaseModel):
    model_config = ConfigDict(frozen=True)

    related_nodes: frozenset[str] = frozenset()
    related_edges: frozenset[EdgeKey] = frozenset()


def compute_relevance(graph: Graph | GraphIndex, clicked_node_id: str) -> Relevance:
    index = ensure_index(graph)
    nodes: set[str] = {clicked_node_id}
    edges: set[EdgeKey] = set()

    clicked = index.node_by_id.get(clicked_node_id)
    if clicked is None:
        logger.debug("Relevance requested for unknown node %s", clicked_node_id)
        return Relevance(related_nodes=frozenset(nodes), related_edges=frozenset(edges))

    for edge in index.incident_edges(clicked_node_id):
        nodes.add(edge.source)
        nodes.add(edge.target)
        edges.add(edge.key)

    if clicked.layer == Layer.SERIES:
        for model_id in index.children_of(clicked_node_id, RelationKind.BELONGS_TO):
            for tech_id in index.children_of(model_id, RelationKind.EQUIPPED_WITH):
                nodes.add(tech_id)
                edges.add((model_id, tech_id))

    elif clicked.layer == Layer.TECHNOLOGY:
        for model_id in index.parents_of(clicked_node_id, RelationKind.EQUIPPED_WITH):
            for series_id in index.parents_of(model_id, RelationKind.BELONGS_TO):
                nodes.add(series_id)
                edges.add((series_id, model_id))

    return Relevance(related_nodes=frozenset(nodes), related_edges=frozenset(edges))


def apply_highlight(positioned: PositionedGraph, relevance: Relevance) -> PositionedGraph:
    """Return a restyled copy: related items emphasized, the rest dimmed.

    Coordinates and membership are untouched so toggling a highlight never
    moves or hides a node.
    """
    nodes = []
    for node in positioned.nodes:
        related = node.id in relevance.related_nodes
        nodes.append(node.model_copy(update={
            "opacity": 1.0 if related else DIM_NODE_OPACITY,
            "border_width": 3 if related else 1,
            "show_label": related or node.layer != Layer.MODEL,
            "bold_label": related,
        }))

    edges = []
    for edge in positioned.edges:
        related = (edge.source, edge.target) in relevance.related_edges
        edges.append(edge.model_copy(update={
            "opacity": RELATED_EDGE_OPACITY if related else DIM_EDGE_OPACITY,
            "width": 2 if related else 1,
        }))

    return positioned.model_copy(update={"nodes": nodes, "edges": edges})
