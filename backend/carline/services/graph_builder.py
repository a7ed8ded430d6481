"""Build the in-memory relationship graph from Data Service payloads.

Output ordering is part of the contract: nodes and edges keep the order in
which they arrived (after invalid entries are filtered out). The layout
engine places nodes left-to-right in that order, so re-sorting here would
change every rendered coordinate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from carline.models.graph_models import (
    Graph,
    GraphEdge,
    GraphNode,
    GraphSnapshot,
    Layer,
    RelationKind,
    SnapshotLink,
    SnapshotNode,
)
from carline.services.errors import MalformedGraphSnapshotError

logger = logging.getLogger(__name__)

LAYER_PREFIXES: dict[Layer, str] = {
    Layer.SERIES: "s_",
    Layer.MODEL: "m_",
    Layer.TECHNOLOGY: "t_",
}

# relation -> (source layer, target layer)
RELATION_LAYERS: dict[RelationKind, tuple[Layer, Layer]] = {
    RelationKind.BELONGS_TO: (Layer.SERIES, Layer.MODEL),
    RelationKind.EQUIPPED_WITH: (Layer.MODEL, Layer.TECHNOLOGY),
}


def node_id(layer: Layer, key: int) -> str:
    """Return the layer-prefixed id for a source key (``Layer.MODEL, 3`` -> ``m_3``)."""
    return f"{LAYER_PREFIXES[Layer(layer)]}{key}"


def parse_node_id(nid: str) -> tuple[Layer, int]:
    """Split a node id into its layer and numeric key.

    Raises:
        ValueError: unknown prefix or non-integer key.
    """
    for layer, prefix in LAYER_PREFIXES.items():
        if nid.startswith(prefix):
            return layer, int(nid[len(prefix):])
    raise ValueError(f"Unknown node id prefix: {nid!r}")


def _prefix_matches(nid: str, layer: Layer) -> bool:
    try:
        parsed_layer, _ = parse_node_id(nid)
    except ValueError:
        return False
    return parsed_layer == layer


def parse_graph_snapshot(payload: Any) -> GraphSnapshot:
    """Validate a graph payload, accepting the bare or ``data``-wrapped form.

    Both ``{"ok": true, "nodes": [...], "links": [...]}`` and
    ``{"ok": true, "data": {"nodes": [...], "links": [...]}}`` are accepted.
    """
    if not isinstance(payload, Mapping):
        raise MalformedGraphSnapshotError("Graph payload is not an object")
    if payload.get("ok") is False:
        raise MalformedGraphSnapshotError(payload.get("message") or "Data Service reported failure")

    body = payload
    if ("nodes" not in body or "links" not in body) and isinstance(payload.get("data"), Mapping):
        body = payload["data"]
    if "nodes" not in body or "links" not in body:
        raise MalformedGraphSnapshotError("Graph payload is missing nodes or links")

    try:
        return GraphSnapshot.model_validate({"nodes": body["nodes"], "links": body["links"]})
    except ValidationError as e:
        raise MalformedGraphSnapshotError(f"Graph payload failed validation: {e.error_count()} error(s)") from e


def build_graph(
    raw_nodes: Iterable[SnapshotNode | Mapping[str, Any]],
    raw_edges: Iterable[SnapshotLink | Mapping[str, Any]],
) -> Graph:
    """Convert flat node/link lists into a validated :class:`Graph`.

    Nodes whose id prefix disagrees with their layer, and repeated node ids,
    are dropped. Edges with a missing endpoint, or whose relation does not
    connect the expected layers, are dropped. Drops are counted on the
    returned graph rather than raised.
    """
    nodes: list[GraphNode] = []
    by_id: dict[str, GraphNode] = {}
    dropped_nodes = 0

    for raw in raw_nodes:
        item = raw if isinstance(raw, SnapshotNode) else SnapshotNode.model_validate(raw)
        if item.id in by_id:
            logger.debug("Dropping duplicate node %s", item.id)
            dropped_nodes += 1
            continue
        if not _prefix_matches(item.id, item.layer):
            logger.debug("Dropping node %s: id prefix does not match layer %s", item.id, item.layer.name)
            dropped_nodes += 1
            continue
        node = GraphNode(id=item.id, name=item.name, layer=item.layer, series_id=item.series_id)
        by_id[node.id] = node
        nodes.append(node)

    edges: list[GraphEdge] = []
    seen: set[tuple[str, str]] = set()
    dropped_edges = 0

    for raw in raw_edges:
        link = raw if isinstance(raw, SnapshotLink) else SnapshotLink.model_validate(raw)
        source = by_id.get(link.source)
        target = by_id.get(link.target)
        if source is None or target is None:
            logger.debug("Dropping dangling edge %s -> %s", link.source, link.target)
            dropped_edges += 1
            continue
        if (source.layer, target.layer) != RELATION_LAYERS[link.relation]:
            logger.debug(
                "Dropping edge %s -> %s: %s cannot connect %s to %s",
                link.source, link.target, link.relation.value, source.layer.name, target.layer.name,
            )
            dropped_edges += 1
            continue
        key = (link.source, link.target)
        if key in seen:
            continue
        seen.add(key)
        edges.append(GraphEdge(source=link.source, target=link.target, relation=link.relation))

    if dropped_nodes or dropped_edges:
        logger.info(
            "Graph built with %d nodes, %d edges (dropped %d nodes, %d edges)",
            len(nodes), len(edges), dropped_nodes, dropped_edges,
        )

    return Graph(
        nodes=tuple(nodes),
        edges=tuple(edges),
        dropped_nodes=dropped_nodes,
        dropped_edges=dropped_edges,
    )


def build_graph_from_snapshot(snapshot: GraphSnapshot) -> Graph:
    return build_graph(snapshot.nodes, snapshot.links)
