"""Adjacency indices derived from a :class:`Graph`.

An index is built once per graph snapshot and only read afterwards. Child
and parent lists keep the edge order of the graph.
"""

from __future__ import annotations

from collections import defaultdict

from carline.models.graph_models import Graph, GraphEdge, GraphNode, Layer, RelationKind


class GraphIndex:
    def __init__(self, graph: Graph):
        self.graph = graph
        self.node_by_id: dict[str, GraphNode] = {n.id: n for n in graph.nodes}
        self._children: dict[RelationKind, dict[str, list[str]]] = {r: defaultdict(list) for r in RelationKind}
        self._parents: dict[RelationKind, dict[str, list[str]]] = {r: defaultdict(list) for r in RelationKind}
        self._incident: dict[str, list[GraphEdge]] = defaultdict(list)

        for edge in graph.edges:
            self._children[edge.relation][edge.source].append(edge.target)
            self._parents[edge.relation][edge.target].append(edge.source)
            self._incident[edge.source].append(edge)
            self._incident[edge.target].append(edge)

    def children_of(self, nid: str, relation: RelationKind) -> list[str]:
        return list(self._children[relation].get(nid, ()))

    def parents_of(self, nid: str, relation: RelationKind) -> list[str]:
        return list(self._parents[relation].get(nid, ()))

    def incident_edges(self, nid: str) -> list[GraphEdge]:
        """Edges touching ``nid`` in either direction, in graph order."""
        return list(self._incident.get(nid, ()))

    def nodes_in_layer(self, layer: Layer) -> list[GraphNode]:
        return [n for n in self.graph.nodes if n.layer == layer]

    def series_of(self, model_id: str) -> str | None:
        """First series the model belongs to, or None when unresolved."""
        parents = self._parents[RelationKind.BELONGS_TO].get(model_id)
        return parents[0] if parents else None

    def techs_of(self, model_id: str) -> list[str]:
        return self.children_of(model_id, RelationKind.EQUIPPED_WITH)


def ensure_index(graph_or_index: Graph | GraphIndex) -> GraphIndex:
    if isinstance(graph_or_index, GraphIndex):
        return graph_or_index
    return GraphIndex(graph_or_index)
