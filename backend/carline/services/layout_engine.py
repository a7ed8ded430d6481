"""Deterministic coordinates for the relationship graph.

Every entry point is a pure function of its arguments. Coordinates are
recomputed on each call and depend only on the graph's node/edge order and
the viewport size, so identical inputs always give identical output.
"""

from __future__ import annotations

import logging

from carline.models.catalog_models import CarModel, Series
from carline.models.graph_models import (
    Category,
    EntitySummary,
    Graph,
    Layer,
    LayoutNotFound,
    PositionedEdge,
    PositionedGraph,
    PositionedNode,
    RelationKind,
    SeriesSummary,
)
from carline.services.graph_builder import parse_node_id
from carline.services.graph_index import GraphIndex, ensure_index

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 350

# Horizontal bands as a fraction of viewport height: series, models, technologies
LAYER_Y_RATIOS: tuple[float, float, float] = (0.11, 0.5, 0.89)
MODEL_SPREAD_RATIO = 0.8

GLOBAL_SYMBOL_SIZES: dict[Layer, int] = {Layer.SERIES: 35, Layer.MODEL: 16, Layer.TECHNOLOGY: 25}
TREE_SYMBOL_SIZES: dict[Layer, int] = {Layer.SERIES: 40, Layer.MODEL: 50, Layer.TECHNOLOGY: 28}

TREE_TOP_Y = 50
TREE_BOTTOM_MARGIN = 60

CATEGORIES: list[Category] = [
    Category(name="Series", color="#1890ff"),
    Category(name="Model", color="#52c41a"),
    Category(name="Technology", color="#fa8c16"),
]


def _even_x(index: int, count: int, width: float) -> float:
    return width / (count + 1) * (index + 1)


def _node(node, x: float, y: float, sizes: dict[Layer, int], show_label: bool = True) -> PositionedNode:
    return PositionedNode(
        id=node.id,
        name=node.name,
        x=x,
        y=y,
        fixed=True,
        symbol_size=sizes[node.layer],
        category=int(node.layer),
        layer=node.layer,
        series_id=node.series_id,
        show_label=show_label,
    )


def layout_global(graph: Graph | GraphIndex, width: float, height: float) -> PositionedGraph:
    """Three-band layout of the whole graph.

    Series are spread evenly across the top band, technologies across the
    bottom band. Models sit on the middle band, grouped under their series;
    a model whose series cannot be resolved is centered horizontally.
    """
    index = ensure_index(graph)
    band_y = [height * r for r in LAYER_Y_RATIOS]

    series_nodes = index.nodes_in_layer(Layer.SERIES)
    model_nodes = index.nodes_in_layer(Layer.MODEL)
    tech_nodes = index.nodes_in_layer(Layer.TECHNOLOGY)

    nodes: list[PositionedNode] = []
    series_count = len(series_nodes)
    slot_width = width / (series_count + 1)

    for i, series in enumerate(series_nodes):
        nodes.append(_node(series, _even_x(i, series_count, width), band_y[Layer.SERIES], GLOBAL_SYMBOL_SIZES))

    model_x: dict[str, float] = {}
    spread = slot_width * MODEL_SPREAD_RATIO
    for i, series in enumerate(series_nodes):
        members = index.children_of(series.id, RelationKind.BELONGS_TO)
        center = _even_x(i, series_count, width)
        step = spread / max(len(members), 1)
        for j, model_id in enumerate(members):
            # A model claimed by two series keeps its first placement
            model_x.setdefault(model_id, center + (j - (len(members) - 1) / 2) * step)

    for model in model_nodes:
        x = model_x.get(model.id)
        if x is None:
            logger.debug("Model %s has no resolvable series; centering", model.id)
            x = width / 2
        nodes.append(_node(model, x, band_y[Layer.MODEL], GLOBAL_SYMBOL_SIZES, show_label=False))

    tech_count = len(tech_nodes)
    for i, tech in enumerate(tech_nodes):
        nodes.append(_node(tech, _even_x(i, tech_count, width), band_y[Layer.TECHNOLOGY], GLOBAL_SYMBOL_SIZES))

    edges = [
        PositionedEdge(source=e.source, target=e.target, relation=e.relation, curveness=0.2, opacity=0.5, width=1)
        for e in index.graph.edges
    ]
    return PositionedGraph(nodes=nodes, edges=edges, categories=list(CATEGORIES))


def layout_single_entity_tree(
    graph: Graph | GraphIndex,
    selected_model_id: str,
    width: float,
    height: float,
) -> PositionedGraph | LayoutNotFound:
    """Mini three-tier tree: owning series, the model, its technologies."""
    index = ensure_index(graph)
    model = index.node_by_id.get(selected_model_id)
    if model is None or model.layer != Layer.MODEL:
        return LayoutNotFound(reason=f"Model {selected_model_id} not found")

    series_id = index.series_of(model.id)
    series = index.node_by_id.get(series_id) if series_id else None
    if series is None:
        return LayoutNotFound(reason=f"Series for model {selected_model_id} not found")

    tech_ids = index.techs_of(model.id)
    techs = [index.node_by_id[t] for t in tech_ids]

    nodes = [
        _node(series, width / 2, TREE_TOP_Y, TREE_SYMBOL_SIZES),
        _node(model, width / 2, height / 2, TREE_SYMBOL_SIZES),
    ]
    edges = [
        PositionedEdge(
            source=series.id, target=model.id, relation=RelationKind.BELONGS_TO,
            curveness=0, opacity=1.0, width=3,
        )
    ]
    for i, tech in enumerate(techs):
        nodes.append(_node(tech, _even_x(i, len(techs), width), height - TREE_BOTTOM_MARGIN, TREE_SYMBOL_SIZES))
        edges.append(
            PositionedEdge(
                source=model.id, target=tech.id, relation=RelationKind.EQUIPPED_WITH,
                curveness=0.2, opacity=1.0, width=2,
            )
        )

    return PositionedGraph(
        nodes=nodes,
        edges=edges,
        categories=list(CATEGORIES),
        title=f"{model.name} relation tree",
    )


def layout_single_entity_table(
    graph: Graph | GraphIndex,
    selected_model_id: str,
    model: CarModel | None = None,
    series_list: list[Series] | None = None,
) -> EntitySummary | LayoutNotFound:
    """Structured summary of one model for the table view.

    Scalar fields come from the model entity when one is supplied; the
    series and technology names are resolved against the graph.
    """
    index = ensure_index(graph)
    node = index.node_by_id.get(selected_model_id)
    if node is None or node.layer != Layer.MODEL:
        return LayoutNotFound(reason=f"Model {selected_model_id} not found")

    series_summary = None
    series_node_id = index.series_of(node.id)
    if series_node_id is not None:
        series_node = index.node_by_id[series_node_id]
        intro = ""
        if series_list:
            _, series_key = parse_node_id(series_node_id)
            for s in series_list:
                if s.series_id == series_key:
                    intro = s.intro
                    break
        series_summary = SeriesSummary(id=series_node.id, name=series_node.name, intro=intro)

    techs = [index.node_by_id[t].name for t in index.techs_of(node.id)]
    if not techs and model is not None:
        techs = list(model.techs)

    summary = EntitySummary(model_id=node.id, model_name=node.name, series=series_summary, techs=techs)
    if model is not None:
        summary = summary.model_copy(update={
            "price": model.price,
            "range_km": model.range_km,
            "energy_type": model.energy_type,
            "body_type": model.body_type,
            "seats": model.seats,
            "launch_year": model.launch_year,
        })
    return summary
