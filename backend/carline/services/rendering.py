"""Rendering surface abstraction and an ECharts implementation.

The graph engine never talks to a drawing library directly. It hands
positioned nodes and edges to a :class:`RenderingSurface`, and the surface
reports clicks back through registered callbacks carrying domain node ids.
"""

from __future__ import annotations

import html as html_mod
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from carline.models.graph_models import (
    Category,
    EntitySummary,
    Layer,
    PositionedEdge,
    PositionedGraph,
    PositionedNode,
    RelationKind,
)

logger = logging.getLogger(__name__)

ECHARTS_CDN = "https://cdn.jsdelivr.net/npm/echarts@5/dist/echarts.min.js"

_BORDER_COLORS: dict[Layer, str] = {
    Layer.SERIES: "#0958d9",
    Layer.MODEL: "#389e0d",
    Layer.TECHNOLOGY: "#d46b08",
}
_LABEL_POSITIONS: dict[Layer, str] = {
    Layer.SERIES: "top",
    Layer.MODEL: "right",
    Layer.TECHNOLOGY: "bottom",
}
_EDGE_COLORS: dict[RelationKind, str] = {
    RelationKind.BELONGS_TO: "#91caff",
    RelationKind.EQUIPPED_WITH: "#ffd591",
}

NodeClickHandler = Callable[[str], None]
ClickHandler = Callable[[], None]


class RenderingSurface(ABC):
    """Drawing target for positioned graphs.

    Subclasses implement the drawing calls; click dispatch is shared.
    """

    def __init__(self) -> None:
        self._node_click: list[NodeClickHandler] = []
        self._background_click: list[ClickHandler] = []
        self._double_click: list[ClickHandler] = []

    @abstractmethod
    def render(self, nodes: list[PositionedNode], edges: list[PositionedEdge], categories: list[Category]) -> None:
        """Draw nodes at their explicit coordinates."""
        ...

    @abstractmethod
    def show_table(self, summary: EntitySummary) -> None:
        """Replace the graph with a structured single-model view."""
        ...

    @abstractmethod
    def show_message(self, message: str, level: str = "info") -> None:
        """Replace the graph with a prompt, not-found or error message."""
        ...

    @abstractmethod
    def resize(self, width: float, height: float) -> None:
        ...

    def render_graph(self, graph: PositionedGraph) -> None:
        self.render(graph.nodes, graph.edges, graph.categories)

    def on_node_click(self, cb: NodeClickHandler) -> None:
        self._node_click.append(cb)

    def on_background_click(self, cb: ClickHandler) -> None:
        self._background_click.append(cb)

    def on_double_click(self, cb: ClickHandler) -> None:
        self._double_click.append(cb)

    # Called by the drawing layer when the user interacts with it
    def click_node(self, node_id: str) -> None:
        for cb in self._node_click:
            cb(node_id)

    def click_background(self) -> None:
        for cb in self._background_click:
            cb()

    def double_click(self) -> None:
        for cb in self._double_click:
            cb()


def _echarts_node(node: PositionedNode, color: str) -> dict:
    return {
        "id": node.id,
        "name": node.name,
        "x": node.x,
        "y": node.y,
        "fixed": node.fixed,
        "symbolSize": node.symbol_size,
        "category": node.category,
        "layer": int(node.layer),
        "itemStyle": {
            "color": color,
            "borderColor": _BORDER_COLORS[node.layer],
            "borderWidth": node.border_width,
            "opacity": node.opacity,
        },
        "label": {
            "show": node.show_label,
            "position": _LABEL_POSITIONS[node.layer],
            "fontWeight": "bold" if node.bold_label else "normal",
        },
    }


def _echarts_edge(edge: PositionedEdge) -> dict:
    return {
        "source": edge.source,
        "target": edge.target,
        "relation": edge.relation.value,
        "lineStyle": {
            "color": _EDGE_COLORS[edge.relation],
            "width": edge.width,
            "opacity": edge.opacity,
            "curveness": edge.curveness,
        },
    }


def build_echarts_option(graph: PositionedGraph) -> dict:
    """Translate a positioned graph into an ECharts ``graph`` series option."""
    colors = [c.color for c in graph.categories]
    option: dict = {
        "tooltip": {"trigger": "item"},
        "series": [{
            "type": "graph",
            "layout": "none",
            "roam": True,
            "data": [_echarts_node(n, colors[n.category]) for n in graph.nodes],
            "links": [_echarts_edge(e) for e in graph.edges],
            "categories": [{"name": c.name, "itemStyle": {"color": c.color}} for c in graph.categories],
            "label": {"show": True, "fontSize": 10},
            "lineStyle": {"curveness": 0.2},
        }],
    }
    if graph.title:
        option["title"] = {"text": graph.title, "left": "center", "top": 10}
    return option


class EChartsSurface(RenderingSurface):
    """Keeps the ECharts option (or table / message) a browser should show."""

    def __init__(self, width: float = 800, height: float = 350):
        super().__init__()
        self.width = width
        self.height = height
        self.option: dict | None = None
        self.table: EntitySummary | None = None
        self.message: tuple[str, str] | None = None

    def render(self, nodes: list[PositionedNode], edges: list[PositionedEdge], categories: list[Category]) -> None:
        self.option = build_echarts_option(PositionedGraph(nodes=nodes, edges=edges, categories=categories))
        self.table = None
        self.message = None

    def render_graph(self, graph: PositionedGraph) -> None:
        self.option = build_echarts_option(graph)
        self.table = None
        self.message = None

    def show_table(self, summary: EntitySummary) -> None:
        self.option = None
        self.table = summary
        self.message = None

    def show_message(self, message: str, level: str = "info") -> None:
        self.option = None
        self.table = None
        self.message = (level, message)

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height


def render_page(option: dict, title: str = "Carline relationship graph", api_base: str = "/api/view") -> str:
    """Self-contained HTML page showing ``option`` with click-to-highlight."""
    option_json = json.dumps(option, ensure_ascii=False).replace("</", "<\\/")
    safe_title = html_mod.escape(title, quote=True)
    api_json = json.dumps(api_base)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{safe_title}</title>
<script src="{ECHARTS_CDN}"></script>
<style>html,body{{margin:0;height:100%}}#graph{{width:100%;height:100%}}</style>
</head>
<body>
<div id="graph"></div>
<script>
const API = {api_json};
const TOKEN = new URLSearchParams(location.search).get("token");
const el = document.getElementById("graph");
const chart = echarts.init(el);
chart.setOption({option_json});
function size() {{ return "width=" + el.offsetWidth + "&height=" + el.offsetHeight; }}
async function load(path) {{
  const headers = TOKEN ? {{"X-Local-Token": TOKEN}} : {{}};
  const res = await fetch(API + path + "?" + size() + "&format=echarts", {{headers}});
  if (res.ok) chart.setOption(await res.json(), true);
}}
chart.on("click", p => {{ if (p.dataType === "node") load("/relevance/" + encodeURIComponent(p.data.id)); }});
chart.on("dblclick", () => load("/global"));
chart.getZr().on("click", e => {{ if (!e.target) load("/global"); }});
window.addEventListener("resize", () => chart.resize());
</script>
</body>
</html>
"""
