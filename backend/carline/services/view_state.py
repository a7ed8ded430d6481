"""View-mode state machine for the graph panel.

All user and data events go through :meth:`GraphViewController.dispatch`,
which updates the state and returns the single render command the surface
should carry out.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from carline.models.catalog_models import CarModel, Series
from carline.models.graph_models import EntitySummary, Layer, LayoutNotFound, PositionedGraph
from carline.services.graph_builder import node_id, parse_node_id
from carline.services.graph_store import GraphSnapshotState, GraphStore
from carline.services.layout_engine import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    layout_global,
    layout_single_entity_table,
    layout_single_entity_tree,
)
from carline.services.relevance import apply_highlight, compute_relevance

logger = logging.getLogger(__name__)

SELECT_MODEL_PROMPT = "Select a model in the table first"
GRAPH_NOT_LOADED = "Graph not loaded"


class ViewMode(str, Enum):
    ALL = "all"
    TABLE = "table"
    TREE = "tree"


class ViewState(BaseModel):
    mode: ViewMode = ViewMode.ALL
    selected_model: CarModel | None = None
    highlighted_node: str | None = None


# --- Events ---


class TabSelected(BaseModel):
    kind: Literal["tab_selected"] = "tab_selected"
    mode: ViewMode


class ModelSelected(BaseModel):
    kind: Literal["model_selected"] = "model_selected"
    model: CarModel


class SelectionCleared(BaseModel):
    kind: Literal["selection_cleared"] = "selection_cleared"


class NodeClicked(BaseModel):
    kind: Literal["node_clicked"] = "node_clicked"
    node_id: str


class BackgroundClicked(BaseModel):
    kind: Literal["background_clicked"] = "background_clicked"


class DoubleClicked(BaseModel):
    kind: Literal["double_clicked"] = "double_clicked"


class GraphReplaced(BaseModel):
    kind: Literal["graph_replaced"] = "graph_replaced"


class ViewportResized(BaseModel):
    kind: Literal["viewport_resized"] = "viewport_resized"
    width: float = Field(gt=0)
    height: float = Field(gt=0)


ViewEvent = Annotated[
    Union[
        TabSelected,
        ModelSelected,
        SelectionCleared,
        NodeClicked,
        BackgroundClicked,
        DoubleClicked,
        GraphReplaced,
        ViewportResized,
    ],
    Field(discriminator="kind"),
]


# --- Host actions (what the table browser should do after a graph click) ---


class FilterBySeries(BaseModel):
    action: Literal["filter_by_series"] = "filter_by_series"
    series_id: int
    series_name: str


class ShowModelDetail(BaseModel):
    action: Literal["show_model_detail"] = "show_model_detail"
    model_id: int


class SearchTechnology(BaseModel):
    action: Literal["search_technology"] = "search_technology"
    name: str


HostAction = Annotated[
    Union[FilterBySeries, ShowModelDetail, SearchTechnology],
    Field(discriminator="action"),
]


# --- Render commands ---


class RenderGraph(BaseModel):
    command: Literal["render_graph"] = "render_graph"
    graph: PositionedGraph
    highlighted: bool = False
    host_action: HostAction | None = None


class RenderTable(BaseModel):
    command: Literal["render_table"] = "render_table"
    summary: EntitySummary


class ShowPrompt(BaseModel):
    command: Literal["show_prompt"] = "show_prompt"
    message: str


class ShowNotFound(BaseModel):
    command: Literal["show_not_found"] = "show_not_found"
    message: str


class ShowError(BaseModel):
    command: Literal["show_error"] = "show_error"
    message: str


class NoChange(BaseModel):
    command: Literal["no_change"] = "no_change"


RenderCommand = Union[RenderGraph, RenderTable, ShowPrompt, ShowNotFound, ShowError, NoChange]


class GraphViewController:
    """Tracks mode and selection; turns events into render commands."""

    def __init__(self, store: GraphStore, width: float = DEFAULT_WIDTH, height: float = DEFAULT_HEIGHT):
        self.store = store
        self.state = ViewState()
        self.width = width
        self.height = height
        self.series_list: list[Series] = []
        self._handlers = {
            "tab_selected": self._on_tab_selected,
            "model_selected": self._on_model_selected,
            "selection_cleared": self._on_selection_cleared,
            "node_clicked": self._on_node_clicked,
            "background_clicked": self._on_reset_highlight,
            "double_clicked": self._on_reset_highlight,
            "graph_replaced": self._on_graph_replaced,
            "viewport_resized": self._on_viewport_resized,
        }

    def dispatch(self, event: ViewEvent) -> RenderCommand:
        handler = self._handlers[event.kind]
        command = handler(event)
        logger.debug("%s -> %s (mode=%s)", event.kind, command.command, self.state.mode.value)
        return command

    # --- rendering helpers ---

    def _snapshot(self) -> GraphSnapshotState | None:
        return self.store.current()

    def _render_global(self, highlight_node: str | None = None) -> RenderCommand:
        snap = self._snapshot()
        if snap is None:
            return ShowError(message=GRAPH_NOT_LOADED)
        positioned = layout_global(snap.index, self.width, self.height)
        if highlight_node is None or highlight_node not in snap.index.node_by_id:
            self.state.highlighted_node = None
            return RenderGraph(graph=positioned)
        self.state.highlighted_node = highlight_node
        relevance = compute_relevance(snap.index, highlight_node)
        return RenderGraph(graph=apply_highlight(positioned, relevance), highlighted=True)

    def _render_selected(self) -> RenderCommand:
        model = self.state.selected_model
        if model is None:
            return ShowPrompt(message=SELECT_MODEL_PROMPT)
        snap = self._snapshot()
        if snap is None:
            return ShowError(message=GRAPH_NOT_LOADED)

        model_node = node_id(Layer.MODEL, model.model_id)
        if self.state.mode == ViewMode.TREE:
            result = layout_single_entity_tree(snap.index, model_node, self.width, self.height)
        else:
            result = layout_single_entity_table(snap.index, model_node, model, self.series_list)

        if isinstance(result, LayoutNotFound):
            logger.info("Selected model %s unresolved: %s", model_node, result.reason)
            return ShowNotFound(message=result.reason)
        if isinstance(result, EntitySummary):
            return RenderTable(summary=result)
        return RenderGraph(graph=result)

    def _render_current(self) -> RenderCommand:
        if self.state.mode == ViewMode.ALL:
            return self._render_global(self.state.highlighted_node)
        return self._render_selected()

    # --- handlers ---

    def _on_tab_selected(self, event: TabSelected) -> RenderCommand:
        self.state.mode = event.mode
        if event.mode == ViewMode.ALL:
            return self._render_global()
        return self._render_selected()

    def _on_model_selected(self, event: ModelSelected) -> RenderCommand:
        self.state.selected_model = event.model
        if self.state.mode == ViewMode.ALL:
            return self._render_global(node_id(Layer.MODEL, event.model.model_id))
        return self._render_selected()

    def _on_selection_cleared(self, event: SelectionCleared) -> RenderCommand:
        self.state.selected_model = None
        self.state.mode = ViewMode.ALL
        return self._render_global()

    def _on_node_clicked(self, event: NodeClicked) -> RenderCommand:
        if self.state.mode != ViewMode.ALL:
            return NoChange()
        snap = self._snapshot()
        if snap is None:
            return ShowError(message=GRAPH_NOT_LOADED)
        node = snap.index.node_by_id.get(event.node_id)
        if node is None:
            logger.debug("Click on unknown node %s ignored", event.node_id)
            return NoChange()

        command = self._render_global(node.id)
        _, key = parse_node_id(node.id)
        if node.layer == Layer.SERIES:
            command.host_action = FilterBySeries(series_id=key, series_name=node.name)
        elif node.layer == Layer.MODEL:
            command.host_action = ShowModelDetail(model_id=key)
        else:
            command.host_action = SearchTechnology(name=node.name)
        return command

    def _on_reset_highlight(self, event: BackgroundClicked | DoubleClicked) -> RenderCommand:
        if self.state.mode != ViewMode.ALL:
            return NoChange()
        return self._render_global()

    def _on_graph_replaced(self, event: GraphReplaced) -> RenderCommand:
        if self.state.mode == ViewMode.ALL:
            return self._render_global()
        return self._render_selected()

    def _on_viewport_resized(self, event: ViewportResized) -> RenderCommand:
        self.width = event.width
        self.height = event.height
        return self._render_current()
