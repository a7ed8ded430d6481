"""Tests for the view-mode state machine."""

import pytest
from pydantic import TypeAdapter, ValidationError

from carline.models.catalog_models import CarModel, Series
from carline.services.graph_store import GraphStore
from carline.services.view_state import (
    GRAPH_NOT_LOADED,
    SELECT_MODEL_PROMPT,
    BackgroundClicked,
    DoubleClicked,
    FilterBySeries,
    GraphReplaced,
    GraphViewController,
    ModelSelected,
    NodeClicked,
    NoChange,
    RenderGraph,
    RenderTable,
    SearchTechnology,
    SelectionCleared,
    ShowError,
    ShowModelDetail,
    ShowNotFound,
    ShowPrompt,
    TabSelected,
    ViewEvent,
    ViewMode,
    ViewportResized,
)
from conftest import make_graph


def _make_model(model_id: int = 1, name: str = "Han EV", series_id: int = 1) -> CarModel:
    return CarModel(
        model_id=model_id, model_name=name, series_id=series_id,
        price=20.98, energy_type="EV", techs=["Blade Battery"],
    )


@pytest.fixture
def controller(scenario_graph):
    store = GraphStore()
    store.replace(scenario_graph)
    ctl = GraphViewController(store, 800, 350)
    ctl.series_list = [Series(series_id=1, series_name="Dynasty", intro="Flagship line")]
    return ctl


def _opacity(command: RenderGraph, node_id: str) -> float:
    return next(n.opacity for n in command.graph.nodes if n.id == node_id)


class TestTabs:
    def test_tree_without_selection_prompts(self, controller):
        command = controller.dispatch(TabSelected(mode=ViewMode.TREE))
        assert isinstance(command, ShowPrompt)
        assert command.message == SELECT_MODEL_PROMPT
        assert controller.state.mode == ViewMode.TREE

    def test_table_without_selection_prompts(self, controller):
        assert isinstance(controller.dispatch(TabSelected(mode=ViewMode.TABLE)), ShowPrompt)

    def test_all_tab_idempotent(self, controller):
        first = controller.dispatch(TabSelected(mode=ViewMode.ALL))
        second = controller.dispatch(TabSelected(mode=ViewMode.ALL))
        assert isinstance(first, RenderGraph)
        assert first == second
        assert not first.highlighted

    def test_all_tab_clears_highlight(self, controller):
        controller.dispatch(NodeClicked(node_id="m_1"))
        command = controller.dispatch(TabSelected(mode=ViewMode.ALL))
        assert not command.highlighted
        assert controller.state.highlighted_node is None

    def test_prompted_tab_renders_on_selection(self, controller):
        controller.dispatch(TabSelected(mode=ViewMode.TREE))
        command = controller.dispatch(ModelSelected(model=_make_model()))
        assert isinstance(command, RenderGraph)
        assert command.graph.title == "Han EV relation tree"

    def test_table_tab_with_selection(self, controller):
        controller.dispatch(ModelSelected(model=_make_model()))
        command = controller.dispatch(TabSelected(mode=ViewMode.TABLE))
        assert isinstance(command, RenderTable)
        assert command.summary.series.intro == "Flagship line"
        assert command.summary.price == 20.98


class TestSelection:
    def test_select_in_all_highlights_model(self, controller):
        command = controller.dispatch(ModelSelected(model=_make_model()))
        assert isinstance(command, RenderGraph)
        assert command.highlighted
        assert controller.state.highlighted_node == "m_1"
        assert _opacity(command, "m_2") < 1.0

    def test_select_missing_model_in_tree(self, controller):
        controller.dispatch(TabSelected(mode=ViewMode.TREE))
        command = controller.dispatch(ModelSelected(model=_make_model(model_id=42, name="Ghost")))
        assert isinstance(command, ShowNotFound)

    def test_clear_selection_returns_to_all(self, controller):
        controller.dispatch(ModelSelected(model=_make_model()))
        controller.dispatch(TabSelected(mode=ViewMode.TREE))
        command = controller.dispatch(SelectionCleared())
        assert isinstance(command, RenderGraph)
        assert controller.state.mode == ViewMode.ALL
        assert controller.state.selected_model is None


class TestClicks:
    def test_node_click_highlights(self, controller):
        command = controller.dispatch(NodeClicked(node_id="m_2"))
        assert command.highlighted
        assert _opacity(command, "m_2") == 1.0
        assert _opacity(command, "t_1") < 1.0

    def test_node_click_host_actions(self, controller):
        assert controller.dispatch(NodeClicked(node_id="s_1")).host_action == FilterBySeries(
            series_id=1, series_name="Dynasty"
        )
        assert controller.dispatch(NodeClicked(node_id="m_1")).host_action == ShowModelDetail(model_id=1)
        assert controller.dispatch(NodeClicked(node_id="t_1")).host_action == SearchTechnology(name="Blade Battery")

    def test_unknown_node_no_change(self, controller):
        assert isinstance(controller.dispatch(NodeClicked(node_id="m_77")), NoChange)

    def test_node_click_ignored_outside_all(self, controller):
        controller.dispatch(ModelSelected(model=_make_model()))
        controller.dispatch(TabSelected(mode=ViewMode.TREE))
        assert isinstance(controller.dispatch(NodeClicked(node_id="s_1")), NoChange)

    @pytest.mark.parametrize("event", [BackgroundClicked(), DoubleClicked()])
    def test_reset_highlight(self, controller, event):
        controller.dispatch(NodeClicked(node_id="m_1"))
        command = controller.dispatch(event)
        assert isinstance(command, RenderGraph)
        assert not command.highlighted
        assert all(n.opacity == 1.0 for n in command.graph.nodes)


class TestDataEvents:
    def test_graph_replaced_rerenders_current_mode(self, controller):
        controller.dispatch(ModelSelected(model=_make_model()))
        controller.dispatch(TabSelected(mode=ViewMode.TREE))
        controller.store.replace(make_graph(
            series=[(1, "Dynasty")],
            models=[(1, "Han EV", 1)],
            techs=[(1, "Blade Battery"), (2, "CTB")],
            belongs=[(1, 1)],
            equipped=[(1, 1), (1, 2)],
        ))
        command = controller.dispatch(GraphReplaced())
        assert isinstance(command, RenderGraph)
        assert {n.id for n in command.graph.nodes} == {"s_1", "m_1", "t_1", "t_2"}

    def test_resize_keeps_highlight(self, controller):
        controller.dispatch(NodeClicked(node_id="m_1"))
        command = controller.dispatch(ViewportResized(width=1600, height=700))
        assert command.highlighted
        s1 = next(n for n in command.graph.nodes if n.id == "s_1")
        assert s1.x == pytest.approx(800)

    def test_resize_rejects_zero(self):
        with pytest.raises(ValidationError):
            ViewportResized(width=0, height=100)

    def test_not_loaded(self):
        ctl = GraphViewController(GraphStore())
        command = ctl.dispatch(TabSelected(mode=ViewMode.ALL))
        assert isinstance(command, ShowError)
        assert command.message == GRAPH_NOT_LOADED

    def test_events_parse_by_kind(self):
        event = TypeAdapter(ViewEvent).validate_python({"kind": "node_clicked", "node_id": "s_1"})
        assert event == NodeClicked(node_id="s_1")
