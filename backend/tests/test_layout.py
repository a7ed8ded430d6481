"""Tests for the global, tree and table layouts."""

import pytest

from carline.models.catalog_models import CarModel, Series
from carline.models.graph_models import EntitySummary, LayoutNotFound, PositionedGraph
from carline.services.graph_index import GraphIndex
from carline.services.layout_engine import (
    TREE_BOTTOM_MARGIN,
    TREE_TOP_Y,
    layout_global,
    layout_single_entity_table,
    layout_single_entity_tree,
)
from conftest import make_graph


def _by_id(positioned: PositionedGraph):
    return {n.id: n for n in positioned.nodes}


class TestGlobalLayout:
    def test_three_bands(self, scenario_graph):
        nodes = _by_id(layout_global(scenario_graph, 800, 350))
        assert nodes["s_1"].y == pytest.approx(38.5)
        assert nodes["m_1"].y == pytest.approx(175)
        assert nodes["t_1"].y == pytest.approx(311.5)

    def test_models_centered_under_series(self, scenario_graph):
        nodes = _by_id(layout_global(scenario_graph, 800, 350))
        assert nodes["s_1"].x == pytest.approx(400)
        assert nodes["m_1"].x == pytest.approx(320)
        assert nodes["m_2"].x == pytest.approx(480)
        assert nodes["t_1"].x == pytest.approx(400)

    def test_series_spaced_evenly(self, two_series_graph):
        nodes = _by_id(layout_global(two_series_graph, 900, 300))
        assert nodes["s_1"].x == pytest.approx(300)
        assert nodes["s_2"].x == pytest.approx(600)
        assert nodes["t_1"].x == pytest.approx(300)
        assert nodes["t_2"].x == pytest.approx(600)

    def test_every_node_placed_and_fixed(self, two_series_graph):
        positioned = layout_global(two_series_graph, 800, 350)
        assert len(positioned.nodes) == len(two_series_graph.nodes)
        assert all(n.fixed for n in positioned.nodes)
        assert all(n.category == int(n.layer) for n in positioned.nodes)

    def test_model_labels_hidden(self, scenario_graph):
        nodes = _by_id(layout_global(scenario_graph, 800, 350))
        assert not nodes["m_1"].show_label
        assert nodes["s_1"].show_label
        assert nodes["t_1"].show_label

    def test_deterministic(self, two_series_graph):
        first = layout_global(two_series_graph, 800, 350)
        second = layout_global(GraphIndex(two_series_graph), 800, 350)
        assert first == second

    def test_orphan_model_centered(self):
        """A model whose series is missing is still placed, not dropped."""
        graph = make_graph(
            series=[(1, "Dynasty"), (2, "Ocean")],
            models=[(1, "Han EV", 1), (2, "Ghost", 9)],
            belongs=[(1, 1), (9, 2)],
        )
        nodes = _by_id(layout_global(graph, 800, 350))
        assert nodes["m_2"].x == pytest.approx(400)
        assert nodes["m_2"].y == pytest.approx(175)

    def test_edges_keep_graph_order(self, scenario_graph):
        positioned = layout_global(scenario_graph, 800, 350)
        assert [(e.source, e.target) for e in positioned.edges] == [e.key for e in scenario_graph.edges]
        assert all(e.curveness == 0.2 for e in positioned.edges)

    def test_empty_graph(self):
        positioned = layout_global(make_graph(), 800, 350)
        assert positioned.nodes == []
        assert positioned.edges == []


class TestTreeLayout:
    def test_tree_positions(self, scenario_graph):
        positioned = layout_single_entity_tree(scenario_graph, "m_1", 600, 400)
        nodes = _by_id(positioned)
        assert set(nodes) == {"s_1", "m_1", "t_1"}
        assert (nodes["s_1"].x, nodes["s_1"].y) == (300, TREE_TOP_Y)
        assert (nodes["m_1"].x, nodes["m_1"].y) == (300, 200)
        assert nodes["t_1"].y == 400 - TREE_BOTTOM_MARGIN
        assert positioned.title == "Han EV relation tree"

    def test_tree_technologies_spread(self, two_series_graph):
        nodes = _by_id(layout_single_entity_tree(two_series_graph, "m_2", 900, 400))
        assert nodes["t_1"].x == pytest.approx(300)
        assert nodes["t_2"].x == pytest.approx(600)

    def test_tree_edge_styles(self, scenario_graph):
        edges = layout_single_entity_tree(scenario_graph, "m_1", 600, 400).edges
        assert edges[0].width == 3
        assert edges[0].curveness == 0
        assert edges[1].width == 2

    def test_model_without_technologies(self, scenario_graph):
        positioned = layout_single_entity_tree(scenario_graph, "m_2", 600, 400)
        assert [n.id for n in positioned.nodes] == ["s_1", "m_2"]

    def test_unknown_model_not_found(self, scenario_graph):
        result = layout_single_entity_tree(scenario_graph, "m_42", 600, 400)
        assert isinstance(result, LayoutNotFound)

    def test_non_model_id_not_found(self, scenario_graph):
        assert isinstance(layout_single_entity_tree(scenario_graph, "s_1", 600, 400), LayoutNotFound)

    def test_orphan_model_not_found(self):
        graph = make_graph(models=[(1, "Ghost", 9)])
        result = layout_single_entity_tree(graph, "m_1", 600, 400)
        assert isinstance(result, LayoutNotFound)
        assert "Series" in result.reason


class TestTableLayout:
    def test_summary_from_graph_and_entity(self, scenario_graph):
        model = CarModel(
            model_id=1, model_name="Han EV", series_id=1, series_name="Dynasty",
            price=20.98, range_km=715, energy_type="EV", body_type="Sedan",
            launch_year="2023", techs=["Blade Battery"],
        )
        series = [Series(series_id=1, series_name="Dynasty", intro="Flagship line")]
        summary = layout_single_entity_table(scenario_graph, "m_1", model, series)
        assert isinstance(summary, EntitySummary)
        assert summary.model_name == "Han EV"
        assert summary.price == 20.98
        assert summary.series.name == "Dynasty"
        assert summary.series.intro == "Flagship line"
        assert summary.techs == ["Blade Battery"]

    def test_summary_without_entity(self, scenario_graph):
        summary = layout_single_entity_table(scenario_graph, "m_2")
        assert summary.model_name == "Tang EV"
        assert summary.techs == []
        assert summary.series.id == "s_1"

    def test_unknown_model_not_found(self, scenario_graph):
        assert isinstance(layout_single_entity_table(scenario_graph, "m_9"), LayoutNotFound)

