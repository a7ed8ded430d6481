import os
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Disable local auth for tests (all tests run without X-Local-Token header)
os.environ["CARLINE_NO_AUTH"] = "true"
# Disable rate limiting for tests
os.environ["CARLINE_NO_RATE_LIMIT"] = "true"
# Writes in API tests must never touch the bundled data file
os.environ.pop("CARLINE_PERSIST", None)

from carline.models.graph_models import Layer, RelationKind  # noqa: E402
from carline.services.graph_builder import build_graph  # noqa: E402


def make_graph(series=(), models=(), techs=(), belongs=(), equipped=()):
    """Build a graph from short tuples.

    ``series``/``techs``: (key, name); ``models``: (key, name, series_key);
    ``belongs``: (series_key, model_key); ``equipped``: (model_key, tech_key).
    """
    nodes = [{"id": f"s_{k}", "name": n, "layer": Layer.SERIES} for k, n in series]
    nodes += [{"id": f"m_{k}", "name": n, "layer": Layer.MODEL, "series_id": s} for k, n, s in models]
    nodes += [{"id": f"t_{k}", "name": n, "layer": Layer.TECHNOLOGY} for k, n in techs]
    links = [{"source": f"s_{s}", "target": f"m_{m}", "relation": RelationKind.BELONGS_TO} for s, m in belongs]
    links += [{"source": f"m_{m}", "target": f"t_{t}", "relation": RelationKind.EQUIPPED_WITH} for m, t in equipped]
    return build_graph(nodes, links)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def scenario_graph():
    """One series, two models, one technology used only by the first model."""
    return make_graph(
        series=[(1, "Dynasty")],
        models=[(1, "Han EV", 1), (2, "Tang EV", 1)],
        techs=[(1, "Blade Battery")],
        belongs=[(1, 1), (1, 2)],
        equipped=[(1, 1)],
    )


@pytest.fixture
def two_series_graph():
    """Two series sharing technology t_1; t_2 only under series 2."""
    return make_graph(
        series=[(1, "Dynasty"), (2, "Ocean")],
        models=[(1, "Han EV", 1), (2, "Seal", 2), (3, "Dolphin", 2)],
        techs=[(1, "Blade Battery"), (2, "CTB")],
        belongs=[(1, 1), (2, 2), (2, 3)],
        equipped=[(1, 1), (2, 1), (2, 2)],
    )
