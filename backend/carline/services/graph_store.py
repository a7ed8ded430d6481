"""Single-writer holder of the current graph snapshot.

Readers call :meth:`GraphStore.current` and get an immutable
``(graph, index)`` pair. Only fetch-completion code calls
:meth:`GraphStore.replace`, passing the token it got from
:meth:`GraphStore.begin_refresh` so that an older response arriving late
cannot overwrite a newer graph.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from carline.models.graph_models import Graph
from carline.services.graph_index import GraphIndex

logger = logging.getLogger(__name__)


class GraphSnapshotState(NamedTuple):
    graph: Graph
    index: GraphIndex
    generation: int


class GraphStore:
    def __init__(self) -> None:
        self._state: GraphSnapshotState | None = None
        self._issued = 0

    def begin_refresh(self) -> int:
        """Reserve a generation number for a fetch about to start."""
        self._issued += 1
        return self._issued

    def replace(self, graph: Graph, generation: int | None = None) -> bool:
        """Install ``graph`` unless a newer generation is already installed.

        Returns True if the graph became current.
        """
        if generation is None:
            generation = self.begin_refresh()
        if self.is_stale(generation):
            logger.debug(
                "Ignoring stale graph (generation %d, current %d)",
                generation, self._state.generation,
            )
            return False
        # Graph and index are swapped together as one object
        self._state = GraphSnapshotState(graph=graph, index=GraphIndex(graph), generation=generation)
        logger.info(
            "Graph replaced: %d nodes, %d edges (generation %d)",
            len(graph.nodes), len(graph.edges), generation,
        )
        return True

    def is_stale(self, generation: int) -> bool:
        """True if a graph from ``generation`` or later is already installed."""
        return self._state is not None and generation <= self._state.generation

    def current(self) -> GraphSnapshotState | None:
        return self._state

    @property
    def loaded(self) -> bool:
        return self._state is not None
