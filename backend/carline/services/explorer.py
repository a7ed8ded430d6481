"""Explorer session: wires the Data Service, graph engine and a rendering surface.

One :class:`GraphExplorer` corresponds to one open graph panel. It owns the
graph store and the view controller, loads data through a
:class:`DataServiceClient`, and forwards every render command to the surface.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from carline.models.catalog_models import (
    AddModelRequest,
    AddTechRequest,
    CarModel,
    CatalogStats,
    Series,
    Technology,
    WriteResult,
)
from carline.services.data_client import DataServiceClient
from carline.services.errors import CarlineError, DataFetchError, MalformedGraphSnapshotError, ValidationFailure
from carline.services.graph_builder import build_graph_from_snapshot
from carline.services.graph_store import GraphStore
from carline.services.layout_engine import DEFAULT_HEIGHT, DEFAULT_WIDTH
from carline.services.rendering import RenderingSurface
from carline.services.view_state import (
    BackgroundClicked,
    DoubleClicked,
    FilterBySeries,
    GraphReplaced,
    GraphViewController,
    HostAction,
    ModelSelected,
    NodeClicked,
    NoChange,
    RenderCommand,
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

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    level: Literal["info", "success", "warning", "error"]
    message: str


def _validation_message(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        field = ".".join(str(p) for p in e.get("loc", ()))
        parts.append(f"{field}: {e.get('msg', 'invalid')}" if field else e.get("msg", "invalid"))
    return "; ".join(parts)


def validate_model_payload(payload: AddModelRequest | dict[str, Any]) -> AddModelRequest:
    """Check a new-model payload before it is sent.

    Raises:
        ValidationFailure: a required field is missing or out of range.
    """
    if isinstance(payload, AddModelRequest):
        return payload
    try:
        return AddModelRequest.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailure(_validation_message(e)) from e


def validate_tech_payload(payload: AddTechRequest | dict[str, Any]) -> AddTechRequest:
    if isinstance(payload, AddTechRequest):
        return payload
    try:
        return AddTechRequest.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailure(_validation_message(e)) from e


class GraphExplorer:
    def __init__(
        self,
        client: DataServiceClient,
        surface: RenderingSurface,
        width: float = DEFAULT_WIDTH,
        height: float = DEFAULT_HEIGHT,
    ):
        self.client = client
        self.surface = surface
        self.store = GraphStore()
        self.controller = GraphViewController(self.store, width, height)
        self.notifications: list[Notification] = []
        self.host_actions: list[HostAction] = []
        self.series: list[Series] = []
        self.techs: list[Technology] = []
        self.models: list[CarModel] = []
        self.stats: CatalogStats | None = None
        self.last_command: RenderCommand | None = None

        surface.resize(width, height)
        surface.on_node_click(self._on_node_click)
        surface.on_background_click(self._on_background_click)
        surface.on_double_click(self._on_double_click)

    @property
    def mode(self) -> ViewMode:
        return self.controller.state.mode

    def _notify(self, level: str, message: str) -> None:
        log = logger.warning if level in ("warning", "error") else logger.info
        log("Notification (%s): %s", level, message)
        self.notifications.append(Notification(level=level, message=message))

    # --- render plumbing ---

    def _apply(self, command: RenderCommand) -> RenderCommand:
        if isinstance(command, NoChange):
            return command
        if isinstance(command, RenderGraph):
            self.surface.render_graph(command.graph)
            if command.host_action is not None:
                self.host_actions.append(command.host_action)
        elif isinstance(command, RenderTable):
            self.surface.show_table(command.summary)
        elif isinstance(command, ShowPrompt):
            self.surface.show_message(command.message, "info")
        elif isinstance(command, ShowNotFound):
            self.surface.show_message(command.message, "warning")
        elif isinstance(command, ShowError):
            self.surface.show_message(command.message, "error")
        self.last_command = command
        return command

    def dispatch(self, event: ViewEvent) -> RenderCommand:
        return self._apply(self.controller.dispatch(event))

    # --- loading ---

    def _accept_lists(self, results: dict[str, Any], verb: str) -> None:
        """Keep each list that loaded and notify for each one that failed."""
        for name, result in results.items():
            if isinstance(result, CarlineError):
                self._notify("error", f"Failed to {verb} {name}: {result}")
            elif isinstance(result, BaseException):
                raise result
        series = results["series"]
        if not isinstance(series, BaseException):
            self.series = series
            self.controller.series_list = series
        if not isinstance(results["technologies"], BaseException):
            self.techs = results["technologies"]
        if not isinstance(results["models"], BaseException):
            self.models = results["models"]
        if not isinstance(results["stats"], BaseException):
            self.stats = results["stats"]

    async def _fetch_lists(self) -> dict[str, Any]:
        series, techs, models, stats = await asyncio.gather(
            self.client.fetch_series(),
            self.client.fetch_techs(),
            self.client.fetch_models(),
            self.client.fetch_stats(),
            return_exceptions=True,
        )
        return {"series": series, "technologies": techs, "models": models, "stats": stats}

    async def start(self) -> None:
        """Load the catalog lists, stats and the graph concurrently, then render."""
        generation = self.store.begin_refresh()
        lists, snapshot = await asyncio.gather(
            self._fetch_lists(),
            self._fetch_snapshot(),
        )
        self._accept_lists(lists, "load")
        self._install_snapshot(snapshot, generation)

    async def _fetch_snapshot(self):
        try:
            return await self.client.fetch_graph()
        except CarlineError as e:
            return e

    async def reload_graph(self) -> bool:
        """Refetch the graph. Returns True if the new graph became current."""
        generation = self.store.begin_refresh()
        snapshot = await self._fetch_snapshot()
        return self._install_snapshot(snapshot, generation)

    def _install_snapshot(self, snapshot, generation: int) -> bool:
        # A newer graph is already showing; drop this result, error or not
        if self.store.is_stale(generation):
            logger.debug("Discarding graph result for stale generation %d", generation)
            return False
        if isinstance(snapshot, MalformedGraphSnapshotError):
            logger.warning("Malformed graph snapshot: %s", snapshot)
            self._apply(ShowError(message=f"Graph data is malformed: {snapshot}"))
            return False
        if isinstance(snapshot, DataFetchError):
            self._notify("error", f"Failed to load graph: {snapshot}")
            return False
        if isinstance(snapshot, BaseException):
            raise snapshot

        graph = build_graph_from_snapshot(snapshot)
        if not self.store.replace(graph, generation):
            return False
        self.dispatch(GraphReplaced())
        return True

    async def refresh_lists(self) -> None:
        self._accept_lists(await self._fetch_lists(), "refresh")

    # --- writes ---

    async def add_model(self, payload: AddModelRequest | dict[str, Any]) -> WriteResult:
        try:
            req = validate_model_payload(payload)
        except ValidationFailure as e:
            self._notify("warning", f"Model not added: {e}")
            return WriteResult(ok=False, message=str(e))
        return await self._write(self.client.add_model(req), "Model")

    async def add_tech(self, payload: AddTechRequest | dict[str, Any]) -> WriteResult:
        try:
            req = validate_tech_payload(payload)
        except ValidationFailure as e:
            self._notify("warning", f"Technology not added: {e}")
            return WriteResult(ok=False, message=str(e))
        return await self._write(self.client.add_tech(req), "Technology")

    async def _write(self, request, label: str) -> WriteResult:
        try:
            result = await request
        except DataFetchError as e:
            self._notify("error", f"{label} not added: {e}")
            return WriteResult(ok=False, message=str(e))
        if not result.ok:
            self._notify("error", f"{label} not added: {result.message}")
            return result
        self._notify("success", result.message or f"{label} added")
        await self.refresh_lists()
        await self.reload_graph()
        return result

    # --- user interaction ---

    def select_tab(self, mode: ViewMode | str) -> RenderCommand:
        return self.dispatch(TabSelected(mode=ViewMode(mode)))

    def select_model(self, model: CarModel) -> RenderCommand:
        return self.dispatch(ModelSelected(model=model))

    async def select_model_by_id(self, model_id: int) -> RenderCommand | None:
        try:
            model = await self.client.fetch_model(model_id)
        except DataFetchError as e:
            self._notify("error", f"Failed to load model {model_id}: {e}")
            return None
        return self.select_model(model)

    def clear_selection(self) -> RenderCommand:
        return self.dispatch(SelectionCleared())

    def resize(self, width: float, height: float) -> RenderCommand:
        self.surface.resize(width, height)
        return self.dispatch(ViewportResized(width=width, height=height))

    def _on_node_click(self, node_id: str) -> None:
        self.dispatch(NodeClicked(node_id=node_id))

    def _on_background_click(self) -> None:
        self.dispatch(BackgroundClicked())

    def _on_double_click(self) -> None:
        self.dispatch(DoubleClicked())

    async def process_host_actions(self) -> None:
        """Carry out table-browser actions queued by graph clicks."""
        while self.host_actions:
            action = self.host_actions.pop(0)
            try:
                if isinstance(action, FilterBySeries):
                    self.models = await self.client.fetch_models(series_id=action.series_id)
                elif isinstance(action, SearchTechnology):
                    self.models = await self.client.search(action.name)
                elif isinstance(action, ShowModelDetail):
                    await self.select_model_by_id(action.model_id)
            except DataFetchError as e:
                self._notify("error", f"Failed to update model list: {e}")
