"""In-memory catalog of series, technologies and models.

Tables mirror a small relational schema: series, techs, models and a
model<->tech link table. Writes enforce NOT NULL, UNIQUE, FOREIGN KEY and
CHECK constraints and raise :class:`CatalogConstraintError` on violation.

The catalog is loaded from a sectioned text file::

    [SERIES]      id,name,intro
    [TECH]        id,name,intro
    [MODEL]       id,name,series_id,price,range_km,energy_type,body_type,seats,launch_year
    [MODEL_TECH]  model_id,tech_id

Lines starting with ``#`` are comments.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from carline.models.catalog_models import AddModelRequest, CarModel, Series, Technology
from carline.models.graph_models import GraphSnapshot, Layer, RelationKind, SnapshotLink, SnapshotNode
from carline.services.errors import CatalogConstraintError
from carline.services.graph_builder import node_id

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).resolve().parent.parent / "data" / "catalog.txt"

_SECTIONS = ("SERIES", "TECH", "MODEL", "MODEL_TECH")

_FILE_HEADER = """\
# Carline catalog data
# [SERIES] id,name,intro
# [TECH] id,name,intro
# [MODEL] id,name,series_id,price,range_km,energy_type,body_type,seats,launch_year
# [MODEL_TECH] model_id,tech_id
"""


class _ModelRow:
    __slots__ = ("model_id", "model_name", "series_id", "price", "range_km",
                 "energy_type", "body_type", "seats", "launch_year")

    def __init__(self, model_id: int, model_name: str, series_id: int, price: float, range_km: float,
                 energy_type: str, body_type: str, seats: int, launch_year: str):
        self.model_id = model_id
        self.model_name = model_name
        self.series_id = series_id
        self.price = price
        self.range_km = range_km
        self.energy_type = energy_type
        self.body_type = body_type
        self.seats = seats
        self.launch_year = launch_year


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class CatalogStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._series: dict[int, Series] = {}
        self._techs: dict[int, Technology] = {}
        self._models: dict[int, _ModelRow] = {}
        self._model_techs: list[tuple[int, int]] = []
        self._pairs: set[tuple[int, int]] = set()

    # --- loading / saving ---

    def load(self, path: Path | str) -> None:
        """Replace all tables with the contents of ``path``."""
        path = Path(path)
        series: dict[int, Series] = {}
        techs: dict[int, Technology] = {}
        models: dict[int, _ModelRow] = {}
        links: list[tuple[int, int]] = []
        section = ""

        with path.open(encoding="utf-8") as fh:
            for lineno, raw in enumerate(fh, start=1):
                line = raw.strip()
                if not line or line.startswith("#"):
                    continue
                if line.startswith("[") and line.endswith("]"):
                    section = line[1:-1]
                    if section not in _SECTIONS:
                        logger.warning("%s:%d: unknown section [%s]", path, lineno, section)
                    continue
                parts = [p.strip() for p in line.split(",")]
                try:
                    if section == "SERIES" and len(parts) >= 3:
                        sid = int(parts[0])
                        series[sid] = Series(series_id=sid, series_name=parts[1], intro=parts[2])
                    elif section == "TECH" and len(parts) >= 3:
                        tid = int(parts[0])
                        techs[tid] = Technology(tech_id=tid, tech_name=parts[1], intro=parts[2])
                    elif section == "MODEL" and len(parts) >= 9:
                        mid = int(parts[0])
                        models[mid] = _ModelRow(
                            mid, parts[1], int(parts[2]), float(parts[3]), float(parts[4]),
                            parts[5], parts[6], int(parts[7]), parts[8],
                        )
                    elif section == "MODEL_TECH" and len(parts) >= 2:
                        links.append((int(parts[0]), int(parts[1])))
                    else:
                        logger.warning("%s:%d: skipping malformed line", path, lineno)
                except ValueError:
                    logger.warning("%s:%d: skipping line with bad number", path, lineno)

        with self._lock:
            self._series = series
            self._techs = techs
            self._models = models
            self._model_techs = []
            self._pairs = set()
            for pair in links:
                if pair not in self._pairs:
                    self._pairs.add(pair)
                    self._model_techs.append(pair)

        logger.info(
            "Catalog loaded from %s: %d series, %d models, %d techs",
            path, len(series), len(models), len(techs),
        )

    def save(self, path: Path | str) -> None:
        with self._lock:
            lines = [_FILE_HEADER, "[SERIES]"]
            lines += [f"{s.series_id},{s.series_name},{s.intro}" for s in self._series.values()]
            lines += ["", "[TECH]"]
            lines += [f"{t.tech_id},{t.tech_name},{t.intro}" for t in self._techs.values()]
            lines += ["", "[MODEL]"]
            lines += [
                f"{m.model_id},{m.model_name},{m.series_id},{_format_number(m.price)},"
                f"{_format_number(m.range_km)},{m.energy_type},{m.body_type},{m.seats},{m.launch_year}"
                for m in self._models.values()
            ]
            lines += ["", "[MODEL_TECH]"]
            lines += [f"{mid},{tid}" for mid, tid in self._model_techs]
        Path(path).write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.info("Catalog saved to %s", path)

    # --- queries ---

    def _detail(self, row: _ModelRow) -> CarModel:
        series = self._series.get(row.series_id)
        techs = [
            self._techs[tid].tech_name
            for mid, tid in self._model_techs
            if mid == row.model_id and tid in self._techs
        ]
        return CarModel(
            model_id=row.model_id,
            model_name=row.model_name,
            series_id=row.series_id,
            series_name=series.series_name if series else "",
            price=row.price,
            range_km=row.range_km,
            energy_type=row.energy_type,
            body_type=row.body_type,
            seats=row.seats,
            launch_year=row.launch_year,
            techs=techs,
        )

    def list_series(self) -> list[Series]:
        with self._lock:
            return list(self._series.values())

    def list_techs(self) -> list[Technology]:
        with self._lock:
            return list(self._techs.values())

    def list_models(self, series_id: int | None = None, energy_type: str | None = None) -> list[CarModel]:
        """Models filtered by series and energy type, cheapest first."""
        with self._lock:
            result = [
                self._detail(m)
                for m in self._models.values()
                if (not series_id or series_id <= 0 or m.series_id == series_id)
                and (not energy_type or m.energy_type == energy_type)
            ]
        return sorted(result, key=lambda m: m.price)

    def get_model(self, model_id: int) -> CarModel | None:
        with self._lock:
            row = self._models.get(model_id)
            return self._detail(row) if row else None

    def search_models(self, keyword: str) -> list[CarModel]:
        """Models whose name, series name or any technology name contains ``keyword``."""
        with self._lock:
            details = [self._detail(m) for m in self._models.values()]
        return [
            d for d in details
            if keyword in d.model_name
            or keyword in d.series_name
            or any(keyword in t for t in d.techs)
        ]

    def stats(self) -> tuple[int, int, int]:
        with self._lock:
            return len(self._series), len(self._models), len(self._techs)

    def graph_snapshot(self) -> GraphSnapshot:
        """Three-layer snapshot: series, then models, then technologies."""
        models = self.list_models()
        with self._lock:
            nodes = [
                SnapshotNode(id=node_id(Layer.SERIES, s.series_id), name=s.series_name,
                             layer=Layer.SERIES, category=0)
                for s in self._series.values()
            ]
            nodes += [
                SnapshotNode(id=node_id(Layer.MODEL, m.model_id), name=m.model_name,
                             layer=Layer.MODEL, series_id=m.series_id, category=1)
                for m in models
            ]
            nodes += [
                SnapshotNode(id=node_id(Layer.TECHNOLOGY, t.tech_id), name=t.tech_name,
                             layer=Layer.TECHNOLOGY, category=2)
                for t in self._techs.values()
            ]
            links = [
                SnapshotLink(source=node_id(Layer.SERIES, m.series_id), target=node_id(Layer.MODEL, m.model_id),
                             relation=RelationKind.BELONGS_TO)
                for m in models
            ]
            for m in models:
                for mid, tid in self._model_techs:
                    if mid == m.model_id and tid in self._techs:
                        links.append(SnapshotLink(
                            source=node_id(Layer.MODEL, mid), target=node_id(Layer.TECHNOLOGY, tid),
                            relation=RelationKind.EQUIPPED_WITH,
                        ))
        return GraphSnapshot(nodes=nodes, links=links)

    # --- writes ---

    def add_series(self, name: str, intro: str = "", series_id: int | None = None) -> Series:
        with self._lock:
            if not name:
                raise CatalogConstraintError("NOT NULL", "series_name must not be empty")
            if series_id is None:
                series_id = max(self._series, default=0) + 1
            elif series_id in self._series:
                raise CatalogConstraintError("PRIMARY KEY", f"series_id {series_id} already exists")
            if any(s.series_name == name for s in self._series.values()):
                raise CatalogConstraintError("UNIQUE", f"series_name {name!r} already exists")
            series = Series(series_id=series_id, series_name=name, intro=intro)
            self._series[series_id] = series
        logger.info("Added series %d (%s)", series_id, name)
        return series

    def add_tech(self, name: str, intro: str = "") -> Technology:
        with self._lock:
            if not name:
                raise CatalogConstraintError("NOT NULL", "tech_name must not be empty")
            if any(t.tech_name == name for t in self._techs.values()):
                raise CatalogConstraintError("UNIQUE", f"tech_name {name!r} already exists")
            tech_id = max(self._techs, default=0) + 1
            tech = Technology(tech_id=tech_id, tech_name=name, intro=intro)
            self._techs[tech_id] = tech
        logger.info("Added tech %d (%s)", tech_id, name)
        return tech

    def add_model(self, req: AddModelRequest) -> CarModel:
        with self._lock:
            if not req.model_name:
                raise CatalogConstraintError("NOT NULL", "model_name must not be empty")
            if not req.energy_type:
                raise CatalogConstraintError("NOT NULL", "energy_type must not be empty")
            if any(m.model_name == req.model_name for m in self._models.values()):
                raise CatalogConstraintError("UNIQUE", f"model_name {req.model_name!r} already exists")
            if req.series_id not in self._series:
                raise CatalogConstraintError("FOREIGN KEY", f"series_id {req.series_id} does not exist")
            if req.price <= 0:
                raise CatalogConstraintError("CHECK", "price must be greater than 0")
            for tid in req.tech_ids:
                if tid not in self._techs:
                    raise CatalogConstraintError("FOREIGN KEY", f"tech_id {tid} does not exist")

            model_id = max(self._models, default=0) + 1
            self._models[model_id] = _ModelRow(
                model_id, req.model_name, req.series_id, req.price, req.range_km,
                req.energy_type, req.body_type, req.seats, req.launch_year,
            )
            for tid in req.tech_ids:
                if (model_id, tid) not in self._pairs:
                    self._pairs.add((model_id, tid))
                    self._model_techs.append((model_id, tid))
            detail = self._detail(self._models[model_id])
        logger.info("Added model %d (%s) with %d techs", model_id, req.model_name, len(req.tech_ids))
        return detail


_store: CatalogStore | None = None
_store_lock = threading.Lock()


def get_data_file() -> Path:
    return Path(os.environ.get("CARLINE_DATA_FILE") or DEFAULT_DATA_FILE)


def persist_enabled() -> bool:
    return os.environ.get("CARLINE_PERSIST", "").lower() == "true"


def get_catalog() -> CatalogStore:
    """Return the process-wide catalog, loading it on first use."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                store = CatalogStore()
                path = get_data_file()
                if path.exists():
                    store.load(path)
                else:
                    logger.warning("Catalog data file %s not found; starting empty", path)
                _store = store
    return _store


def reset_catalog() -> None:
    """Drop the process-wide catalog so the next access reloads it."""
    global _store
    with _store_lock:
        _store = None
