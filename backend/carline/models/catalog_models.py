from __future__ import annotations

from pydantic import BaseModel, Field


class Series(BaseModel):
    series_id: int
    series_name: str
    intro: str = ""


class Technology(BaseModel):
    tech_id: int
    tech_name: str
    intro: str = ""


class CarModel(BaseModel):
    model_id: int
    model_name: str
    series_id: int
    series_name: str = ""
    price: float
    range_km: float = 0
    energy_type: str
    body_type: str = ""
    seats: int = 5
    launch_year: str = ""
    techs: list[str] = []


class AddModelRequest(BaseModel):
    model_name: str = Field(min_length=1)
    series_id: int
    price: float = Field(gt=0)
    range_km: float = 0
    energy_type: str = Field(min_length=1)
    body_type: str = ""
    seats: int = 5
    launch_year: str = ""
    tech_ids: list[int] = []


class AddTechRequest(BaseModel):
    tech_name: str = Field(min_length=1)
    intro: str = ""


class SeriesListResponse(BaseModel):
    ok: bool = True
    data: list[Series]


class TechListResponse(BaseModel):
    ok: bool = True
    data: list[Technology]


class ModelListResponse(BaseModel):
    ok: bool = True
    data: list[CarModel]


class ModelResponse(BaseModel):
    ok: bool = True
    data: CarModel


class CatalogStats(BaseModel):
    ok: bool = True
    series_count: int
    model_count: int
    tech_count: int


class WriteResult(BaseModel):
    ok: bool
    message: str = ""
    model_id: int | None = None
    tech_id: int | None = None
