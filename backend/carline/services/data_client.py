"""HTTP client for the catalog Data Service (direct httpx, no SDK)."""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx
from pydantic import ValidationError

from carline.models.catalog_models import (
    AddModelRequest,
    AddTechRequest,
    CarModel,
    CatalogStats,
    Series,
    Technology,
    WriteResult,
)
from carline.models.graph_models import GraphSnapshot
from carline.services.errors import DataFetchError
from carline.services.graph_builder import parse_graph_snapshot

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://127.0.0.1:8000/api"


def get_api_url() -> str:
    return os.environ.get("CARLINE_API_URL", DEFAULT_API_URL).rstrip("/")


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


class DataServiceClient:
    """Async client for the /api catalog endpoints.

    Read failures raise :class:`DataFetchError`. Write rejections (HTTP 4xx)
    come back as ``WriteResult(ok=False)`` with the server's message.
    """

    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 15,
        token: str | None = None,
    ):
        self.base_url = (base_url or get_api_url()).rstrip("/")
        self.transport = transport
        self.timeout = timeout
        self.token = token if token is not None else os.environ.get("CARLINE_LOCAL_TOKEN")

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["X-Local-Token"] = self.token
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, headers=self._headers(), timeout=self.timeout)

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            raise DataFetchError(f"GET {path} failed: {e.response.status_code} {_error_detail(e.response)}") from e
        except httpx.HTTPError as e:
            raise DataFetchError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise DataFetchError(f"GET {path} returned invalid JSON") from e

    async def _post(self, path: str, body: dict[str, Any]) -> WriteResult:
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                resp = await client.post(url, json=body)
        except httpx.HTTPError as e:
            raise DataFetchError(f"POST {path} failed: {e}") from e

        if 400 <= resp.status_code < 500:
            message = _error_detail(resp)
            logger.info("POST %s rejected (%d): %s", path, resp.status_code, message)
            return WriteResult(ok=False, message=message)
        if resp.status_code >= 500:
            raise DataFetchError(f"POST {path} failed: {resp.status_code} {_error_detail(resp)}")
        try:
            return WriteResult.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise DataFetchError(f"POST {path} returned an invalid write result") from e

    def _data_list(self, payload: Any, path: str) -> list:
        if not isinstance(payload, dict) or not payload.get("ok", False) or not isinstance(payload.get("data"), list):
            raise DataFetchError(f"GET {path} returned an unexpected payload")
        return payload["data"]

    # --- reads ---

    async def fetch_series(self) -> list[Series]:
        payload = await self._get("/series")
        try:
            return [Series.model_validate(s) for s in self._data_list(payload, "/series")]
        except ValidationError as e:
            raise DataFetchError("GET /series returned malformed series") from e

    async def fetch_techs(self) -> list[Technology]:
        payload = await self._get("/techs")
        try:
            return [Technology.model_validate(t) for t in self._data_list(payload, "/techs")]
        except ValidationError as e:
            raise DataFetchError("GET /techs returned malformed technologies") from e

    async def fetch_models(self, series_id: int | None = None, energy_type: str | None = None) -> list[CarModel]:
        params: dict[str, Any] = {}
        if series_id is not None:
            params["series_id"] = series_id
        if energy_type:
            params["energy_type"] = energy_type
        payload = await self._get("/models", params=params or None)
        try:
            return [CarModel.model_validate(m) for m in self._data_list(payload, "/models")]
        except ValidationError as e:
            raise DataFetchError("GET /models returned malformed models") from e

    async def fetch_model(self, model_id: int) -> CarModel:
        payload = await self._get("/model", params={"id": model_id})
        try:
            return CarModel.model_validate(payload["data"])
        except (KeyError, TypeError, ValidationError) as e:
            raise DataFetchError(f"GET /model returned a malformed model {model_id}") from e

    async def search(self, keyword: str) -> list[CarModel]:
        payload = await self._get("/search", params={"q": keyword})
        try:
            return [CarModel.model_validate(m) for m in self._data_list(payload, "/search")]
        except ValidationError as e:
            raise DataFetchError("GET /search returned malformed models") from e

    async def fetch_stats(self) -> CatalogStats:
        payload = await self._get("/stats")
        try:
            return CatalogStats.model_validate(payload)
        except ValidationError as e:
            raise DataFetchError("GET /stats returned malformed stats") from e

    async def fetch_graph(self) -> GraphSnapshot:
        """Fetch the three-layer snapshot.

        Raises:
            DataFetchError: transport or HTTP failure.
            MalformedGraphSnapshotError: the payload is not a valid snapshot.
        """
        payload = await self._get("/graph")
        return parse_graph_snapshot(payload)

    # --- writes ---

    async def add_model(self, req: AddModelRequest) -> WriteResult:
        return await self._post("/model/add", req.model_dump())

    async def add_tech(self, req: AddTechRequest) -> WriteResult:
        return await self._post("/tech/add", req.model_dump())
