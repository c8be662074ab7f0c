# File: /gridbase/client/transport.py | Version: 1.0 | Title: Async HTTP transport for the grid API
"""Client for the grid HTTP API. Maps HTTP failures onto the shared error taxonomy."""

from __future__ import annotations

import logging
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from gridbase.core.config import settings
from gridbase.core.errors import ConflictError, GridError, NotFoundError, TransientWriteError
from gridbase.schemas.filters import QuerySpec
from gridbase.schemas.grid import ColumnOut, RowsPage
from gridbase.schemas.view import ViewConfig, ViewOut

logger = logging.getLogger(__name__)


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        if "detail" in body:
            return str(body["detail"])
        err = body.get("error")
        if isinstance(err, dict) and "message" in err:
            return str(err["message"])
    return str(body)


class HttpGridTransport:
    """Async client for the grid API. Every call is independent; nothing is retried."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.http_client = client or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout if timeout is not None else settings.API_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def __aenter__(self) -> "HttpGridTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, *, json: Any = None, write: bool = False) -> Any:
        failure = TransientWriteError if write else GridError
        try:
            response = await self.http_client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise failure(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(_detail(response))
        if response.status_code == 409:
            raise ConflictError(_detail(response))
        if response.status_code >= 400:
            logger.warning("%s %s returned %s", method, path, response.status_code)
            raise failure(f"{method} {path} returned {response.status_code}: {_detail(response)}")
        return response.json()

    # ---- Rows ----

    async def get_rows(self, table_id: str, spec: QuerySpec) -> RowsPage:
        body = await self._request("POST", f"/tables/{table_id}/rows/query", json=spec.wire())
        return RowsPage.model_validate(body)

    async def add_row(self, table_id: str) -> int:
        body = await self._request("POST", f"/tables/{table_id}/rows", write=True)
        return int(body["id"])

    async def update_cell(self, table_id: str, row_id: int, column_id: str, value: Any) -> bool:
        body = await self._request(
            "PUT",
            f"/tables/{table_id}/rows/{row_id}/cells/{column_id}",
            json={"value": value},
            write=True,
        )
        return bool(body.get("success"))

    # ---- Columns ----

    async def get_columns(self, table_id: str) -> List[ColumnOut]:
        body = await self._request("GET", f"/tables/{table_id}/columns")
        return [ColumnOut.model_validate(c) for c in body]

    async def add_column_and_populate(
        self, table_id: str, name: str, column_type: str, default_value: Any = ""
    ) -> ColumnOut:
        body = await self._request(
            "POST",
            f"/tables/{table_id}/columns",
            json={"name": name, "type": column_type, "defaultValue": default_value},
            write=True,
        )
        return ColumnOut.model_validate(body)

    async def delete_column(self, column_id: str) -> bool:
        body = await self._request("DELETE", f"/columns/{column_id}", write=True)
        return bool(body.get("success"))

    async def rename_column(self, column_id: str, name: str) -> ColumnOut:
        body = await self._request("PATCH", f"/columns/{column_id}", json={"name": name}, write=True)
        return ColumnOut.model_validate(body)

    # ---- Views ----

    async def get_views(self, table_id: str) -> List[ViewOut]:
        body = await self._request("GET", f"/tables/{table_id}/views")
        return [ViewOut.model_validate(v) for v in body]

    async def save_view(self, table_id: str, name: str, config: ViewConfig) -> ViewOut:
        body = await self._request(
            "PUT", f"/tables/{table_id}/views/{quote(name, safe='')}", json={"config": config.wire()}, write=True
        )
        return ViewOut.model_validate(body)

    async def create_view(self, table_id: str, name: str) -> ViewOut:
        body = await self._request("POST", f"/tables/{table_id}/views", json={"name": name}, write=True)
        return ViewOut.model_validate(body)
