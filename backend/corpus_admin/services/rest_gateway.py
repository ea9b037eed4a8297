"""Supabase gateway: PostgREST tables and Storage objects over HTTP.

Table calls go to ``{url}/rest/v1/{table}`` using PostgREST query syntax
(``select=*,sources(*)``, ``order=created_at.desc``, ``id=eq.<id>``).
Object calls go to ``{url}/storage/v1/object/...``. Both send the project
key as ``apikey`` and as a bearer token.

No retry logic lives here; a failed call is raised once as ``GatewayError``
carrying the server's message text.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx

from corpus_admin.errors import GatewayError
from corpus_admin.services.gateway import Gateway, Order, Row
from corpus_admin.services.http_client_manager import get_http_client

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    """Pull the human-readable message out of a PostgREST/Storage error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        for key in ("message", "error_description", "error", "msg"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {resp.status_code}"


def _eq(value: Any) -> str:
    return f"eq.{value}"


def _select_list(columns: str, embed: Sequence[str]) -> str:
    """PostgREST ``select`` value; whitespace outside double quotes is dropped."""
    cleaned = []
    quoted = False
    for ch in columns:
        if ch == '"':
            quoted = not quoted
        elif ch.isspace() and not quoted:
            continue
        cleaned.append(ch)
    return ",".join(["".join(cleaned), *(f"{t}(*)" for t in embed)])


class RestGateway(Gateway):
    """Gateway backed by a Supabase project."""

    def __init__(self, base_url: str, api_key: str, client: httpx.AsyncClient | None = None):
        if not base_url:
            raise ValueError("SUPABASE_URL is required for the supabase gateway")
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client = client

    # ── HTTP plumbing ──────────────────────────────────────────────────

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client if self._client is not None else get_http_client("supabase")

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {"apikey": self._api_key, "Authorization": f"Bearer {self._api_key}"}
        headers.update(extra)
        return headers

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise GatewayError(str(exc) or exc.__class__.__name__) from exc
        if resp.is_error:
            message = _error_message(resp)
            logger.warning("%s %s -> %d: %s", method, url, resp.status_code, message)
            raise GatewayError(message, status_code=resp.status_code)
        return resp

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    # ── Tables ─────────────────────────────────────────────────────────

    async def select(
        self,
        table: str,
        columns: str = "*",
        embed: Sequence[str] = (),
        filters: Mapping[str, Any] | None = None,
        order: Order | None = None,
    ) -> list[Row]:
        params: dict[str, str] = {"select": _select_list(columns, embed)}
        for column, value in (filters or {}).items():
            params[column] = _eq(value)
        if order is not None:
            params["order"] = f"{order.column}.{'asc' if order.ascending else 'desc'}"
        resp = await self._send("GET", self._table_url(table), params=params, headers=self._headers())
        return resp.json()

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        resp = await self._send(
            "POST",
            self._table_url(table),
            json=[dict(row)],
            headers=self._headers(Prefer="return=representation"),
        )
        created = resp.json()
        if not created:
            raise GatewayError(f"Insert into {table} returned no row")
        return created[0]

    async def update(self, table: str, row: Mapping[str, Any], match_id: Any) -> None:
        await self._send(
            "PATCH",
            self._table_url(table),
            params={"id": _eq(match_id)},
            json=dict(row),
            headers=self._headers(Prefer="return=minimal"),
        )

    async def delete(self, table: str, match_id: Any, column: str = "id") -> None:
        await self._send(
            "DELETE",
            self._table_url(table),
            params={column: _eq(match_id)},
            headers=self._headers(Prefer="return=minimal"),
        )

    # ── Storage ────────────────────────────────────────────────────────

    async def upload_object(
        self, bucket: str, path: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> str:
        await self._send(
            "POST",
            f"{self.base_url}/storage/v1/object/{bucket}/{quote(path)}",
            content=data,
            headers=self._headers(**{"Content-Type": content_type, "x-upsert": "false"}),
        )
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(path)}"

    async def remove_object(self, bucket: str, path: str) -> None:
        await self._send(
            "DELETE",
            f"{self.base_url}/storage/v1/object/{bucket}",
            json={"prefixes": [path]},
            headers=self._headers(),
        )

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
