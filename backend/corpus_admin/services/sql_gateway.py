"""Local gateway: SQLAlchemy tables plus filesystem object storage.

Implements the same contract as the Supabase gateway against the ORM tables
declared in ``corpus_admin.models``, so the admin panel runs (and is tested)
without a hosted project. Embedded relations follow the foreign-key columns
listed in ``EMBEDS``; a dangling reference embeds as ``None``.

SQLite calls are short, so they run inline on the event loop.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from corpus_admin.database import Base
from corpus_admin.errors import GatewayError
from corpus_admin.services.gateway import Gateway, Order, Row
from corpus_admin.services.local_storage import LocalObjectStorage

logger = logging.getLogger(__name__)

# (table, embedded table) -> foreign-key column on ``table``
EMBEDS: dict[tuple[str, str], str] = {
    ("chunks", "sources"): "source_id",
}


def _db_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class SqlGateway(Gateway):
    def __init__(self, engine: Engine, storage: LocalObjectStorage):
        self._engine = engine
        self.storage = storage

    def _table(self, name: str) -> sa.Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise GatewayError(f'relation "{name}" does not exist', status_code=404)
        return table

    @staticmethod
    def _column(table: sa.Table, name: str) -> sa.Column:
        if name not in table.c:
            raise GatewayError(f"column {table.name}.{name} does not exist", status_code=400)
        return table.c[name]

    def _check_row(self, table: sa.Table, row: Mapping[str, Any]) -> dict[str, Any]:
        for key in row:
            self._column(table, key)
        return dict(row)

    # ── Tables ─────────────────────────────────────────────────────────

    async def select(
        self,
        table: str,
        columns: str = "*",
        embed: Sequence[str] = (),
        filters: Mapping[str, Any] | None = None,
        order: Order | None = None,
    ) -> list[Row]:
        t = self._table(table)
        wanted = None if columns.strip() == "*" else [c.strip() for c in columns.split(",") if c.strip()]
        for name in wanted or ():
            self._column(t, name)

        stmt = sa.select(t)
        for column, value in (filters or {}).items():
            stmt = stmt.where(self._column(t, column) == value)
        if order is not None:
            col = self._column(t, order.column)
            stmt = stmt.order_by(col.asc() if order.ascending else col.desc())

        try:
            with self._engine.connect() as conn:
                rows = [dict(r._mapping) for r in conn.execute(stmt)]
                embedded = {name: self._embed(conn, table, name, rows) for name in embed}
        except SQLAlchemyError as exc:
            raise GatewayError(_db_message(exc)) from exc

        if wanted is not None:
            rows = [{k: r[k] for k in wanted} for r in rows]
        for name, values in embedded.items():
            for row, value in zip(rows, values):
                row[name] = value
        return rows

    def _embed(self, conn: sa.Connection, table: str, name: str, rows: list[Row]) -> list[Row | None]:
        fk = EMBEDS.get((table, name))
        if fk is None:
            raise GatewayError(
                f"Could not find a relationship between '{table}' and '{name}'", status_code=400
            )
        related = self._table(name)
        ids = {r[fk] for r in rows if r.get(fk) is not None}
        found: dict[Any, Row] = {}
        if ids:
            found = {
                r.id: dict(r._mapping)
                for r in conn.execute(sa.select(related).where(related.c.id.in_(ids)))
            }
        return [found.get(r.get(fk)) for r in rows]

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        t = self._table(table)
        values = self._check_row(t, row)
        try:
            with self._engine.begin() as conn:
                result = conn.execute(t.insert().values(**values))
                new_id = result.inserted_primary_key[0]
                created = conn.execute(sa.select(t).where(t.c.id == new_id)).one()
        except SQLAlchemyError as exc:
            raise GatewayError(_db_message(exc)) from exc
        return dict(created._mapping)

    async def update(self, table: str, row: Mapping[str, Any], match_id: Any) -> None:
        t = self._table(table)
        values = self._check_row(t, row)
        try:
            with self._engine.begin() as conn:
                conn.execute(t.update().where(t.c.id == match_id).values(**values))
        except SQLAlchemyError as exc:
            raise GatewayError(_db_message(exc)) from exc

    async def delete(self, table: str, match_id: Any, column: str = "id") -> None:
        t = self._table(table)
        try:
            with self._engine.begin() as conn:
                conn.execute(t.delete().where(self._column(t, column) == match_id))
        except SQLAlchemyError as exc:
            raise GatewayError(_db_message(exc)) from exc

    # ── Storage ────────────────────────────────────────────────────────

    async def upload_object(
        self, bucket: str, path: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> str:
        return self.storage.upload(bucket, path, data)

    def get_public_url(self, bucket: str, path: str) -> str:
        return self.storage.public_url(bucket, path)

    async def remove_object(self, bucket: str, path: str) -> None:
        self.storage.remove(bucket, path)

    async def aclose(self) -> None:
        self._engine.dispose()
