"""Remote data gateway interface.

A gateway is the generic tabular store plus object storage that every record
operation delegates to. Two implementations exist:

  - ``RestGateway`` (``rest_gateway.py``): Supabase/PostgREST over HTTP
  - ``SqlGateway`` (``sql_gateway.py``): SQLAlchemy tables + local filesystem

Rows travel as plain dicts. A related table requested through ``embed``
appears under that table's name, or ``None`` when the referenced row is
missing. Every failure is raised as ``GatewayError``.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from corpus_admin.config import Settings

Row = dict[str, Any]


@dataclass(frozen=True)
class Order:
    """Sort specification for ``select``."""
    column: str
    ascending: bool = True


NEWEST_FIRST = Order("created_at", ascending=False)


class Gateway(ABC):
    """Abstract tabular store + object storage."""

    @abstractmethod
    async def select(
        self,
        table: str,
        columns: str = "*",
        embed: Sequence[str] = (),
        filters: Mapping[str, Any] | None = None,
        order: Order | None = None,
    ) -> list[Row]:
        """Return rows of *table* matching every ``column == value`` filter.

        Args:
            table: Table name.
            columns: ``"*"`` or a comma-separated column list.
            embed: Related tables to embed through their foreign key.
            filters: Equality filters.
            order: Optional sort.
        """

    @abstractmethod
    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        """Insert *row* and return the created row with generated fields."""

    @abstractmethod
    async def update(self, table: str, row: Mapping[str, Any], match_id: Any) -> None:
        """Apply *row* to the record whose ``id`` equals *match_id*."""

    @abstractmethod
    async def delete(self, table: str, match_id: Any, column: str = "id") -> None:
        """Delete every record whose *column* (``id`` by default) equals *match_id*."""

    @abstractmethod
    async def upload_object(
        self, bucket: str, path: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> str:
        """Store *data* under *path* (never overwriting) and return the stored path."""

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        """Return the public URL of a stored object."""

    @abstractmethod
    async def remove_object(self, bucket: str, path: str) -> None:
        """Delete a stored object."""

    async def aclose(self) -> None:
        """Release resources held by the gateway."""


def build_gateway(settings: Settings) -> Gateway:
    """Create the gateway selected by ``GATEWAY_BACKEND``."""
    if settings.GATEWAY_BACKEND == "supabase":
        from corpus_admin.services.rest_gateway import RestGateway
        return RestGateway(settings.SUPABASE_URL, settings.SUPABASE_KEY)

    from corpus_admin.database import create_tables, engine
    from corpus_admin.services.local_storage import LocalObjectStorage
    from corpus_admin.services.sql_gateway import SqlGateway

    create_tables(engine)
    storage = LocalObjectStorage(settings.storage_path, f"{settings.PUBLIC_BASE_URL.rstrip('/')}/storage")
    return SqlGateway(engine, storage)
