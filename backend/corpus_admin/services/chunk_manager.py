"""Chunk manager: list, create, update and delete chunk records.

Chunks are listed with their source embedded so the table can show the
source title; a chunk whose source is gone shows its raw ``source_id``.
The source selection control is fed by a separate, concurrent fetch.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from corpus_admin.errors import FetchError, GatewayError
from corpus_admin.schemas.chunk import ChunkForm, ChunkFormValues, ChunkResponse, ChunkRow, SourceOption
from corpus_admin.schemas.common import EditorMode, LoadState, RecordId
from corpus_admin.services.collection import RecordCollection
from corpus_admin.services.gateway import NEWEST_FIRST, Row
from corpus_admin.services.record_manager import RecordManager
from corpus_admin.utils import tags as tag_codec

logger = logging.getLogger(__name__)


def locator(page_number: int | None, timestamp: str | None) -> str:
    """Page wins over timestamp; ``"-"`` when neither is set."""
    if page_number is not None:
        return str(page_number)
    return timestamp or "-"


def to_chunk_row(row: Row, embed_key: str) -> ChunkRow:
    data = dict(row)
    joined = data.pop(embed_key, None)
    source = SourceOption(id=joined["id"], title=joined["title"]) if joined else None
    return ChunkRow(
        **data,
        source=source,
        source_title=source.title if source else str(data["source_id"]),
        locator=locator(data.get("page_number"), data.get("timestamp")),
    )


class ChunkManager(RecordManager[ChunkRow]):
    entity = "chunk"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.source_options: RecordCollection[SourceOption] = RecordCollection(
            "source options", self._fetch_source_options, self.notifier
        )

    @property
    def table(self) -> str:
        return self.settings.CHUNKS_TABLE

    @property
    def sources_table(self) -> str:
        return self.settings.SOURCES_TABLE

    async def _fetch_records(self) -> list[ChunkRow]:
        rows = await self.gateway.select(self.table, embed=(self.sources_table,), order=NEWEST_FIRST)
        return [to_chunk_row(r, self.sources_table) for r in rows]

    async def _fetch_source_options(self) -> list[SourceOption]:
        rows = await self.gateway.select(self.sources_table, columns="id, title", order=NEWEST_FIRST)
        return [SourceOption.model_validate(r) for r in rows]

    @property
    def state(self) -> LoadState:
        if self._mutation_state:
            return self._mutation_state
        states = {self.collection.state, self.source_options.state}
        for state in (LoadState.LOADING, LoadState.LOAD_FAILED):
            if state in states:
                return state
        if states == {LoadState.IDLE}:
            return LoadState.IDLE
        return LoadState.LOADED

    @property
    def last_error(self) -> str | None:
        return self.collection.error or self.source_options.error

    def teardown(self) -> None:
        super().teardown()
        self.source_options.cancel_pending()

    # ── Queries ────────────────────────────────────────────────────────

    async def load(self) -> list[ChunkRow]:
        """Fetch chunks and source options together; ready once both finish."""
        results = await asyncio.gather(
            self.collection.refresh(),
            self.source_options.refresh(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return self.collection.items

    async def list_chunks(self) -> list[ChunkRow]:
        """Fetch all chunks with their source embedded, newest first."""
        return await self.collection.refresh()

    async def list_source_options(self) -> list[SourceOption]:
        return await self.source_options.refresh()

    async def get_chunk(self, chunk_id: RecordId) -> ChunkRow | None:
        try:
            rows = await self.gateway.select(
                self.table, embed=(self.sources_table,), filters={"id": chunk_id}
            )
        except GatewayError as exc:
            self.notifier.error(exc.message)
            raise FetchError(exc.message) from exc
        return to_chunk_row(rows[0], self.sources_table) if rows else None

    def form_values(self, record: ChunkResponse) -> ChunkFormValues:
        """Values the edit dialog is pre-filled with."""
        return ChunkFormValues(
            source_id=record.source_id,
            page_number=record.page_number,
            timestamp=record.timestamp,
            text=record.text,
            summary=record.summary,
            tags=tag_codec.encode(record.tags),
        )

    # ── Mutations ──────────────────────────────────────────────────────

    async def create_chunk(self, values: ChunkForm | Mapping[str, Any]) -> ChunkResponse:
        row = self._validate(ChunkForm, values).to_row()

        async def persist() -> ChunkResponse:
            created = await self.gateway.insert(self.table, row)
            return ChunkResponse.model_validate(created)

        return await self._submit(persist, "Created chunk")

    async def update_chunk(self, chunk_id: RecordId, values: ChunkForm | Mapping[str, Any]) -> None:
        row = self._validate(ChunkForm, values).to_row()

        async def persist() -> None:
            await self.gateway.update(self.table, row, chunk_id)

        await self._submit(persist, "Updated chunk")

    async def delete_chunk(self, chunk_id: RecordId) -> None:
        await self._remove(lambda: self.gateway.delete(self.table, chunk_id), chunk_id)

    async def submit(self, values: Mapping[str, Any], **kwargs: Any) -> Any:
        if self.editor.mode is EditorMode.EDIT:
            return await self.update_chunk(self.editor.record_id, values)
        return await self.create_chunk(values)
