"""Source manager: list, create, update and delete source records.

A source may carry an uploaded PDF. The write is two-phase: the file goes to
object storage first (under ``<epoch-millis>_<filename>``) and its public URL
replaces any ``file_url`` typed by hand; then the row is persisted. A failed
upload aborts before any row write. A failed row write removes the object
that was just uploaded so storage does not collect orphans.

Deleting a source follows ``SOURCE_DELETE_POLICY``:
  - ``orphan``: delete the source only; its chunks keep the dangling id
  - ``cascade``: delete the source, then every chunk referencing it in one call
  - ``restrict``: refuse while any chunk references the source
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from corpus_admin.errors import (
    FetchError,
    GatewayError,
    ReferentialIntegrityError,
    UploadError,
    ValidationError,
)
from corpus_admin.schemas.source import SourceForm, SourceFormValues, SourceResponse
from corpus_admin.schemas.common import EditorMode, RecordId
from corpus_admin.services.gateway import NEWEST_FIRST
from corpus_admin.services.record_manager import RecordManager
from corpus_admin.utils import tags as tag_codec
from corpus_admin.utils.helpers import ALLOWED_UPLOAD_EXTENSIONS, is_allowed_file, make_upload_path

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    """A file picked in the source editor, held until the form is submitted."""
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass
class StoredObject:
    bucket: str
    path: str
    url: str


class SourceManager(RecordManager[SourceResponse]):
    entity = "source"

    @property
    def table(self) -> str:
        return self.settings.SOURCES_TABLE

    async def _fetch_records(self) -> list[SourceResponse]:
        rows = await self.gateway.select(self.table, order=NEWEST_FIRST)
        return [SourceResponse.model_validate(r) for r in rows]

    # ── Queries ────────────────────────────────────────────────────────

    async def list_sources(self) -> list[SourceResponse]:
        """Fetch all sources, newest first."""
        return await self.collection.refresh()

    async def get_source(self, source_id: RecordId) -> SourceResponse | None:
        try:
            rows = await self.gateway.select(self.table, filters={"id": source_id})
        except GatewayError as exc:
            self.notifier.error(exc.message)
            raise FetchError(exc.message) from exc
        return SourceResponse.model_validate(rows[0]) if rows else None

    def form_values(self, record: SourceResponse) -> SourceFormValues:
        """Values the edit dialog is pre-filled with."""
        return SourceFormValues(
            title=record.title,
            type=record.type,
            file_url=record.file_url or "",
            language=record.language or self.settings.DEFAULT_LANGUAGE,
            tags=tag_codec.encode(record.tags),
        )

    # ── Upload phase ───────────────────────────────────────────────────

    def _check_upload(self, upload: UploadedFile | None) -> None:
        if upload is None:
            return
        if not is_allowed_file(upload.filename):
            allowed = ", ".join(sorted(ALLOWED_UPLOAD_EXTENSIONS))
            raise ValidationError(f"Rejected '{upload.filename}': only {allowed} files can be uploaded")
        if len(upload.content) > self.settings.max_upload_bytes:
            raise ValidationError(
                f"'{upload.filename}' exceeds {self.settings.MAX_UPLOAD_SIZE_MB}MB limit"
            )

    async def _upload(self, upload: UploadedFile) -> StoredObject:
        bucket = self.settings.STORAGE_BUCKET
        path = make_upload_path(upload.filename)
        try:
            stored = await self.gateway.upload_object(bucket, path, upload.content, upload.content_type)
        except GatewayError as exc:
            raise UploadError(f"Upload failed: {exc.message}") from exc
        logger.info("Uploaded %s to %s/%s", upload.filename, bucket, stored)
        return StoredObject(bucket, stored, self.gateway.get_public_url(bucket, stored))

    async def _discard_upload(self, stored: StoredObject) -> None:
        try:
            await self.gateway.remove_object(stored.bucket, stored.path)
        except GatewayError as exc:
            logger.error("Could not remove orphaned upload %s/%s: %s", stored.bucket, stored.path, exc.message)
        else:
            logger.info("Removed orphaned upload %s/%s", stored.bucket, stored.path)

    async def _write_with_upload(self, row: dict, upload: UploadedFile | None, persist):
        stored = await self._upload(upload) if upload is not None else None
        if stored is not None:
            row["file_url"] = stored.url
        try:
            return await persist(row)
        except GatewayError:
            if stored is not None:
                await self._discard_upload(stored)
            raise

    def _prepare(self, values, upload: UploadedFile | None) -> dict:
        form = self._validate(SourceForm, values)
        try:
            self._check_upload(upload)
        except ValidationError as exc:
            self.notifier.error(exc.message)
            raise
        return form.to_row(self.settings.DEFAULT_LANGUAGE)

    # ── Mutations ──────────────────────────────────────────────────────

    async def create_source(
        self, values: SourceForm | Mapping[str, Any], upload: UploadedFile | None = None
    ) -> SourceResponse:
        row = self._prepare(values, upload)

        async def persist(r: dict) -> SourceResponse:
            created = await self.gateway.insert(self.table, r)
            return SourceResponse.model_validate(created)

        return await self._submit(lambda: self._write_with_upload(row, upload, persist), "Created source")

    async def update_source(
        self,
        source_id: RecordId,
        values: SourceForm | Mapping[str, Any],
        upload: UploadedFile | None = None,
    ) -> None:
        row = self._prepare(values, upload)

        async def persist(r: dict) -> None:
            await self.gateway.update(self.table, r, source_id)

        await self._submit(lambda: self._write_with_upload(row, upload, persist), "Updated source")

    async def delete_source(self, source_id: RecordId) -> None:
        await self._remove(lambda: self._delete_with_policy(source_id), source_id)

    async def _delete_with_policy(self, source_id: RecordId) -> None:
        policy = self.settings.SOURCE_DELETE_POLICY
        chunks_table = self.settings.CHUNKS_TABLE
        if policy == "restrict":
            dependents = await self.gateway.select(chunks_table, columns="id", filters={"source_id": source_id})
            if dependents:
                raise ReferentialIntegrityError(
                    f"Source is referenced by {len(dependents)} chunk(s); delete them first"
                )
        await self.gateway.delete(self.table, source_id)
        if policy != "cascade":
            return
        # The source is already gone; leftover chunks are the orphan-policy state.
        try:
            await self.gateway.delete(chunks_table, source_id, column="source_id")
        except GatewayError as exc:
            message = f"Deleted source but not its chunks: {exc.message}"
            self.notifier.error(message)
            logger.error("Cascade delete for source %s failed: %s", source_id, exc.message)
        else:
            logger.info("Cascade-deleted chunks of source %s", source_id)

    async def submit(self, values: Mapping[str, Any], upload: UploadedFile | None = None) -> Any:
        if self.editor.mode is EditorMode.EDIT:
            return await self.update_source(self.editor.record_id, values, upload)
        return await self.create_source(values, upload)
