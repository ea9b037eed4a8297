"""Create/Edit dialog state shared by both managers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from corpus_admin.schemas.common import EditorMode

T = TypeVar("T")


@dataclass
class Editor(Generic[T]):
    mode: EditorMode = EditorMode.CREATE
    record: T | None = None
    is_open: bool = False
    error: str | None = None

    def open(self, record: T | None = None) -> None:
        """Open in Edit mode when a record is given, otherwise in Create mode."""
        self.record = record
        self.mode = EditorMode.EDIT if record is not None else EditorMode.CREATE
        self.is_open = True
        self.error = None

    def close(self) -> None:
        self.record = None
        self.mode = EditorMode.CREATE
        self.is_open = False
        self.error = None

    @property
    def record_id(self) -> Any:
        return getattr(self.record, "id", None)
