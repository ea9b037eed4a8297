"""Shared / common schemas: enums, identifiers, base responses."""
from datetime import datetime
from enum import Enum
from pydantic import BaseModel

# PostgREST projects may use bigint or uuid keys; the local gateway uses uuid strings.
RecordId = str | int


# ── Enums ──────────────────────────────────────────────────────────────

class SourceKind(str, Enum):
    BOOK = "book"
    VIDEO = "video"


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"
    SUBMITTING = "submitting"
    EDIT_ERROR = "edit_error"


class EditorMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


# ── Common Responses ───────────────────────────────────────────────────

class MessageResponse(BaseModel):
    message: str
    detail: str | None = None


class ErrorResponse(BaseModel):
    error: str
    detail: str


class NotificationResponse(BaseModel):
    level: NotificationLevel
    message: str
    created_at: datetime


class ViewState(BaseModel):
    """Where a manager sits in its load/submit cycle, plus its editor dialog."""
    state: LoadState
    count: int
    error: str | None = None
    editor_open: bool
    editor_mode: EditorMode
    editor_record_id: RecordId | None = None
    editor_error: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    gateway: str
    timestamp: datetime
