"""Chunk schemas."""
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from corpus_admin.schemas.common import RecordId
from corpus_admin.utils import tags as tag_codec


class ChunkForm(BaseModel):
    """Values submitted from the chunk editor."""
    source_id: RecordId
    page_number: int | None = None
    timestamp: str | None = None  # free text, e.g. "00:03:45"
    text: str = Field(..., min_length=1)
    summary: str | None = None
    tags: str | list[str] | None = None

    @field_validator("source_id")
    @classmethod
    def _source_required(cls, v):
        if isinstance(v, str) and not v.strip():
            raise ValueError("source_id is required")
        return v

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text is required")
        return v

    @field_validator("page_number", mode="before")
    @classmethod
    def _coerce_page_number(cls, v):
        """Text from the page field becomes an integer; blank becomes null."""
        if v is None:
            return None
        if isinstance(v, bool):
            raise ValueError("page_number must be a whole number")
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            try:
                return int(v)
            except ValueError:
                try:
                    v = float(v)
                except ValueError:
                    raise ValueError("page_number must be a whole number") from None
        if isinstance(v, float):
            if not v.is_integer():
                raise ValueError("page_number must be a whole number")
            return int(v)
        return v

    @field_validator("timestamp", "summary", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_row(self) -> dict:
        """Build the row written to the ``chunks`` table."""
        return {
            "source_id": self.source_id,
            "page_number": self.page_number,
            "timestamp": self.timestamp,
            "text": self.text,
            "summary": self.summary,
            "tags": tag_codec.normalize(self.tags),
        }


class SourceOption(BaseModel):
    """Entry of the source selection control."""
    id: RecordId
    title: str


class ChunkResponse(BaseModel):
    id: RecordId
    source_id: RecordId
    page_number: int | None = None
    timestamp: str | None = None
    text: str
    summary: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    source: SourceOption | None = None

    model_config = {"from_attributes": True}

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, v):
        return v or []


class ChunkRow(ChunkResponse):
    """A chunk as shown in the listing table."""
    source_title: str
    locator: str


class ChunkFormValues(BaseModel):
    """Pre-filled values for editing an existing chunk."""
    source_id: RecordId
    page_number: int | None
    timestamp: str | None
    text: str
    summary: str | None
    tags: str
