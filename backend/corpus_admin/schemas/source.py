"""Source schemas."""
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from corpus_admin.schemas.common import RecordId, SourceKind
from corpus_admin.utils import tags as tag_codec


class SourceForm(BaseModel):
    """Values submitted from the source editor."""
    title: str = Field(..., min_length=1)
    type: SourceKind
    file_url: str | None = None
    language: str | None = None
    # Comma-separated, as typed; a list is accepted too
    tags: str | list[str] | None = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title is required")
        return v

    @field_validator("file_url", "language", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_row(self, default_language: str = "Hindi") -> dict:
        """Build the row written to the ``sources`` table."""
        return {
            "title": self.title,
            "type": self.type.value,
            "file_url": self.file_url,
            "language": self.language or default_language,
            "tags": tag_codec.normalize(self.tags),
        }


class SourceResponse(BaseModel):
    id: RecordId
    title: str
    type: str
    file_url: str | None = None
    language: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, v):
        return v or []


class SourceFormValues(BaseModel):
    """Pre-filled values for editing an existing source."""
    title: str
    type: str
    file_url: str
    language: str
    tags: str
