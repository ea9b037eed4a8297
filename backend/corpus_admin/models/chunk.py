"""Chunk model: an excerpt of a source with an optional page/timestamp locator."""
import uuid
from datetime import datetime, timezone
from sqlalchemy import String, Text, Integer, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from corpus_admin.database import Base


class Chunk(Base):
    __tablename__ = "chunks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Plain column, not a ForeignKey: deleting a source may leave chunks behind
    source_id: Mapped[str] = mapped_column(String(36), nullable=False)
    page_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    timestamp: Mapped[str | None] = mapped_column(String(32), nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_chunks_source_id", "source_id"),
        Index("ix_chunks_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Chunk {self.id[:8]} of source {self.source_id[:8]}>"
