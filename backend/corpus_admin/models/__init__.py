"""SQLAlchemy ORM models package (tables of the local gateway)."""
from corpus_admin.models.source import Source
from corpus_admin.models.chunk import Chunk

__all__ = [
    "Source",
    "Chunk",
]
