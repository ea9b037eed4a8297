"""FastAPI dependencies resolving the per-app managers built in the lifespan."""
from fastapi import Request

from corpus_admin.services.chunk_manager import ChunkManager
from corpus_admin.services.notifier import Notifier
from corpus_admin.services.source_manager import SourceManager


def get_source_manager(request: Request) -> SourceManager:
    return request.app.state.source_manager


def get_chunk_manager(request: Request) -> ChunkManager:
    return request.app.state.chunk_manager


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier
