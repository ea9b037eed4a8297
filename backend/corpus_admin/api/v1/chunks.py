"""Chunk management endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from corpus_admin.dependencies import get_chunk_manager
from corpus_admin.schemas.chunk import ChunkFormValues, ChunkResponse, ChunkRow, SourceOption
from corpus_admin.schemas.common import MessageResponse, ViewState
from corpus_admin.services.chunk_manager import ChunkManager

router = APIRouter()


@router.get("/chunks", response_model=list[ChunkRow])
async def list_chunks(manager: ChunkManager = Depends(get_chunk_manager)):
    """Reload chunks and source options together and return the chunk rows."""
    return await manager.load()


@router.get("/chunks/source-options", response_model=list[SourceOption])
async def list_source_options(manager: ChunkManager = Depends(get_chunk_manager)):
    return await manager.list_source_options()


@router.get("/chunks/state", response_model=ViewState)
def chunk_view_state(manager: ChunkManager = Depends(get_chunk_manager)):
    return manager.view_state()


@router.post("/chunks", response_model=ChunkResponse, status_code=201)
async def create_chunk(
    payload: dict[str, Any] = Body(...),
    manager: ChunkManager = Depends(get_chunk_manager),
):
    """Create a chunk; the manager validates the editor values and reports failures."""
    return await manager.create_chunk(payload)


@router.get("/chunks/{chunk_id}/form", response_model=ChunkFormValues)
async def chunk_form(chunk_id: str, manager: ChunkManager = Depends(get_chunk_manager)):
    chunk = await manager.get_chunk(chunk_id)
    if chunk is None:
        raise HTTPException(status_code=404, detail="Chunk not found")
    return manager.form_values(chunk)


@router.put("/chunks/{chunk_id}", response_model=MessageResponse)
async def update_chunk(
    chunk_id: str,
    payload: dict[str, Any] = Body(...),
    manager: ChunkManager = Depends(get_chunk_manager),
):
    await manager.update_chunk(chunk_id, payload)
    return MessageResponse(message="Updated chunk")


@router.delete("/chunks/{chunk_id}", status_code=204)
async def delete_chunk(chunk_id: str, manager: ChunkManager = Depends(get_chunk_manager)):
    await manager.delete_chunk(chunk_id)
