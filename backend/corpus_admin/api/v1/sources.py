"""Source management endpoints (multipart forms with an optional PDF)."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from corpus_admin.dependencies import get_source_manager
from corpus_admin.schemas.common import MessageResponse, ViewState
from corpus_admin.schemas.source import SourceFormValues, SourceResponse
from corpus_admin.services.source_manager import SourceManager, UploadedFile

router = APIRouter()


async def _read_upload(file: UploadFile | None) -> UploadedFile | None:
    if file is None or not file.filename:
        return None
    content = await file.read()
    return UploadedFile(
        filename=file.filename,
        content=content,
        content_type=file.content_type or "application/pdf",
    )


def _form_values(**fields: str | None) -> dict:
    """Drop fields that were not sent so the form reports them as missing."""
    return {k: v for k, v in fields.items() if v is not None}


@router.get("/sources", response_model=list[SourceResponse])
async def list_sources(manager: SourceManager = Depends(get_source_manager)):
    return await manager.list_sources()


@router.get("/sources/state", response_model=ViewState)
def source_view_state(manager: SourceManager = Depends(get_source_manager)):
    return manager.view_state()


@router.post("/sources", response_model=SourceResponse, status_code=201)
async def create_source(
    title: str | None = Form(None),
    type_: str | None = Form(None, alias="type"),
    file_url: str | None = Form(None),
    language: str | None = Form(None),
    tags: str | None = Form(None),
    file: UploadFile | None = File(None),
    manager: SourceManager = Depends(get_source_manager),
):
    """Create a source; an attached PDF is uploaded first and its URL stored."""
    values = _form_values(title=title, type=type_, file_url=file_url, language=language, tags=tags)
    return await manager.create_source(values, await _read_upload(file))


@router.get("/sources/{source_id}/form", response_model=SourceFormValues)
async def source_form(source_id: str, manager: SourceManager = Depends(get_source_manager)):
    source = await manager.get_source(source_id)
    if source is None:
        raise HTTPException(status_code=404, detail="Source not found")
    return manager.form_values(source)


@router.put("/sources/{source_id}", response_model=MessageResponse)
async def update_source(
    source_id: str,
    title: str | None = Form(None),
    type_: str | None = Form(None, alias="type"),
    file_url: str | None = Form(None),
    language: str | None = Form(None),
    tags: str | None = Form(None),
    file: UploadFile | None = File(None),
    manager: SourceManager = Depends(get_source_manager),
):
    values = _form_values(title=title, type=type_, file_url=file_url, language=language, tags=tags)
    await manager.update_source(source_id, values, await _read_upload(file))
    return MessageResponse(message="Updated source")


@router.delete("/sources/{source_id}", status_code=204)
async def delete_source(source_id: str, manager: SourceManager = Depends(get_source_manager)):
    await manager.delete_source(source_id)
