"""Notes API endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.cache import NoteCache, get_note_cache
from ..core.schemas.common import ErrorResponse
from ..core.schemas.notes import (
    DeleteConflictResponse,
    NoteCreate,
    NoteDeleteResponse,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
    NoteVersionResponse,
    ResolutionConflictResponse,
    ResolveConflictRequest,
    ResolveConflictResponse,
    RevertResponse,
    SharedNoteItem,
    UpdateConflictResponse,
)
from ..core.services import NoteService
from ..database import get_db_session
from ..middleware.auth import get_current_user_id

router = APIRouter(prefix="/notes", tags=["notes"])

NOT_FOUND = {404: {"model": ErrorResponse}}
WRITE_ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse, "description": "Storage contended or unavailable, retry"},
}


def get_note_service(
    session: AsyncSession = Depends(get_db_session),
    cache: NoteCache = Depends(get_note_cache),
) -> NoteService:
    return NoteService(session, cache)


@router.post("/", response_model=NoteResponse, status_code=201)
async def create_note(
    request: NoteCreate,
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    """Create a new note at version 1."""
    return await note_service.create_note(current_user_id, request)


@router.get("/", response_model=NoteListResponse)
async def list_notes(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    """List the caller's notes, most recently updated first."""
    return await note_service.list_user_notes(current_user_id, page=page, per_page=per_page)


@router.get("/shared", response_model=List[SharedNoteItem])
async def list_shared_notes(
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    """List notes other users have shared with the caller."""
    return await note_service.list_shared_notes(current_user_id)


@router.get("/{note_id}", response_model=NoteResponse, responses=NOT_FOUND)
async def get_note(
    note_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    return await note_service.get_note(note_id, current_user_id)


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    responses={**WRITE_ERRORS, 409: {"model": UpdateConflictResponse}},
)
async def update_note(
    note_id: UUID,
    request: NoteUpdate,
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    """Update a note. ``version`` must equal the note's current version or a 409 is returned."""
    return await note_service.update_note(note_id, current_user_id, request)


@router.delete(
    "/{note_id}",
    response_model=NoteDeleteResponse,
    responses={**WRITE_ERRORS, 409: {"model": DeleteConflictResponse}},
)
async def delete_note(
    note_id: UUID,
    version: int = Query(..., ge=1, description="Version the client last fetched"),
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    """Soft delete a note. Its history stays available."""
    return await note_service.delete_note(note_id, current_user_id, version)


@router.delete("/{note_id}/permanent", response_model=NoteDeleteResponse, responses=WRITE_ERRORS)
async def permanently_delete_note(
    note_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    """Irreversibly delete a note with its whole history. No version check."""
    return await note_service.permanently_delete_note(note_id, current_user_id)


@router.get("/{note_id}/versions", response_model=List[NoteVersionResponse], responses=NOT_FOUND)
async def list_versions(
    note_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    """Version history, newest first. Also works for soft deleted notes."""
    return await note_service.list_versions(note_id, current_user_id)


@router.post("/{note_id}/revert/{version}", response_model=RevertResponse, responses=WRITE_ERRORS)
async def revert_note(
    note_id: UUID,
    version: int,
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    """Create a new version holding the title/content of ``version``."""
    return await note_service.revert_note(note_id, current_user_id, version)


@router.post(
    "/{note_id}/resolve-conflict",
    response_model=ResolveConflictResponse,
    responses={**WRITE_ERRORS, 409: {"model": ResolutionConflictResponse}},
)
async def resolve_conflict(
    note_id: UUID,
    request: ResolveConflictRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    note_service: NoteService = Depends(get_note_service),
):
    """Commit client-resolved content against the server version reported by a conflict."""
    return await note_service.resolve_conflict(note_id, current_user_id, request)
