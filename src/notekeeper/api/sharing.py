"""Sharing API endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.cache import NoteCache, get_note_cache
from ..core.schemas.common import MessageResponse
from ..core.schemas.sharing import NoteAccessResponse, ShareRequest, ShareResponse
from ..core.services import SharingService
from ..database import get_db_session
from ..middleware.auth import get_current_user_id

router = APIRouter(prefix="/sharing", tags=["sharing"])


def get_sharing_service(
    session: AsyncSession = Depends(get_db_session),
    cache: NoteCache = Depends(get_note_cache),
) -> SharingService:
    return SharingService(session, cache)


@router.post("/", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
async def share_note(
    request: ShareRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    sharing_service: SharingService = Depends(get_sharing_service),
):
    """Share a note with another user, or change their permission."""
    return await sharing_service.share_note(current_user_id, request)


@router.get("/notes/{note_id}", response_model=List[ShareResponse])
async def list_note_shares(
    note_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    sharing_service: SharingService = Depends(get_sharing_service),
):
    return await sharing_service.list_note_shares(note_id, current_user_id)


@router.get("/notes/{note_id}/access", response_model=NoteAccessResponse)
async def check_note_access(
    note_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    sharing_service: SharingService = Depends(get_sharing_service),
):
    """Report what the caller may do with a note."""
    return await sharing_service.check_note_access(note_id, current_user_id)


@router.delete("/{share_id}", response_model=MessageResponse)
async def revoke_share(
    share_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    sharing_service: SharingService = Depends(get_sharing_service),
):
    await sharing_service.revoke_share(share_id, current_user_id)
    return MessageResponse(message="Share revoked")
