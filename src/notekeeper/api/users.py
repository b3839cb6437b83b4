"""User management API endpoints."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.cache import NoteCache, get_note_cache
from ..core.schemas.auth import UserResponse
from ..core.schemas.common import MessageResponse
from ..core.schemas.users import AccountDeleteResponse, PasswordChangeRequest, UserListResponse, UserUpdateRequest
from ..core.services import UserService
from ..database import get_db_session
from ..middleware.auth import get_current_user_id

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(
    session: AsyncSession = Depends(get_db_session),
    cache: NoteCache = Depends(get_note_cache),
) -> UserService:
    return UserService(session, cache)


@router.get("/", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1),
    current_user_id: UUID = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    """List registered users."""
    return await user_service.list_users(page, per_page)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    current_user_id: UUID = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    return await user_service.get_user(user_id, current_user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    request: UserUpdateRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    """Update your own username or full name."""
    return await user_service.update_user(user_id, current_user_id, request)


@router.post("/{user_id}/password", response_model=MessageResponse)
async def change_password(
    user_id: UUID,
    request: PasswordChangeRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    """Change your password. Every refresh token is revoked."""
    await user_service.change_password(user_id, current_user_id, request)
    return MessageResponse(message="Password changed successfully")


@router.delete("/{user_id}", response_model=AccountDeleteResponse)
async def delete_user(
    user_id: UUID,
    http_request: Request,
    current_user_id: UUID = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    """Delete your own account together with your notes and their history."""
    access_token = getattr(http_request.state, "access_token", None)
    return await user_service.delete_user(user_id, current_user_id, access_token)
