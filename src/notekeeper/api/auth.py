"""Authentication API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.schemas.auth import (
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from ..core.schemas.common import MessageResponse
from ..core.services import AuthService
from ..database import get_db_session
from ..middleware.auth import get_current_user_id

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, session: AsyncSession = Depends(get_db_session)):
    """Register a new user."""
    return await AuthService(session).register_user(request)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, session: AsyncSession = Depends(get_db_session)):
    """Login user and get JWT tokens."""
    return await AuthService(session).authenticate_user(request)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshTokenRequest, session: AsyncSession = Depends(get_db_session)
):
    """Refresh JWT token using refresh token."""
    return await AuthService(session).refresh_token(request)


@router.get("/me", response_model=UserResponse)
async def get_current_user(
    current_user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Get current user profile."""
    return await AuthService(session).get_current_user(current_user_id)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    current_user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Blacklist the current access token and revoke all refresh tokens."""
    access_token = getattr(request.state, "access_token", None)
    if await AuthService(session).logout_user(current_user_id, access_token):
        return MessageResponse(message="Logged out successfully")
    return MessageResponse(message="No active sessions found")
