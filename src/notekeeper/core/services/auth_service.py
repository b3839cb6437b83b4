"""Authentication service implementation."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ...security import (
    blacklist_token,
    create_access_token,
    hash_password,
    verify_password,
)
from ..exceptions import AuthenticationError, DuplicateResourceError, NotFoundError
from ..models.refresh_token import RefreshToken
from ..models.user import User
from ..repositories.refresh_token_repository import RefreshTokenRepository
from ..repositories.user_repository import UserRepository
from ..schemas.auth import (
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from .interfaces import IAuthService
from .unit_of_work import atomic_write

logger = logging.getLogger(__name__)


class AuthService(IAuthService):
    """Authentication service implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.token_repo = RefreshTokenRepository(session)
        self.settings = get_settings()

    async def register_user(self, request: RegisterRequest) -> UserResponse:
        if await self.user_repo.is_username_taken(request.username):
            raise DuplicateResourceError("Username already taken", {"field": "username"})

        async with atomic_write(self.session):
            user = await self.user_repo.add(
                User(
                    username=request.username,
                    password_hash=hash_password(request.password),
                    full_name=request.full_name,
                    is_active=True,
                )
            )

        logger.info("User registered", extra={"user_id": str(user.id)})
        return UserResponse.model_validate(user)

    async def authenticate_user(self, request: LoginRequest) -> TokenResponse:
        user = await self.user_repo.get_by_username(request.username)
        if not user or not user.can_login() or not verify_password(request.password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        return await self._issue_tokens(user)

    async def refresh_token(self, request: RefreshTokenRequest) -> TokenResponse:
        """Swap a valid refresh token for a new token pair; the old one is revoked."""
        token = await self.token_repo.get_by_token(request.refresh_token)
        if token is None or not token.is_valid:
            raise AuthenticationError("Invalid refresh token")

        user = await self.user_repo.get_by_id(token.user_id)
        if not user or not user.can_login():
            raise AuthenticationError("User account inactive")

        token.revoke()
        return await self._issue_tokens(user)

    async def get_current_user(self, user_id: UUID) -> UserResponse:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("user", user_id)
        return UserResponse.model_validate(user)

    async def logout_user(self, user_id: UUID, access_token: Optional[str]) -> bool:
        """Blacklist the access token and drop every refresh token of the user."""
        if access_token and not await blacklist_token(access_token):
            logger.warning("Access token could not be blacklisted", extra={"user_id": str(user_id)})

        async with atomic_write(self.session):
            deleted = await self.token_repo.delete_user_tokens(user_id)
        return deleted > 0

    async def _issue_tokens(self, user: User) -> TokenResponse:
        async with atomic_write(self.session):
            refresh = await self.token_repo.add(
                RefreshToken.create_for_user(user.id, self.settings.refresh_token_expire_days)
            )

        return TokenResponse(
            access_token=create_access_token(data={"sub": str(user.id)}),
            refresh_token=refresh.token,
            expires_in=self.settings.access_token_expire_minutes * 60,
            user=UserResponse.model_validate(user),
        )
