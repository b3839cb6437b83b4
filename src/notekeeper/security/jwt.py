"""JWT token utilities."""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from jose import JWTError, jwt

from ..config import get_settings
from ..core.redis_client import RedisClient, get_redis_client

logger = logging.getLogger(__name__)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token with JTI for Redis blacklisting."""
    settings = get_settings()
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({"exp": expire, "type": "access", "jti": str(uuid.uuid4())})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_refresh_token() -> str:
    """Create a random refresh token."""
    return secrets.token_urlsafe(32)


async def decode_access_token(
    token: str, redis_client: Optional[RedisClient] = None
) -> Optional[Dict[str, Any]]:
    """Decode and validate access token, rejecting blacklisted ones."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None

    jti = payload.get("jti")
    # an unreachable Redis reads as "not blacklisted"
    if jti and await (redis_client or get_redis_client()).is_token_blacklisted(jti):
        return None

    return payload


async def get_user_id_from_token(token: str) -> Optional[UUID]:
    """Extract user ID from token."""
    payload = await decode_access_token(token)
    if not payload:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    try:
        return UUID(user_id)
    except ValueError:
        return None


async def blacklist_token(token: str, redis_client: Optional[RedisClient] = None) -> bool:
    """Blacklist an access token for the rest of its lifetime."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.warning(f"Refusing to blacklist undecodable token: {e}")
        return False

    jti = payload.get("jti")
    exp = payload.get("exp")
    if not jti or not exp:
        return False

    remaining = int((datetime.fromtimestamp(exp, tz=timezone.utc) - datetime.now(timezone.utc)).total_seconds())
    if remaining <= 0:
        return False
    return await (redis_client or get_redis_client()).add_to_blacklist(jti, remaining)
