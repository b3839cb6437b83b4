"""Health service implementation."""

import time
from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ..redis_client import RedisClient, get_redis_client
from ..schemas.common import HealthCheckResponse
from .interfaces import IHealthService


class HealthService(IHealthService):
    """Database and Redis reachability checks."""

    def __init__(self, session: AsyncSession, redis_client: RedisClient = None):
        self.session = session
        self.redis_client = redis_client or get_redis_client()
        self.settings = get_settings()

    async def get_health_status(self) -> HealthCheckResponse:
        db_health = await self.check_database_health()
        redis_health = await self.check_redis_health()

        healthy = db_health["connected"] and redis_health["connected"]
        return HealthCheckResponse(
            status="healthy" if healthy else "unhealthy",
            version=self.settings.app_version,
            checks={"database": db_health, "redis": redis_health},
        )

    async def check_database_health(self) -> Dict[str, Any]:
        start = time.perf_counter()
        try:
            result = await self.session.execute(text("SELECT 1"))
            result.scalar()
        except Exception as e:
            return {"connected": False, "status": "unhealthy", "error": str(e)}
        return {
            "connected": True,
            "status": "healthy",
            "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
        }

    async def check_redis_health(self) -> Dict[str, Any]:
        start = time.perf_counter()
        if not await self.redis_client.ping():
            return {"connected": False, "status": "unhealthy", "error": "Redis did not answer PING"}
        return {
            "connected": True,
            "status": "healthy",
            "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
        }
