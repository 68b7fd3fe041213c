from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from timebank.api.dependencies import get_db, get_redis_client
from timebank.config import settings
from timebank.infra.database import DatabaseManager
from timebank.infra.redis_client import RedisClient
from timebank.shared.models.common import HealthStatus

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(
    db: Annotated[DatabaseManager, Depends(get_db)],
    redis: Annotated[Optional[RedisClient], Depends(get_redis_client)],
) -> HealthStatus:
    """Проверка здоровья сервиса."""
    deps = {"postgres": "healthy" if await db.health_check() else "unhealthy"}
    if redis is None or not redis.is_connected:
        deps["redis"] = "disabled"
    else:
        deps["redis"] = "healthy" if await redis.health_check() else "unhealthy"

    overall = "healthy" if deps["postgres"] == "healthy" and deps["redis"] != "unhealthy" else "degraded"
    return HealthStatus(
        status=overall,
        service=settings.system.PROJECT_NAME,
        version=settings.system.VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        dependencies=deps,
    )
