# timebank/api/rate_limit.py
"""
Ограничение частоты запросов: фиксированное окно на IP клиента.
Счётчики в Redis (INCR + EXPIRE на первом запросе окна).
"""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from timebank.common.exceptions import RateLimitError, error_response
from timebank.common.logger import log_warning
from timebank.infra.redis_client import RedisClient

RATE_LIMIT_KEY_PREFIX = "ratelimit"


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        redis: RedisClient,
        max_requests: int = 300,
        window_seconds: int = 900,
        exempt_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.redis = redis
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.exempt_paths = set(exempt_paths or ["/health"])

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.exempt_paths or not self.redis.is_connected:
            return await call_next(request)

        key = f"{RATE_LIMIT_KEY_PREFIX}:{client_ip(request)}"
        try:
            count = await self.redis.incr(key)
            if count == 1:
                await self.redis.expire(key, self.window_seconds)
        except Exception as e:
            # Сбой Redis не блокирует запросы
            await log_warning(f"Rate limiter: ошибка Redis, запрос пропущен: {e}")
            return await call_next(request)

        if count > self.max_requests:
            retry_after = await self.redis.ttl(key)
            exc = RateLimitError(retry_after=retry_after if retry_after > 0 else self.window_seconds)
            return error_response(request, exc)

        return await call_next(request)
