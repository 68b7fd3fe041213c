# timebank/api/app.py
"""
FastAPI приложение TimeBank.

REST-роутеры смонтированы под /api/<resource> и /<resource>,
WebSocket доступен по /ws.
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from timebank.api.dependencies import cleanup_dependencies, init_dependencies
from timebank.api.rate_limit import RateLimitMiddleware
from timebank.api.routes import RESOURCE_ROUTERS, health
from timebank.common.constants import TypeMsg
from timebank.common.exceptions import (
    AppError,
    app_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from timebank.common.logger import bind_request_id, log_info, log_warning, setup_logging
from timebank.config import settings, validate_environment
from timebank.infra.database import close_db, init_db
from timebank.infra.redis_client import close_redis, get_redis, init_redis
from timebank.realtime import gateway
from timebank.realtime.connection_manager import manager


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Жизненный цикл приложения."""
    setup_logging()
    await log_info("TimeBank запускается...", type_msg=TypeMsg.INFO)

    for warning in validate_environment(settings):
        await log_warning(warning)

    db = await init_db()
    redis = await init_redis()
    await init_dependencies(db, redis, manager)

    yield

    await cleanup_dependencies()
    await close_redis()
    await close_db()
    await log_info("TimeBank остановлен", type_msg=TypeMsg.INFO)


# =============================================================================
# MIDDLEWARE
# =============================================================================

async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    bind_request_id(request_id)
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    await log_info(
        f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms} ms)",
        type_msg=TypeMsg.DEBUG,
        extra={"status_code": response.status_code, "duration_ms": duration_ms},
    )
    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# ПРИЛОЖЕНИЕ
# =============================================================================

def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    Фабрика приложения.

    Args:
        use_lifespan: False в тестах, когда зависимости подменяются вручную
    """
    app = FastAPI(
        title="TimeBank API",
        description="Обмен временем: бронирования, кошелёк часов, чат и оценки",
        version=settings.system.VERSION,
        lifespan=lifespan if use_lifespan else None,
    )

    # Порядок: последний добавленный middleware выполняется первым
    if settings.rate_limit.RATE_LIMIT_ENABLED:
        app.add_middleware(
            RateLimitMiddleware,
            redis=get_redis(),
            max_requests=settings.rate_limit.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.rate_limit.RATE_LIMIT_WINDOW_SECONDS,
            exempt_paths=settings.rate_limit.RATE_LIMIT_EXEMPT_PATHS,
        )
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    for router in RESOURCE_ROUTERS:
        app.include_router(router, prefix="/api")
        app.include_router(router, include_in_schema=False)
    app.include_router(gateway.router)

    return app
