#!/usr/bin/env python3
# main.py
"""
Главная точка входа TimeBank.
Запускает HTTP/WebSocket сервер на PORT (по умолчанию 4000).
"""

from __future__ import annotations

import asyncio

import uvicorn

from timebank.common.constants import TypeMsg
from timebank.common.logger import log_info, log_warning, setup_logging
from timebank.config import settings, validate_environment


async def main() -> None:
    setup_logging()

    for warning in validate_environment(settings):
        await log_warning(warning)

    await log_info(
        f"TimeBank v{settings.system.VERSION}: запуск на {settings.server.HOST}:{settings.server.PORT}",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        "timebank.api.app:create_app",
        factory=True,
        host=settings.server.HOST,
        port=settings.server.PORT,
        log_level="debug" if settings.system.DEBUG else "info",
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info("TimeBank: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
