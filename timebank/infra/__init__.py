# timebank/infra/__init__.py
"""
Инфраструктурный слой: PostgreSQL и Redis.
"""

from timebank.infra.database import DatabaseManager, get_db, init_db, close_db
from timebank.infra.redis_client import RedisClient, get_redis, init_redis, close_redis

__all__ = [
    "DatabaseManager",
    "get_db",
    "init_db",
    "close_db",
    "RedisClient",
    "get_redis",
    "init_redis",
    "close_redis",
]
