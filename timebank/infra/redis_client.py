# timebank/infra/redis_client.py
"""
Клиент Redis.
Используется для счётчиков ограничения частоты запросов.
"""

from __future__ import annotations

import redis.asyncio as redis

from timebank.common.logger import log_error, log_info, log_warning


class RedisClient:
    """
    Асинхронный клиент Redis (Singleton).
    Все ключи автоматически получают префикс namespace.
    """

    _instance: RedisClient | None = None
    _client: redis.Redis | None = None

    def __new__(cls) -> RedisClient:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._client = None
        self._namespace = "timebank"

    @property
    def client(self) -> redis.Redis:
        """Возвращает клиент Redis."""
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def _make_key(self, key: str) -> str:
        """Добавляет namespace к ключу."""
        return f"{self._namespace}:{key}"

    async def connect(
        self,
        url: str | None = None,
        max_connections: int = 20,
        namespace: str | None = None,
    ) -> None:
        """
        Подключается к Redis и проверяет соединение PING-ом.

        Args:
            url: URL Redis (если None, берётся из конфига)
            max_connections: Максимальное количество соединений
            namespace: Префикс ключей
        """
        if self._client is not None:
            return

        if url is None:
            from timebank.config import settings
            url = settings.redis.REDIS_URL
            max_connections = settings.redis.REDIS_MAX_CONNECTIONS
            namespace = settings.redis.REDIS_NAMESPACE

        if namespace:
            self._namespace = namespace

        await log_info("Подключение к Redis...")

        client = redis.from_url(url, max_connections=max_connections, decode_responses=True)
        try:
            await client.ping()
        except Exception:
            await client.aclose()
            raise

        self._client = client
        await log_info("Подключение к Redis установлено")

    async def disconnect(self) -> None:
        """Закрывает соединение с Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            await log_info("Соединение с Redis закрыто")

    async def incr(self, key: str) -> int:
        """Атомарно увеличивает счётчик."""
        return await self.client.incr(self._make_key(key))

    async def expire(self, key: str, ttl: int) -> bool:
        """Устанавливает TTL для ключа."""
        return await self.client.expire(self._make_key(key), ttl)

    async def ttl(self, key: str) -> int:
        """Возвращает оставшееся время жизни ключа."""
        return await self.client.ttl(self._make_key(key))

    async def health_check(self) -> bool:
        """Проверяет доступность Redis."""
        try:
            return bool(await self.client.ping())
        except Exception as e:
            await log_error(f"Health check Redis failed: {e}")
            return False


def get_redis() -> RedisClient:
    """Возвращает глобальный экземпляр RedisClient."""
    return RedisClient()


async def init_redis() -> RedisClient | None:
    """
    Подключается к Redis.
    Недоступность Redis не останавливает сервис: возвращается None.
    """
    client = get_redis()
    try:
        await client.connect()
    except Exception as e:
        await log_warning(f"Redis недоступен, ограничение частоты запросов отключено: {e}")
        return None
    return client


async def close_redis() -> None:
    """Закрывает подключение к Redis."""
    await get_redis().disconnect()
