from typing import Any, Optional

from redis.asyncio import ConnectionPool as AsyncConnectionPool, Redis as AsyncRedis

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


def _connection_kwargs() -> dict[str, Any]:
    return {
        'password': settings.KVROCKS_PASSWORD or None,
        'decode_responses': settings.REDIS_DECODE_RESPONSES,
        'socket_connect_timeout': settings.KVROCKS_POOL_SOCKET_CONNECT_TIMEOUT,
        'socket_keepalive': settings.KVROCKS_POOL_SOCKET_KEEPALIVE,
        'health_check_interval': settings.KVROCKS_POOL_HEALTH_CHECK_INTERVAL,
    }


class KvrocksClient:
    """
    Holds the pooled connection the seat store reads and writes through.

    The lifespan calls ``initialize()`` once; the seat store asks for
    ``get_client()`` per operation and ``create_pubsub_client()`` per
    change-feed subscription.
    """

    def __init__(self) -> None:
        self._client: Optional[AsyncRedis] = None

    async def initialize(self) -> AsyncRedis:
        if self._client is not None:
            return self._client

        pool = AsyncConnectionPool.from_url(
            settings.kvrocks_url,
            max_connections=settings.KVROCKS_POOL_MAX_CONNECTIONS,
            socket_timeout=settings.KVROCKS_POOL_SOCKET_TIMEOUT,
            **_connection_kwargs(),
        )
        client = AsyncRedis.from_pool(pool)
        await client.ping()
        Logger.base.info(f'✅ [KVROCKS] Seat store reachable at {settings.KVROCKS_HOST}:{settings.KVROCKS_PORT}')
        self._client = client
        return client

    def get_client(self) -> AsyncRedis:
        if self._client is None:
            raise RuntimeError('Kvrocks is not connected, initialize() must run during startup')
        return self._client

    async def create_pubsub_client(self) -> AsyncRedis:
        """A subscribed connection cannot run commands, so each feed gets its own"""
        return AsyncRedis.from_url(settings.kvrocks_url, **_connection_kwargs())

    async def disconnect(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        Logger.base.info('🔌 [KVROCKS] Seat store connection closed')


kvrocks_client = KvrocksClient()
