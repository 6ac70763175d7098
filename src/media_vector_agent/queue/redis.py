"""
Redis-клиент для очереди задач и статусов.

Назначение:
- Единая точка подключения к Redis
- Используется TaskQueue по умолчанию; в тестах клиент передаётся явно
"""

from __future__ import annotations

import redis

from media_vector_agent.common.config import get_settings

_client: redis.Redis | None = None


def redis_client() -> redis.Redis:
    """
    Singleton Redis client.
    """
    global _client
    if _client is None:
        _client = redis.Redis.from_url(get_settings().redis_url, decode_responses=True)
    return _client
