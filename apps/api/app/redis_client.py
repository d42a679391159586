from __future__ import annotations

from redis import Redis

from .settings import settings


def get_redis_client(url: str | None = None) -> Redis:
    return Redis.from_url(
        url or settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
