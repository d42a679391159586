from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from fastapi import HTTPException, status
from redis.exceptions import RedisError

from ..redis_client import get_redis_client

logger = logging.getLogger(__name__)


def _current_window(window_seconds: int) -> int:
    now = int(datetime.now(UTC).timestamp())
    return now // window_seconds


def visitor_bucket_key(tenant_id: uuid.UUID, visitor: str, bucket_name: str, window: int) -> str:
    return f"ratelimit:{bucket_name}:{tenant_id}:{visitor}:{window}"


def enforce_visitor_rate_limit(
    tenant_id: uuid.UUID,
    visitor: str,
    bucket_name: str,
    max_requests: int,
    window_seconds: int = 60,
) -> None:
    """Fixed-window limit for one visitor of a tenant's site; other visitors keep their own budget."""
    if max_requests <= 0:
        return
    window_seconds = max(1, window_seconds)
    key = visitor_bucket_key(tenant_id, visitor, bucket_name, _current_window(window_seconds))
    try:
        redis = get_redis_client()
        hits = int(redis.incr(key))
        if hits == 1:
            redis.expire(key, window_seconds)
    except RedisError as exc:
        logger.warning("rate limiter unavailable for %s, allowing request: %s", bucket_name, exc)
        return
    if hits > max_requests:
        logger.info("rate limit hit bucket=%s tenant=%s visitor=%s", bucket_name, tenant_id, visitor)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"rate limit exceeded for {bucket_name}",
        )
