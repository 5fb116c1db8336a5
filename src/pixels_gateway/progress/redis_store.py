"""Batch progress persisted in Redis."""

from typing import Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..core.error_handling import with_error_handling
from ..core.exceptions import BackendError, NotFound
from ..core.logging_config import get_logger
from ..core.models import BatchProgress

logger = get_logger("progress")

KEY_PREFIX = "batch:process:"


def progress_key(token: str) -> str:
    return f"{KEY_PREFIX}{token}"


class RedisProgressStore:
    """
    Stores one JSON snapshot per batch token under ``batch:process:{token}``.

    Every save replaces the whole snapshot. ``ttl_seconds`` applies an expiry
    on each write when set.
    """

    def __init__(self, client: Redis, ttl_seconds: Optional[int] = None):
        self._client = client
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: Optional[int] = None) -> "RedisProgressStore":
        client = redis.Redis.from_url(url, decode_responses=True)
        return cls(client, ttl_seconds=ttl_seconds)

    @with_error_handling
    async def save_progress(self, token: str, snapshot: BatchProgress) -> None:
        await self._client.set(
            progress_key(token),
            snapshot.model_dump_json(by_alias=True),
            ex=self._ttl_seconds,
        )

    @with_error_handling
    async def get_progress(self, token: str) -> BatchProgress:
        raw = await self._client.get(progress_key(token))
        if raw is None:
            raise NotFound(f"No progress found for token '{token}'")
        try:
            return BatchProgress.model_validate_json(raw)
        except ValidationError as e:
            raise BackendError(f"Corrupt progress record for token '{token}': {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis connection closed")
