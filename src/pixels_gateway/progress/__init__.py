"""Batch progress persistence."""

from .redis_store import KEY_PREFIX, RedisProgressStore, progress_key

__all__ = ["KEY_PREFIX", "RedisProgressStore", "progress_key"]
