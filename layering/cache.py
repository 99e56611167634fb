"""
Redis-backed cache of layer results keyed by image fingerprint.

The cache is best-effort: callers treat CacheError like a miss.
"""

import hashlib
import json
import logging
from pathlib import Path
from typing import Optional, Union

import redis

from layering.errors import CacheError
from layering.models import LayerResult

KEY_PREFIX = "layer:"
MAX_FOREGROUND_SUFFIX = ":max_fg"


def cache_key(md5: str, max_foreground_only: bool = False) -> str:
    """Cache key for a fingerprint; foreground-only results get their own slot."""
    if max_foreground_only:
        return md5 + MAX_FOREGROUND_SUFFIX
    return md5


def file_md5(path: Union[str, Path], chunk_size: int = 64 * 1024) -> str:
    digest = hashlib.md5()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()


class LayerCache:
    """Stores LayerResult JSON under ``layer:<key>`` with a TTL."""

    def __init__(self, client: "redis.Redis", ttl: int, logger: Optional[logging.Logger] = None):
        self.client = client
        self.ttl = ttl
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_url(cls, url: str, ttl: int, logger: Optional[logging.Logger] = None) -> "LayerCache":
        return cls(redis.Redis.from_url(url), ttl, logger=logger)

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            self.logger.warning("redis ping failed: %s", e)
            return False

    def get(self, key: str) -> Optional[LayerResult]:
        """
        Fetch a cached result.

        Returns:
            The result, or None on a cache miss

        Raises:
            CacheError: If Redis fails or the stored value is unreadable
        """
        try:
            data = self.client.get(KEY_PREFIX + key)
        except redis.RedisError as e:
            raise CacheError(f"Cache read failed for {key}: {e}") from e

        if data is None:
            return None

        try:
            return LayerResult.from_dict(json.loads(data))
        except ValueError as e:
            self.logger.error("failed to decode cached layer result %s: %s", key, e)
            raise CacheError(f"Corrupt cache entry for {key}") from e

    def set(self, key: str, result: LayerResult) -> None:
        payload = json.dumps(result.to_dict())
        try:
            self.client.setex(KEY_PREFIX + key, self.ttl, payload)
        except redis.RedisError as e:
            raise CacheError(f"Cache write failed for {key}: {e}") from e

    def close(self) -> None:
        self.client.close()
