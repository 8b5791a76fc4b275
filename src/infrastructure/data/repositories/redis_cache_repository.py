import json
import logging
from typing import Any, Dict, Optional
from datetime import datetime, timedelta, timezone
from uuid import UUID

from redis.asyncio import Redis


class RedisMatrixStore:
    """Redis-backed store sharing the serialized interaction matrix between workers.

    Failures are logged and reported as cache misses so the caller can
    rebuild the matrix locally.
    """

    def __init__(self, redis_client: Redis, default_ttl: int = 900, prefix: str = "recommender:"):
        self.redis = redis_client
        self.default_ttl = default_ttl
        self.prefix = prefix
        self.logger = logging.getLogger(__name__)

    async def load_matrix(self, cache_key: str) -> Optional[Dict[str, Any]]:
        """Get a cached matrix payload"""
        try:
            full_key = self.prefix + cache_key
            cached_data = await self.redis.get(full_key)

            if cached_data:
                data = json.loads(cached_data)

                if self._is_cache_valid(data):
                    self.logger.debug(f"Cache hit for key: {cache_key}")
                    return data.get('payload')
                else:
                    await self.redis.delete(full_key)
                    self.logger.debug(f"Cache expired for key: {cache_key}")

            self.logger.debug(f"Cache miss for key: {cache_key}")
            return None

        except Exception as e:
            self.logger.error(f"Failed to load cached matrix for {cache_key}: {e}")
            return None

    async def save_matrix(self, cache_key: str, payload: Dict[str, Any],
                          ttl_seconds: Optional[int] = None) -> bool:
        """Cache a matrix payload with TTL"""
        try:
            ttl = ttl_seconds or self.default_ttl
            full_key = self.prefix + cache_key

            cache_data = {
                'payload': payload,
                'cached_at': datetime.now(timezone.utc).isoformat(),
                'ttl': ttl,
                'key': cache_key
            }
            serialized_data = json.dumps(cache_data, default=self._json_serializer)

            success = await self.redis.setex(full_key, ttl, serialized_data)
            if success:
                self.logger.debug(f"Cached matrix for key: {cache_key}, TTL: {ttl}s")
                return True
            self.logger.warning(f"Failed to cache matrix for key: {cache_key}")
            return False

        except Exception as e:
            self.logger.error(f"Failed to cache matrix for {cache_key}: {e}")
            return False

    async def delete_matrix(self, cache_key: str) -> bool:
        try:
            return bool(await self.redis.delete(self.prefix + cache_key))
        except Exception as e:
            self.logger.error(f"Failed to delete cached matrix {cache_key}: {e}")
            return False

    async def health_check(self) -> bool:
        """Check Redis connection health"""
        try:
            await self.redis.ping()
            return True
        except Exception as e:
            self.logger.error(f"Redis health check failed: {e}")
            return False

    def _is_cache_valid(self, cache_data: Dict) -> bool:
        """Check if cached data is still valid based on TTL"""
        try:
            cached_at = datetime.fromisoformat(cache_data['cached_at'])
            if cached_at.tzinfo is None:
                # Entries written before timestamps carried an offset are UTC
                cached_at = cached_at.replace(tzinfo=timezone.utc)
            ttl_seconds = cache_data.get('ttl', self.default_ttl)

            return datetime.now(timezone.utc) - cached_at < timedelta(seconds=ttl_seconds)

        except (KeyError, ValueError):
            return False

    def _json_serializer(self, obj):
        """Custom JSON serializer for complex objects"""
        if isinstance(obj, UUID):
            return str(obj)
        elif isinstance(obj, datetime):
            return obj.isoformat()

        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
