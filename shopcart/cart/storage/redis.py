"""Redis-backed cart storage (Upstash)."""
import json
from typing import Optional

from shopcart.db import TTL, RedisKeys, get_redis
from shopcart.logging import get_logger

from ..models import CartKey
from .base import KeyLike, Rows, Storage, rows_from_list, rows_to_list

logger = get_logger(__name__)


class RedisStorage(Storage):
    """
    Stores each cart as one JSON blob with a TTL.

    Abandoned carts expire after `ttl` seconds (24 hours by default);
    every write renews the TTL.
    """

    def __init__(self, redis=None, ttl: int = TTL.CART):
        self._redis = redis  # Lazy initialization
        self.ttl = ttl

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    async def set(self, key: KeyLike, rows: Optional[Rows]) -> None:
        if rows is None:
            await self.forget(key)
            return

        redis_key = RedisKeys.cart_key(CartKey.coerce(key).name)
        try:
            await self.redis.set(redis_key, json.dumps(rows_to_list(rows), default=str), ex=self.ttl)
        except Exception as e:
            logger.error(f"Failed to save cart to Redis: {e}")
            raise

    async def get(self, key: KeyLike) -> Rows:
        redis_key = RedisKeys.cart_key(CartKey.coerce(key).name)
        data = await self.redis.get(redis_key)
        if not data:
            return {}

        try:
            return rows_from_list(json.loads(data))
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            # Corrupted data - clear it and start over
            logger.warning(f"Corrupted cart data under {redis_key}: {e}")
            await self.redis.delete(redis_key)
            return {}

    async def forget(self, key: KeyLike) -> None:
        await self.redis.delete(RedisKeys.cart_key(CartKey.coerce(key).name))
