"""Upstash Realtime - mirror cart events to Redis Streams.

Frontends can XREAD `stream:realtime:cart:{cart name}` to follow a cart.
Streaming is best effort: a failed XADD is logged and never breaks the
cart mutation that produced the event.
"""

import json
from typing import Any

from shopcart.db import RedisKeys, get_redis
from shopcart.logging import get_logger, sanitize_cart_key_for_logging
from shopcart.money import to_float

from .events import CartEvent, CartEvents

logger = get_logger(__name__)


def _item_summary(item) -> dict[str, Any] | None:
    if item is None:
        return None
    return {
        "raw_id": item.raw_id,
        "product_id": item.product_id,
        "qty": item.qty,
        "price": to_float(item.price),
        "total": to_float(item.total),
    }


class RealtimeCartListener:
    """Listener that XADDs every cart event it receives."""

    def __init__(self, redis=None):
        self._redis = redis  # Lazy initialization

    @property
    def redis(self):
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def attach(self, events: CartEvents) -> "RealtimeCartListener":
        """Subscribe to the "after" events (added, updated, removed, destroyed)."""
        for name in (CartEvents.ADDED, CartEvents.UPDATED, CartEvents.REMOVED, CartEvents.DESTROYED):
            events.subscribe(name, self)
        return self

    async def __call__(self, event: CartEvent) -> None:
        try:
            payload = {
                "event": event.name,
                "cart": event.key.name,
                "item": _item_summary(event.item),
                "rows_before": len(event.rows),
            }
            stream_key = RedisKeys.cart_stream_key(event.key.name)
            await self.redis.xadd(stream_key, "*", {"data": json.dumps(payload, default=str)})
            logger.debug(f"Emitted {event.name} for {sanitize_cart_key_for_logging(event.key)}")
        except Exception as e:
            logger.warning(f"Failed to emit {event.name}: {e}", exc_info=True)
