"""
shopcart - Shopping cart with pluggable storage

Rows keyed by a content hash of product + attributes, persisted through a
session, Redis (Upstash) or Supabase table backend, with lifecycle events
around every mutation.
"""

from shopcart.cart import (
    Cart,
    CartEvent,
    CartEvents,
    CartKey,
    DatabaseStorage,
    Item,
    RealtimeCartListener,
    RedisStorage,
    SessionStorage,
    Storage,
    build_cart,
    build_storage,
    generate_raw_id,
)
from shopcart.config import CartSettings, get_settings
from shopcart.errors import CartError, InvalidArgument, InvalidAuth, NotFound

__version__ = "1.0.0"

__all__ = [
    "Cart",
    "CartEvent",
    "CartEvents",
    "CartKey",
    "Item",
    "generate_raw_id",
    "Storage",
    "SessionStorage",
    "RedisStorage",
    "DatabaseStorage",
    "RealtimeCartListener",
    "build_cart",
    "build_storage",
    "CartSettings",
    "get_settings",
    "CartError",
    "InvalidArgument",
    "InvalidAuth",
    "NotFound",
]
