"""Cart package: models, events, storage backends and the cart service."""
from .events import CartEvent, CartEvents
from .factory import build_cart, build_storage
from .models import CartKey, Item, generate_raw_id
from .realtime import RealtimeCartListener
from .service import Cart
from .storage import DatabaseStorage, RedisStorage, SessionStorage, Storage

__all__ = [
    "Cart",
    "CartKey",
    "Item",
    "generate_raw_id",
    "CartEvent",
    "CartEvents",
    "RealtimeCartListener",
    "Storage",
    "SessionStorage",
    "RedisStorage",
    "DatabaseStorage",
    "build_cart",
    "build_storage",
]
