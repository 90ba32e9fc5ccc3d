"""Cart wiring: pick the storage strategy and scope the cart to the actor."""
from typing import Any, MutableMapping, Optional

from shopcart.config import CartSettings
from shopcart.errors import (
    ERROR_INVALID_AUTH,
    ERROR_SESSION_REQUIRED,
    ERROR_UNKNOWN_STORAGE,
    InvalidArgument,
    InvalidAuth,
)
from shopcart.logging import get_logger, sanitize_cart_key_for_logging

from .events import CartEvents
from .models import CartKey
from .service import Cart
from .storage import DatabaseStorage, RedisStorage, SessionStorage, Storage

logger = get_logger(__name__)


def build_storage(
    settings: CartSettings,
    session: Optional[MutableMapping[str, Any]] = None,
) -> Storage:
    """Instantiate the storage backend named by `settings.storage`."""
    if settings.storage == "session":
        if session is None:
            raise InvalidArgument(ERROR_SESSION_REQUIRED)
        return SessionStorage(session)
    if settings.storage == "redis":
        return RedisStorage(ttl=settings.ttl_seconds)
    if settings.storage == "database":
        return DatabaseStorage(table=settings.table)
    raise InvalidArgument(ERROR_UNKNOWN_STORAGE.format(storage=settings.storage))


def build_cart(
    settings: CartSettings,
    storage: Storage,
    events: Optional[CartEvents] = None,
    guard: Optional[str] = None,
    actor: Any = None,
) -> Cart:
    """
    Build the cart for one request.

    Session carts are always `cart.default`. Any other storage is shared
    between requests, so the cart is scoped to the authenticated actor
    as `cart.{guard alias}.{actor id}`.

    Raises:
        InvalidAuth: non-session storage and no actor
    """
    if isinstance(storage, SessionStorage):
        return Cart(storage, events)

    actor_id = getattr(actor, "id", None) if actor is not None else None
    if actor_id is None:
        raise InvalidAuth(ERROR_INVALID_AUTH)

    alias = settings.alias_for(guard or settings.default_guard)
    key = CartKey.for_actor(alias, actor_id)

    logger.debug(f"Resolved cart {sanitize_cart_key_for_logging(key)}")
    return Cart(storage, events, key=key)
