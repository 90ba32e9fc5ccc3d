"""Cart lifecycle events and the listener registry."""
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from shopcart.logging import get_logger, sanitize_cart_key_for_logging

from .models import CartKey, Item

logger = get_logger(__name__)

Listener = Callable[["CartEvent"], Union[None, Awaitable[None]]]

WILDCARD = "*"


@dataclass
class CartEvent:
    """Payload passed to listeners. `rows` is the snapshot taken before the mutation."""
    name: str
    key: CartKey
    rows: dict[str, Item]
    attributes: Optional[dict[str, Any]] = None
    item: Optional[Item] = None


class CartEvents:
    """
    Explicit observer list for cart lifecycle events.

    Usage:
        events = CartEvents()
        events.subscribe(CartEvents.ADDED, on_added)
        events.subscribe("*", audit)
    """

    ADDING = "cart.adding"
    ADDED = "cart.added"
    UPDATING = "cart.updating"
    UPDATED = "cart.updated"
    REMOVING = "cart.removing"
    REMOVED = "cart.removed"
    DESTROYING = "cart.destroying"
    DESTROYED = "cart.destroyed"

    ALL = (ADDING, ADDED, UPDATING, UPDATED, REMOVING, REMOVED, DESTROYING, DESTROYED)

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = {}

    def subscribe(self, name: str, listener: Listener) -> None:
        if name != WILDCARD and name not in self.ALL:
            raise ValueError(f"Unknown cart event '{name}'")
        self._listeners.setdefault(name, []).append(listener)

    def unsubscribe(self, name: str, listener: Listener) -> None:
        listeners = self._listeners.get(name, [])
        if listener in listeners:
            listeners.remove(listener)

    def listeners(self, name: str) -> list[Listener]:
        """Listeners for `name` followed by wildcard listeners."""
        return [*self._listeners.get(name, []), *self._listeners.get(WILDCARD, [])]

    async def dispatch(self, event: CartEvent) -> None:
        """Call every listener in subscription order; awaitable results are awaited."""
        for listener in self.listeners(event.name):
            result = listener(event)
            if inspect.isawaitable(result):
                await result
        logger.debug(f"Dispatched {event.name} for {sanitize_cart_key_for_logging(event.key)}")
