"""
FastAPI Dependencies for the request's cart.

Usage:
    @router.post("/cart/items")
    async def add_item(body: AddItem, cart: Cart = Depends(get_cart)):
        item = await cart.add(body.product_id, body.name, body.qty, body.price)
        ...

Authentication middleware is expected to put the current user on
`request.state.user` (any object with `.id`) and, optionally, the guard
name on `request.state.guard`.
"""

from typing import Any, Optional

from fastapi import Depends, HTTPException, Request

from shopcart.cart import Cart, CartEvents, build_cart, build_storage
from shopcart.config import CartSettings, get_settings
from shopcart.errors import InvalidAuth

_cart_events: Optional[CartEvents] = None


def get_cart_events() -> CartEvents:
    """App-wide listener registry shared by every request's cart."""
    global _cart_events
    if _cart_events is None:
        _cart_events = CartEvents()
    return _cart_events


def get_cart_session(request: Request) -> Optional[dict]:
    """Request session, if a session middleware is installed."""
    return request.session if "session" in request.scope else None


def get_cart_actor(request: Request) -> Any:
    return getattr(request.state, "user", None)


def get_cart_guard(request: Request) -> Optional[str]:
    return getattr(request.state, "guard", None)


async def get_cart(
    settings: CartSettings = Depends(get_settings),
    session: Optional[dict] = Depends(get_cart_session),
    actor: Any = Depends(get_cart_actor),
    guard: Optional[str] = Depends(get_cart_guard),
    events: CartEvents = Depends(get_cart_events),
) -> Cart:
    """Resolve the cart for this request; 401 when an actor-scoped cart has no actor."""
    storage = build_storage(settings, session)
    try:
        return build_cart(settings, storage, events=events, guard=guard, actor=actor)
    except InvalidAuth as e:
        raise HTTPException(status_code=401, detail=str(e))
