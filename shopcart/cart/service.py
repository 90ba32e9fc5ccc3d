"""Cart service: row operations, aggregates and lifecycle events."""
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from shopcart.errors import (
    ERROR_INVALID_PRICE,
    ERROR_INVALID_QUANTITY,
    ERROR_ITEM_NOT_FOUND,
    InvalidArgument,
    NotFound,
)
from shopcart.logging import get_logger, sanitize_cart_key_for_logging, sanitize_id_for_logging
from shopcart.money import multiply, parse_decimal

from .events import CartEvent, CartEvents
from .models import CartKey, Item, generate_raw_id, import_model, model_path
from .storage.base import KeyLike, Rows, Storage

logger = get_logger(__name__)


def _parse_qty(value: Any) -> int:
    """Numeric and integral, any sign (callers decide what <= 0 means)."""
    qty = parse_decimal(value)
    if qty is None or qty != qty.to_integral_value():
        raise InvalidArgument(ERROR_INVALID_QUANTITY)
    return int(qty)


def _parse_price(value: Any) -> Decimal:
    price = parse_decimal(value)
    if price is None or price < 0:
        raise InvalidArgument(ERROR_INVALID_PRICE)
    return price


def _matches(current: Any, wanted: Any) -> bool:
    if isinstance(current, Decimal):
        wanted_decimal = parse_decimal(wanted)
        return wanted_decimal is not None and wanted_decimal == current
    return current == wanted


class Cart:
    """
    One named cart over a pluggable storage.

    Rows are loaded from storage on first read and cached; every mutation
    writes the full row set back before the "after" event fires.

    Usage:
        cart = Cart(SessionStorage(request.session))
        item = await cart.add("sku-1", "T-shirt", 2, "19.90", attributes={"size": "M"})
        await cart.update(item.raw_id, 3)
        total = await cart.total_price()
    """

    def __init__(
        self,
        storage: Storage,
        events: Optional[CartEvents] = None,
        key: Optional[CartKey] = None,
    ):
        self.storage = storage
        self.events = events if events is not None else CartEvents()
        self._key = key or CartKey()
        self._model: Optional[str] = None
        self._rows: Optional[Rows] = None

    # ==================== CONFIGURATION ====================

    @property
    def key(self) -> CartKey:
        return self._key

    def set_storage(self, storage: Storage) -> None:
        self.storage = storage
        self._rows = None

    def name(self, suffix: str) -> "Cart":
        """Switch to the cart named `cart.<suffix>`."""
        self._key = CartKey(suffix=suffix)
        self._rows = None
        return self

    def for_actor(self, guard: str, actor_id: Any) -> "Cart":
        """Switch to the actor-scoped cart `cart.<guard>.<actor_id>`."""
        self._key = CartKey.for_actor(guard, actor_id)
        self._rows = None
        return self

    def associate(self, model: type | str) -> "Cart":
        """Tag new rows with a model class (class object or dotted path)."""
        if isinstance(model, type):
            self._model = model_path(model)
        else:
            import_model(model)
            self._model = model
        return self

    def get_name(self) -> str:
        return self._key.name

    def get_model(self) -> Optional[str]:
        return self._model

    def refresh(self) -> None:
        """Drop the cached rows; the next read goes to storage."""
        self._rows = None

    # ==================== QUERIES ====================

    async def all(self) -> Rows:
        rows = await self._load()
        return self._snapshot(rows)

    async def get(self, raw_id: str) -> Optional[Item]:
        row = (await self._load()).get(raw_id)
        return row.copy() if row is not None else None

    async def total_price(self) -> Decimal:
        total = Decimal("0")
        for row in (await self._load()).values():
            total += multiply(row.qty, row.price)
        return total

    async def total(self) -> Decimal:
        """Alias of total_price()."""
        return await self.total_price()

    async def count(self, total_items: bool = True) -> int:
        """Unit count, or the number of rows when total_items is False."""
        rows = await self._load()
        if not total_items:
            return len(rows)
        return sum(row.qty for row in rows.values())

    async def count_rows(self) -> int:
        return await self.count(False)

    async def is_empty(self) -> bool:
        return await self.count() <= 0

    async def search(self, criteria: Mapping[str, Any]) -> Rows:
        """
        Rows matching at least one criteria key by equality.

        Money fields compare numerically, so 19.9 finds a row priced "19.90".
        """
        found: Rows = {}
        if not criteria:
            return found

        for raw_id, row in (await self._load()).items():
            if any(key in row and _matches(row.get(key), value) for key, value in criteria.items()):
                found[raw_id] = row.copy()
        return found

    # ==================== COMMANDS ====================

    async def add(
        self,
        product_id: Any,
        name: Optional[str] = None,
        qty: Any = None,
        price: Any = None,
        parent_id: Any = 0,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> Item:
        """
        Add a product to the cart.

        The same product with the same attributes lands on the same row,
        whose qty is increased instead of creating a duplicate.

        Raises:
            InvalidArgument: qty not an integer >= 1 or price not a number >= 0
        """
        qty = _parse_qty(qty)
        if qty < 1:
            raise InvalidArgument(ERROR_INVALID_QUANTITY)
        price = _parse_price(price)
        attributes = dict(attributes or {})

        snapshot = self._snapshot(await self._load())
        await self._dispatch(CartEvents.ADDING, snapshot, attributes=attributes)

        raw_id = generate_raw_id(product_id, attributes)
        rows = await self._load()
        if raw_id in rows:
            row = await self._update_row(raw_id, {"qty": rows[raw_id].qty + qty})
        else:
            row = await self._insert_row(raw_id, product_id, name, qty, price, parent_id, attributes)

        await self._dispatch(CartEvents.ADDED, snapshot, attributes=attributes, item=row.copy())
        return row

    async def update(self, raw_id: str, attribute: Any) -> Optional[Item]:
        """
        Update one row.

        A bare number replaces qty; a mapping sets each key on the row.
        A qty <= 0 removes the row and returns None.

        Raises:
            NotFound: raw_id not in cart
        """
        rows = await self._load()
        if raw_id not in rows:
            raise NotFound(ERROR_ITEM_NOT_FOUND)

        changes = dict(attribute) if isinstance(attribute, Mapping) else {"qty": attribute}
        if "qty" in changes:
            changes["qty"] = _parse_qty(changes["qty"])
        if "price" in changes:
            changes["price"] = _parse_price(changes["price"])

        before = rows[raw_id].copy()
        snapshot = self._snapshot(rows)
        await self._dispatch(CartEvents.UPDATING, snapshot, item=before)

        if "qty" in changes and changes["qty"] <= 0:
            await self.remove(raw_id)
            row = None
        else:
            row = await self._update_row(raw_id, changes)

        await self._dispatch(CartEvents.UPDATED, snapshot, item=row.copy() if row else None)
        return row

    async def update_qty(self, raw_id: str, qty: Any) -> Optional[Item]:
        """Set a row's qty; qty <= 0 removes the row and returns None."""
        qty = _parse_qty(qty)
        if qty <= 0:
            await self.remove(raw_id)
            return None
        return await self.update(raw_id, {"qty": qty})

    async def remove(self, raw_id: str) -> bool:
        """Remove a row. Removing an absent row is a no-op."""
        rows = await self._load()
        if raw_id not in rows:
            return True

        snapshot = self._snapshot(rows)
        row = rows[raw_id].copy()
        await self._dispatch(CartEvents.REMOVING, snapshot, item=row)

        remaining = dict(rows)
        del remaining[raw_id]
        await self._save(remaining)

        logger.debug(f"Removed row {sanitize_id_for_logging(raw_id)} from {sanitize_cart_key_for_logging(self._key)}")
        await self._dispatch(CartEvents.REMOVED, snapshot, item=row)
        return True

    async def destroy(self) -> bool:
        """Clear every row of this cart."""
        snapshot = self._snapshot(await self._load())
        await self._dispatch(CartEvents.DESTROYING, snapshot)

        await self._save(None)

        logger.info(f"Destroyed cart {sanitize_cart_key_for_logging(self._key)} ({len(snapshot)} rows)")
        await self._dispatch(CartEvents.DESTROYED, snapshot)
        return True

    async def clean(self) -> bool:
        """Alias of destroy()."""
        return await self.destroy()

    async def merge_from(self, storage: Storage, key: KeyLike = "cart.default") -> int:
        """
        Move the rows stored under `key` in `storage` into this cart.

        Typical use is folding the guest session cart into the user's
        cart after login. Incoming rows replace rows with the same raw_id.

        Returns:
            Number of rows merged
        """
        source = CartKey.coerce(key)
        if storage is self.storage and source == self._key:
            return 0

        incoming = await storage.get(source)
        if not incoming:
            return 0

        rows = dict(await self._load())
        rows.update(incoming)
        await self._save(rows)
        await storage.forget(source)

        logger.info(f"Merged {len(incoming)} rows from {sanitize_cart_key_for_logging(source)} into {sanitize_cart_key_for_logging(self._key)}")
        return len(incoming)

    # ==================== INTERNALS ====================

    async def _load(self) -> Rows:
        if self._rows is None:
            self._rows = await self.storage.get(self._key)
        return self._rows

    async def _save(self, rows: Optional[Rows]) -> None:
        try:
            await self.storage.set(self._key, rows)
        except Exception as e:
            logger.error(f"Failed to save cart {sanitize_cart_key_for_logging(self._key)}: {e}")
            raise
        self._rows = rows if rows is not None else {}

    async def _insert_row(
        self,
        raw_id: str,
        product_id: Any,
        name: Optional[str],
        qty: int,
        price: Decimal,
        parent_id: Any,
        attributes: dict[str, Any],
    ) -> Item:
        row = Item.from_dict(
            {
                **attributes,
                "__raw_id": raw_id,
                "product_id": product_id,
                "name": name,
                "qty": qty,
                "price": price,
                "total": multiply(qty, price),
                "__model": self._model,
                "parent_id": parent_id,
            }
        )

        rows = dict(await self._load())
        rows[raw_id] = row
        await self._save(rows)

        logger.debug(f"Inserted row {sanitize_id_for_logging(raw_id)} into {sanitize_cart_key_for_logging(self._key)}")
        return row.copy()

    async def _update_row(self, raw_id: str, changes: Mapping[str, Any]) -> Item:
        rows = dict(await self._load())
        row = rows[raw_id].copy().apply(changes)
        rows[raw_id] = row
        await self._save(rows)

        logger.debug(f"Updated row {sanitize_id_for_logging(raw_id)} in {sanitize_cart_key_for_logging(self._key)}")
        return row.copy()

    async def _dispatch(
        self,
        name: str,
        snapshot: Rows,
        attributes: Optional[dict[str, Any]] = None,
        item: Optional[Item] = None,
    ) -> None:
        await self.events.dispatch(
            CartEvent(name=name, key=self._key, rows=snapshot, attributes=attributes, item=item)
        )

    @staticmethod
    def _snapshot(rows: Rows) -> Rows:
        return {raw_id: row.copy() for raw_id, row in rows.items()}
