"""Table-backed cart storage (Supabase / PostgREST).

One record per cart row, identified by (key, __raw_id).
All methods use async/await with supabase-py v2.
"""
import json
from typing import Any, Optional

from shopcart.db import get_supabase
from shopcart.logging import get_logger, sanitize_cart_key_for_logging

from ..models import CartKey, Item
from .base import KeyLike, Rows, Storage

logger = get_logger(__name__)

# Row fields stored in their own columns; everything else goes to `attributes`
COLUMNS = ("__raw_id", "product_id", "name", "qty", "price", "total", "__model", "type", "status", "parent_id")

# Bookkeeping columns that are not part of a row
_META_COLUMNS = ("id", "key", "guard", "user_id", "attributes", "created_at", "updated_at")


class DatabaseStorage(Storage):
    """Persists rows as individual records in the `shopping_cart` table."""

    def __init__(self, client=None, table: str = "shopping_cart"):
        self._client = client  # Lazy initialization
        self.table_name = table

    async def _table(self):
        if self._client is None:
            self._client = await get_supabase()
        return self._client.table(self.table_name)

    async def set(self, key: KeyLike, rows: Optional[Rows]) -> None:
        """
        Reconcile the table with `rows`.

        Records whose raw_id is absent from `rows` are deleted; the rest are
        updated in place or inserted. Not transactional: concurrent writers
        to the same cart can lose updates.
        """
        if rows is None:
            await self.forget(key)
            return

        key = CartKey.coerce(key)
        raw_ids = list(rows)

        # Delete the rows that have been removed from the cart
        query = (await self._table()).delete().eq("key", key.name)
        if raw_ids:
            query = query.not_.in_("__raw_id", raw_ids)
        await query.execute()

        if not raw_ids:
            return

        existing = await (await self._table()).select("__raw_id").eq("key", key.name).execute()
        existing_ids = {record["__raw_id"] for record in existing.data or []}

        inserts = []
        for item in rows.values():
            record = self._to_record(key, item)
            if item.raw_id in existing_ids:
                changes = {k: v for k, v in record.items() if k not in ("key", "__raw_id")}
                await (
                    (await self._table())
                    .update(changes)
                    .eq("key", key.name)
                    .eq("__raw_id", item.raw_id)
                    .execute()
                )
            else:
                inserts.append(record)

        if inserts:
            await (await self._table()).insert(inserts).execute()

        logger.debug(
            f"Synced cart {sanitize_cart_key_for_logging(key)}: {len(rows) - len(inserts)} updated, {len(inserts)} inserted"
        )

    async def get(self, key: KeyLike) -> Rows:
        key = CartKey.coerce(key)
        result = await (await self._table()).select("*").eq("key", key.name).order("id").execute()

        rows: Rows = {}
        for record in result.data or []:
            item = self._from_record(record)
            rows[item.raw_id] = item
        return rows

    async def forget(self, key: KeyLike) -> None:
        await (await self._table()).delete().eq("key", CartKey.coerce(key).name).execute()

    @staticmethod
    def _to_record(key: CartKey, item: Item) -> dict[str, Any]:
        data = item.to_dict()
        record = {column: data.pop(column) for column in COLUMNS}
        record.update(
            {
                "attributes": json.dumps(data, default=str),
                "key": key.name,
                "guard": key.guard,
                "user_id": key.actor_id,
            }
        )
        return record

    @staticmethod
    def _from_record(record: dict[str, Any]) -> Item:
        attributes = record.get("attributes") or {}
        if isinstance(attributes, str):
            attributes = json.loads(attributes)

        columns = {k: v for k, v in record.items() if k not in _META_COLUMNS}
        return Item.from_dict({**attributes, **columns})
