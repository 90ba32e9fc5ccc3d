"""Storage contract shared by every cart backend."""
from abc import ABC, abstractmethod
from typing import Optional, Union

from ..models import CartKey, Item

KeyLike = Union[CartKey, str]
Rows = dict[str, Item]


class Storage(ABC):
    """
    Persists the full row collection of a cart under its key.

    set(key, None) clears the cart; get() of an unknown key is empty.
    """

    @abstractmethod
    async def set(self, key: KeyLike, rows: Optional[Rows]) -> None:
        ...

    @abstractmethod
    async def get(self, key: KeyLike) -> Rows:
        ...

    @abstractmethod
    async def forget(self, key: KeyLike) -> None:
        ...


def rows_to_list(rows: Rows) -> list[dict]:
    """Serialize rows into JSON-safe dicts, preserving order."""
    return [item.to_dict() for item in rows.values()]


def rows_from_list(data: list[dict]) -> Rows:
    """Inverse of rows_to_list()."""
    rows: Rows = {}
    for entry in data:
        item = Item.from_dict(entry)
        rows[item.raw_id] = item
    return rows
