"""Session-backed cart storage."""
from typing import Any, MutableMapping, Optional

from ..models import CartKey
from .base import KeyLike, Rows, Storage, rows_from_list, rows_to_list


class SessionStorage(Storage):
    """
    Keeps rows in the request's session mapping.

    Rows are stored as plain dicts, so Starlette's cookie session
    (`request.session`) can hold them as well as a dict.
    """

    def __init__(self, session: MutableMapping[str, Any]):
        self.session = session

    async def set(self, key: KeyLike, rows: Optional[Rows]) -> None:
        if rows is None:
            await self.forget(key)
            return
        self.session[CartKey.coerce(key).name] = rows_to_list(rows)

    async def get(self, key: KeyLike) -> Rows:
        data = self.session.get(CartKey.coerce(key).name)
        if not data:
            return {}
        return rows_from_list(data)

    async def forget(self, key: KeyLike) -> None:
        self.session.pop(CartKey.coerce(key).name, None)
