"""Cart configuration loaded from environment variables."""
import json
import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from shopcart.db import TTL

StorageName = Literal["session", "redis", "database"]


class CartSettings(BaseModel):
    """Storage backend selection and guard naming for carts."""

    storage: StorageName = "session"
    # auth guard name -> alias used in the cart name (cart.{alias}.{user_id})
    aliases: dict[str, str] = Field(default_factory=dict)
    table: str = "shopping_cart"
    ttl_seconds: int = TTL.CART
    default_guard: str = "default"

    @field_validator("storage", mode="before")
    @classmethod
    def normalize_storage(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    def alias_for(self, guard: str) -> str:
        """Map an auth guard to its configured alias (or itself)."""
        return self.aliases.get(guard, guard)

    @classmethod
    def from_env(cls) -> "CartSettings":
        """
        Build settings from the environment.

        CART_STORAGE        session | redis | database
        CART_GUARD_ALIASES  JSON object, e.g. {"api": "web"}
        CART_TABLE          table for database storage
        CART_TTL_SECONDS    TTL for redis storage
        CART_DEFAULT_GUARD  guard used when the request names none
        """
        aliases_raw = os.environ.get("CART_GUARD_ALIASES", "").strip()
        return cls(
            storage=os.environ.get("CART_STORAGE", "session"),
            aliases=json.loads(aliases_raw) if aliases_raw else {},
            table=os.environ.get("CART_TABLE", "shopping_cart"),
            ttl_seconds=int(os.environ.get("CART_TTL_SECONDS", TTL.CART)),
            default_guard=os.environ.get("CART_DEFAULT_GUARD", "default"),
        )


@lru_cache()
def get_settings() -> CartSettings:
    """Get cached settings instance."""
    return CartSettings.from_env()
