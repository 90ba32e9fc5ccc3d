"""Cart models: cart keys, rows and row identity."""
import hashlib
import importlib
import json
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Mapping, Optional, Type

from shopcart.errors import ERROR_INVALID_MODEL, InvalidArgument
from shopcart.money import multiply, to_decimal

CART_PREFIX = "cart."

# Fixed row fields, in storage order
FIELDS = ("raw_id", "product_id", "name", "qty", "price", "total", "model", "type", "status", "parent_id")

# Storage names for fields that are "private" in the persisted form
_STORED_NAMES = {"raw_id": "__raw_id", "model": "__model"}
_FIELD_NAMES = {v: k for k, v in _STORED_NAMES.items()}

_MISSING = object()


def generate_raw_id(product_id: Any, attributes: Optional[Mapping[str, Any]] = None) -> str:
    """
    Generate the row identity for a product + attributes pair.

    Attributes are sorted by key before hashing, so insertion order never
    changes the id.

    Returns:
        32-char MD5 hex digest
    """
    ordered = dict(sorted((attributes or {}).items()))
    canonical = json.dumps(ordered, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(f"{product_id}{canonical}".encode("utf-8")).hexdigest()


def import_model(path: str) -> type:
    """Import a class from a dotted path ("pkg.module.Class" or "pkg.module:Class")."""
    module_name, sep, attr = path.rpartition(":") if ":" in path else path.rpartition(".")
    if not sep or not module_name or not attr:
        raise InvalidArgument(ERROR_INVALID_MODEL.format(model=path))

    try:
        module = importlib.import_module(module_name)
        model = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise InvalidArgument(ERROR_INVALID_MODEL.format(model=path)) from e

    if not isinstance(model, type):
        raise InvalidArgument(ERROR_INVALID_MODEL.format(model=path))
    return model


def model_path(model: type) -> str:
    """Dotted path for a class, as stored in the __model column."""
    return f"{model.__module__}.{model.__qualname__}"


@dataclass(frozen=True)
class CartKey:
    """
    Storage key of one cart.

    Actor-scoped carts carry guard and actor as separate fields; the
    dotted name is only derived from them, never parsed back.
    """
    suffix: str = "default"
    guard: Optional[str] = None
    actor_id: Optional[str] = None

    @property
    def is_actor_scoped(self) -> bool:
        return self.guard is not None and self.actor_id is not None

    @property
    def name(self) -> str:
        if self.is_actor_scoped:
            return f"{CART_PREFIX}{self.guard}.{self.actor_id}"
        return f"{CART_PREFIX}{self.suffix}"

    def __str__(self) -> str:
        return self.name

    @classmethod
    def for_actor(cls, guard: str, actor_id: Any) -> "CartKey":
        return cls(guard=guard, actor_id=str(actor_id))

    @classmethod
    def coerce(cls, value: "CartKey | str") -> "CartKey":
        """Accept a CartKey or a plain cart name ("cart.x" or "x")."""
        if isinstance(value, CartKey):
            return value
        if not isinstance(value, str):
            raise TypeError(f"Cart key must be CartKey or str, got {type(value).__name__}")
        suffix = value[len(CART_PREFIX):] if value.startswith(CART_PREFIX) else value
        return cls(suffix=suffix)


@dataclass
class Item:
    """One cart row, keyed by raw_id."""
    raw_id: str
    product_id: Any
    name: Optional[str] = None
    qty: int = 1
    price: Decimal = Decimal("0")
    total: Optional[Decimal] = None
    parent_id: Any = 0
    model: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    attributes: dict = field(default_factory=dict)

    def __post_init__(self):
        self.qty = int(self.qty)
        self.price = to_decimal(self.price)
        if self.total is None:
            self.total = multiply(self.qty, self.price)
        else:
            self.total = to_decimal(self.total)

    def __getattr__(self, name: str) -> Any:
        # Only reached for names that are not fixed fields
        if name.startswith("__") or name == "attributes":
            raise AttributeError(name)
        attributes = self.__dict__.get("attributes", {})
        if name in attributes:
            return attributes[name]
        raise AttributeError(f"Item has no attribute '{name}'")

    def get(self, key: str, default: Any = None) -> Any:
        """Read a fixed field or an extra attribute."""
        name = _FIELD_NAMES.get(key, key)
        if name in FIELDS:
            return getattr(self, name)
        return self.attributes.get(key, default)

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __contains__(self, key: str) -> bool:
        return _FIELD_NAMES.get(key, key) in FIELDS or key in self.attributes

    def apply(self, changes: Mapping[str, Any]) -> "Item":
        """Set each key on the row; recompute total if qty or price changed."""
        for key, value in changes.items():
            name = _FIELD_NAMES.get(key, key)
            if name == "raw_id":
                continue
            if name == "qty":
                value = int(value)
            elif name in ("price", "total"):
                value = to_decimal(value)

            if name in FIELDS:
                setattr(self, name, value)
            else:
                self.attributes[key] = value

        if {"qty", "price"} & set(changes):
            self.total = multiply(self.qty, self.price)
        return self

    def copy(self) -> "Item":
        return replace(self, attributes=dict(self.attributes))

    def resolve_model(self) -> Optional[Type[Any]]:
        """Import the associated model class, if any."""
        return import_model(self.model) if self.model else None

    def to_dict(self) -> dict:
        """Flatten to the stored form (JSON-safe)."""
        data = {}
        for name in FIELDS:
            value = getattr(self, name)
            if isinstance(value, Decimal):
                value = str(value)
            data[_STORED_NAMES.get(name, name)] = value
        for key, value in self.attributes.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Item":
        """Create from the stored form; unknown keys become attributes."""
        values: dict[str, Any] = {}
        attributes: dict[str, Any] = {}
        for key, value in data.items():
            name = _FIELD_NAMES.get(key, key)
            if name in FIELDS:
                values[name] = value
            else:
                attributes[key] = value
        return cls(**values, attributes=attributes)
