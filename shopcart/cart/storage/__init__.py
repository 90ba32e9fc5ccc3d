"""Cart storage backends."""
from .base import Storage
from .database import DatabaseStorage
from .redis import RedisStorage
from .session import SessionStorage

__all__ = [
    "Storage",
    "SessionStorage",
    "RedisStorage",
    "DatabaseStorage",
]
