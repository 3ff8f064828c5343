"""Database layer for items, locations and prices."""

from .connection import get_connection, init_db
from .models import ItemPrice, Location, from_cents, to_cents

__all__ = [
    "get_connection",
    "init_db",
    "ItemPrice",
    "Location",
    "from_cents",
    "to_cents",
]
