"""Order repository that consults a cache before the database."""

from __future__ import annotations

import uuid
from typing import Any

from .model import Order


class OrderNotFoundError(LookupError):
    """Raised when an order is absent from a store."""


class CachedDB:
    """Reads orders from the cache first and falls back to the database."""

    def __init__(self, db: Any, cache: Any) -> None:
        self.db = db
        self.cache = cache

    def save_order(self, order: Order) -> None:
        self.db.save_order(order)

    def get_order(self, order_uid: uuid.UUID) -> Order:
        try:
            return self.cache.get_order(order_uid)
        except OrderNotFoundError:
            return self.db.get_order(order_uid)

    def restore_cache(self) -> None:
        """Load the database's recent orders into the cache."""
        for order in self.db.get_data_for_cache():
            self.cache.add_order(order)

    def close(self) -> None:
        self.db.close()
        self.cache.close()