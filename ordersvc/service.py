"""Order service sitting on top of a cached repository."""

from __future__ import annotations

import uuid
from typing import Any

from .model import Order


class Service:
    """Saves and looks up orders; warms the cache when created."""

    def __init__(self, repository: Any) -> None:
        self.repository = repository
        self.restore_cache()

    def save_order(self, order: Order) -> None:
        self.repository.save_order(order)

    def get_order(self, order_uid: uuid.UUID) -> Order:
        return self.repository.get_order(order_uid)

    def restore_cache(self) -> None:
        self.repository.restore_cache()