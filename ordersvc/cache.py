"""Redis-backed order cache."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import redis

from .model import Order
from .repository import OrderNotFoundError

_DEFAULT_HOST = "localhost"
_DEFAULT_PORT = 6379


@dataclass(frozen=True)
class CacheConfig:
    addr: str = ""
    ttl: timedelta = timedelta(0)


def _connect(addr: str) -> redis.Redis:
    host, _, port = addr.rpartition(":") if ":" in addr else (addr, "", "")
    return redis.Redis(host=host or _DEFAULT_HOST, port=int(port) if port else _DEFAULT_PORT)


class RedisCache:
    """Stores orders as JSON under their UID; a zero TTL means no expiry."""

    def __init__(self, config: CacheConfig, client: Any = None) -> None:
        self.ttl = config.ttl
        self._client = client if client is not None else _connect(config.addr)

    def add_order(self, order: Order) -> None:
        expiry = self.ttl if self.ttl > timedelta(0) else None
        self._client.set(str(order.order_uid), order.to_json(), ex=expiry)

    def get_order(self, uid: uuid.UUID) -> Order:
        raw = self._client.get(str(uid))
        if raw is None:
            raise OrderNotFoundError("order not found")
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return Order.from_json(raw)
        except ValueError as exc:
            raise ValueError(f"cache unmarshal order: {exc}") from exc

    def close(self) -> None:
        if self._client is None:
            return
        self._client.close()