"""PostgreSQL storage for orders over a DB-API connection."""

from __future__ import annotations

import logging
import math
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator

from .model import Delivery, Item, Order, Payment
from .repository import OrderNotFoundError

_log = logging.getLogger(__name__)

_INSERT_ORDER = """INSERT INTO orders (order_uid, track_number, entry, locale, internal_signature, customer_id,
    delivery_service, shardkey, sm_id, date_created, oof_shard)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)"""

_INSERT_DELIVERY = """INSERT INTO deliveries (order_uid, name, phone, zip, city, address, region, email)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)"""

_INSERT_PAYMENT = """INSERT INTO payments (order_uid, transaction, request_id, currency, provider,
    amount, payment_dt, bank, delivery_cost, goods_total, custom_fee)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)"""

_INSERT_ITEM = """INSERT INTO items (id, order_uid, chrt_id, track_number, price, rid, name, sale, size,
    total_price, nm_id, brand, status)
    VALUES (gen_random_uuid(), %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)"""

_SELECT_ORDER = """SELECT orders.order_uid, orders.track_number, orders.entry, orders.locale,
    orders.internal_signature, orders.customer_id, orders.delivery_service, orders.shardkey, orders.sm_id,
    orders.date_created, orders.oof_shard,
    deliveries.name, deliveries.phone, deliveries.zip, deliveries.city, deliveries.address, deliveries.region,
    deliveries.email,
    payments.transaction, payments.request_id, payments.currency, payments.provider, payments.amount,
    payments.payment_dt, payments.bank, payments.delivery_cost, payments.goods_total, payments.custom_fee
    FROM orders JOIN deliveries ON orders.order_uid = deliveries.order_uid
    JOIN payments ON orders.order_uid = payments.order_uid
    WHERE orders.order_uid = %s"""

_SELECT_ITEMS = """SELECT items.id, items.chrt_id, items.track_number, items.price, items.rid, items.name,
    items.sale, items.size, items.total_price, items.nm_id, items.brand, items.status
    FROM items WHERE items.order_uid = %s"""

_SELECT_TODAY = """SELECT order_uid
    FROM orders
    WHERE date_created::date = CURRENT_DATE"""


def _as_uuid(value: Any) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _to_unix(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return math.floor(moment.timestamp())


class PostgresRepository:
    """Writes and reads orders, using 'format' placeholders (%s) in its SQL."""

    def __init__(self, connect: Callable[[], Any]) -> None:
        try:
            self._conn = connect()
        except Exception:
            _log.exception("unable to open database connection")
            raise

    @contextmanager
    def _transaction(self) -> Iterator[Any]:
        if self._conn is None:
            raise RuntimeError("repository is closed")
        cursor = self._conn.cursor()
        try:
            yield cursor
            self._conn.commit()
        except BaseException:
            self._conn.rollback()
            raise
        finally:
            cursor.close()

    def save_order(self, order: Order) -> None:
        """Insert the order with its delivery, payment and items in one transaction."""
        delivery, payment = order.delivery, order.payment
        with self._transaction() as cursor:
            cursor.execute(_INSERT_ORDER, (
                order.order_uid, order.track_number, order.entry, order.locale,
                order.internal_signature, order.customer_id, order.delivery_service,
                order.shardkey, order.sm_id, order.date_created, order.oof_shard,
            ))
            cursor.execute(_INSERT_DELIVERY, (
                order.order_uid, delivery.name, delivery.phone, delivery.zip,
                delivery.city, delivery.address, delivery.region, delivery.email,
            ))
            cursor.execute(_INSERT_PAYMENT, (
                order.order_uid, payment.transaction, payment.request_id, payment.currency,
                payment.provider, payment.amount,
                datetime.fromtimestamp(payment.payment_dt, tz=timezone.utc),
                payment.bank, payment.delivery_cost, payment.goods_total, payment.custom_fee,
            ))
            for item in order.items or ():
                cursor.execute(_INSERT_ITEM, (
                    order.order_uid, item.chrt_id, item.track_number, item.price, item.rid,
                    item.name, item.sale, item.size, item.total_price, item.nm_id,
                    item.brand, item.status,
                ))

    def get_order(self, order_uid: uuid.UUID) -> Order:
        """Load one order; raise OrderNotFoundError if there is none."""
        with self._transaction() as cursor:
            cursor.execute(_SELECT_ORDER, (order_uid,))
            row = cursor.fetchone()
            if row is None:
                raise OrderNotFoundError(f"order {order_uid} not found")
            cursor.execute(_SELECT_ITEMS, (order_uid,))
            item_rows = cursor.fetchall()

        head, delivery_row, payment_row = row[:11], row[11:18], row[18:]
        transaction, request_id, currency, provider, amount, paid_at, *rest = payment_row
        items = [Item(*item_row[1:], id=_as_uuid(item_row[0])) for item_row in item_rows]
        return Order(
            order_uid=_as_uuid(head[0]),
            track_number=head[1],
            entry=head[2],
            locale=head[3],
            internal_signature=head[4],
            customer_id=head[5],
            delivery_service=head[6],
            shardkey=head[7],
            sm_id=head[8],
            date_created=head[9],
            oof_shard=head[10],
            delivery=Delivery(*delivery_row),
            payment=Payment(_as_uuid(transaction), request_id, currency, provider, amount,
                            _to_unix(paid_at), *rest),
            items=items or None,
        )

    def get_today_order_uids(self) -> list[uuid.UUID]:
        """Return the UIDs of orders created today."""
        with self._transaction() as cursor:
            cursor.execute(_SELECT_TODAY)
            rows = cursor.fetchall()
        return [_as_uuid(value) for (value,) in rows]

    def get_data_for_cache(self) -> list[Order]:
        """Return every order created today, fully loaded."""
        return [self.get_order(uid) for uid in self.get_today_order_uids()]

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None