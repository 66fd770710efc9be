import re
import uuid
from datetime import date, datetime, timezone

import pytest

from ordersvc.db import PostgresRepository
from ordersvc.model import Delivery, Item, Order, Payment
from ordersvc.repository import OrderNotFoundError

TODAY = date(2024, 1, 2)


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.result = []
        self.closed = False

    def execute(self, sql, params=()):
        conn = self.conn
        conn.statements.append(sql)
        if conn.fail_on and conn.fail_on in sql:
            raise RuntimeError("write failed")
        insert = re.match(r"\s*INSERT INTO (\w+)", sql)
        if insert:
            conn.staged.append((insert.group(1), tuple(params)))
        elif "FROM orders JOIN" in sql:
            uid = params[0]
            if uid in conn.orders:
                self.result = [conn.orders[uid] + conn.deliveries[uid][1:] + conn.payments[uid][1:]]
            else:
                self.result = []
        elif "FROM items" in sql:
            self.result = [(iid,) + p[1:] for iid, p in conn.items if p[0] == params[0]]
        elif "SELECT order_uid" in sql:
            self.result = [(str(uid),) for uid, row in conn.orders.items() if row[9].date() == conn.today]
        else:
            raise AssertionError(sql)

    def fetchone(self):
        return self.result[0] if self.result else None

    def fetchall(self):
        return list(self.result)

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, fail_on=None):
        self.orders, self.deliveries, self.payments, self.items = {}, {}, {}, []
        self.staged = []
        self.statements = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = 0
        self.fail_on = fail_on
        self.today = TODAY

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1
        for table, params in self.staged:
            if table == "items":
                self.items.append((uuid.uuid4(), params))
            else:
                getattr(self, table)[params[0]] = params
        self.staged = []

    def rollback(self):
        self.rollbacks += 1
        self.staged = []

    def close(self):
        self.closed += 1


def make_order(created=datetime(2024, 1, 2, 10, 30, tzinfo=timezone.utc), items=2):
    return Order(
        order_uid=uuid.uuid4(),
        track_number="WBILMTESTTRACK",
        entry="WBIL",
        delivery=Delivery("Test Testov", "+1000", "2639809", "Kiryat Mozkin",
                          "Ploshad Mira 15", "Kraiot", "test@example.com"),
        payment=Payment(uuid.uuid4(), "", "USD", "wbpay", 1817, 1637907727, "alpha", 1500, 317, 0),
        items=[Item(9934930 + n, "WBILMTESTTRACK", 453, str(uuid.uuid4()), "Mascaras", 30, "0",
                    317, 2389212, "Vivienne Sabo", 202) for n in range(items)],
        locale="en",
        customer_id="test",
        delivery_service="meest",
        shardkey="9",
        sm_id=99,
        date_created=created,
        oof_shard="1",
    )


@pytest.fixture
def conn():
    return FakeConnection()


@pytest.fixture
def repo(conn):
    return PostgresRepository(lambda: conn)


def test_save_then_get_round_trip(repo, conn):
    order = make_order()
    repo.save_order(order)
    assert conn.commits == 1
    fetched = repo.get_order(order.order_uid)
    assert fetched.to_dict() == order.to_dict()
    assert all(item.id != uuid.UUID(int=0) for item in fetched.items)


def test_payment_time_stored_as_timestamp(repo, conn):
    order = make_order()
    repo.save_order(order)
    stored = conn.payments[order.order_uid][6]
    assert stored == datetime.fromtimestamp(order.payment.payment_dt, tz=timezone.utc)


def test_one_insert_per_item(repo, conn):
    order = make_order(items=3)
    repo.save_order(order)
    assert sum("INSERT INTO items" in sql for sql in conn.statements) == 3
    fetched = repo.get_order(order.order_uid)
    assert [item.chrt_id for item in fetched.items] == [9934930, 9934931, 9934932]


def test_order_without_items_reads_back_none(repo):
    order = make_order(items=0)
    repo.save_order(order)
    assert repo.get_order(order.order_uid).items is None


def test_failed_insert_rolls_back():
    conn = FakeConnection(fail_on="INSERT INTO payments")
    repo = PostgresRepository(lambda: conn)
    with pytest.raises(RuntimeError):
        repo.save_order(make_order())
    assert conn.rollbacks == 1
    assert conn.commits == 0
    assert conn.orders == {}


def test_missing_order_raises(repo, conn):
    with pytest.raises(OrderNotFoundError):
        repo.get_order(uuid.uuid4())
    assert conn.rollbacks == 1


def test_today_uids_and_cache_data(repo):
    fresh = make_order()
    old = make_order(created=datetime(2023, 5, 1, tzinfo=timezone.utc))
    repo.save_order(fresh)
    repo.save_order(old)
    assert repo.get_today_order_uids() == [fresh.order_uid]
    cached = repo.get_data_for_cache()
    assert [o.order_uid for o in cached] == [fresh.order_uid]


def test_cache_data_empty_when_nothing_today(repo):
    repo.save_order(make_order(created=datetime(2020, 1, 1, tzinfo=timezone.utc)))
    assert repo.get_data_for_cache() == []


def test_close_is_idempotent(repo, conn):
    repo.close()
    repo.close()
    assert conn.closed == 1
    with pytest.raises(RuntimeError):
        repo.get_today_order_uids()


def test_connect_failure_propagates():
    def connect():
        raise ConnectionError("refused")

    with pytest.raises(ConnectionError):
        PostgresRepository(connect)