import pytest

from ordersvc.model import new_blank_order
from ordersvc.repository import CachedDB, OrderNotFoundError


class FakeDB:
    def __init__(self, orders=None, cache_data=None):
        self.orders = orders or {}
        self.cache_data = cache_data or []
        self.saved = []
        self.lookups = []
        self.closed = False

    def save_order(self, order):
        self.saved.append(order)

    def get_order(self, uid):
        self.lookups.append(uid)
        return self.orders[uid]

    def get_data_for_cache(self):
        return self.cache_data

    def close(self):
        self.closed = True


class FakeCache:
    def __init__(self, orders=None, error=None, fail_on_add=None):
        self.orders = orders or {}
        self.error = error
        self.fail_on_add = fail_on_add
        self.added = []
        self.closed = False

    def get_order(self, uid):
        if self.error is not None:
            raise self.error
        if uid not in self.orders:
            raise OrderNotFoundError("order not found")
        return self.orders[uid]

    def add_order(self, order):
        if self.fail_on_add is order:
            raise ConnectionError("cache down")
        self.added.append(order)

    def close(self):
        self.closed = True


def test_get_order_cache_has_data():
    order = new_blank_order()
    db = FakeDB()
    repo = CachedDB(db, FakeCache({order.order_uid: order}))
    assert repo.get_order(order.order_uid) is order
    assert db.lookups == []


def test_get_order_cache_has_no_data():
    order = new_blank_order()
    db = FakeDB(orders={order.order_uid: order})
    repo = CachedDB(db, FakeCache())
    assert repo.get_order(order.order_uid) is order
    assert db.lookups == [order.order_uid]


def test_get_order_other_cache_error_propagates():
    order = new_blank_order()
    db = FakeDB(orders={order.order_uid: order})
    repo = CachedDB(db, FakeCache(error=ConnectionError("cache down")))
    with pytest.raises(ConnectionError):
        repo.get_order(order.order_uid)
    assert db.lookups == []


def test_get_order_database_miss_propagates():
    order = new_blank_order()
    repo = CachedDB(FakeDB(), FakeCache())
    with pytest.raises(KeyError):
        repo.get_order(order.order_uid)


def test_save_order():
    order = new_blank_order()
    db = FakeDB()
    cache = FakeCache()
    CachedDB(db, cache).save_order(order)
    assert db.saved == [order]
    assert cache.added == []


def test_restore_cache():
    data = [new_blank_order() for _ in range(10)]
    cache = FakeCache()
    CachedDB(FakeDB(cache_data=data), cache).restore_cache()
    assert cache.added == data


def test_restore_cache_stops_on_error():
    data = [new_blank_order() for _ in range(3)]
    cache = FakeCache(fail_on_add=data[1])
    with pytest.raises(ConnectionError):
        CachedDB(FakeDB(cache_data=data), cache).restore_cache()
    assert cache.added == data[:1]


def test_close():
    db = FakeDB()
    cache = FakeCache()
    CachedDB(db, cache).close()
    assert db.closed
    assert cache.closed