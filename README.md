# ordersvc

`ordersvc` stores and serves customer orders. An order is a JSON document
with delivery details, a payment record and a list of items. Orders come in
as messages, are validated and written to a relational database, and are
read back through a WSGI application with a Redis cache in front of the
database.

## Modules

- `ordersvc.model`: the `Order`, `Delivery`, `Payment` and `Item`
  dataclasses. `Order.from_json` / `Order.to_json` and `Order.from_dict` /
  `Order.to_dict` convert to and from the wire format. Fields missing from
  the input keep their zero values. `Order.validate()` checks every field
  rule and raises `ValidationError`, whose `fields` attribute lists each
  field that failed, such as `"payment.currency"` or `"delivery.email"`.
  `new_blank_order()` returns an order with a fresh random `order_uid` and
  every other field empty.
- `ordersvc.db`: `PostgresRepository(connect)` takes a callable that returns
  a DB-API connection. Its SQL uses `%s` placeholders.
  - `save_order` inserts the order, its delivery, its payment and its items
    in one transaction.
  - `get_order` loads an order back and raises `OrderNotFoundError` when
    there is no such order.
  - `get_today_order_uids` and `get_data_for_cache` list and load the orders
    created today.
  - `close` closes the connection.
- `ordersvc.cache`: `RedisCache(config, client=None)` stores each order as
  JSON under its order UID. `CacheConfig` holds the server address
  (`"host:port"`, defaulting to `localhost:6379`) and a TTL; a zero TTL means
  keys never expire. If no client is passed, a `redis.Redis` client is
  created from the address. A missing key raises `OrderNotFoundError`.
- `ordersvc.repository`: `CachedDB(db, cache)` saves orders to the database.
  It reads from the cache first and falls back to the database when the
  cache raises `OrderNotFoundError`. `restore_cache()` copies today's orders
  from the database into the cache, and `close()` closes both stores.
- `ordersvc.service`: `Service(repository)` offers `save_order`, `get_order`
  and `restore_cache`. It restores the cache as soon as it is created.
- `ordersvc.consumer`: `Consumer(reader, handler)` works with any reader
  object that has `fetch_message()`, `commit_messages(message)` and
  `close()`. `run(stop_event)` does the following until the
  `threading.Event` is set:
  - fetches a message and passes it to the handler;
  - commits the message only if the handler succeeded;
  - after a failed fetch, waits `retry_delay` seconds (2 by default) before
    trying again.

  `make_message_handler(service)` builds a handler that parses
  `message.value` as an order, validates it and saves it. `ConsumerConfig`
  holds broker, topic and group settings for building a reader.
- `ordersvc.httpapi`: `OrderApp(service, template_path="templates/index.html")`
  is a WSGI application with these routes:
  - `GET /order/<uid>` returns the order as JSON. The response is 400 for an
    id that is not a UUID, 404 for an unknown order and 500 for any other
    failure.
  - `GET /health` answers `OK`.
  - Any other request with no `order_uid` query parameter gets the template
    file as HTML.
  - A request with `?order_uid=...` is redirected (302) to `/order/<uid>`.

## Example

```python
from ordersvc.model import Order, ValidationError

with open("order.json", encoding="utf-8") as fh:
    order = Order.from_json(fh.read())

try:
    order.validate()
except ValidationError as exc:
    print("rejected:", exc.fields)
else:
    print(order.to_json())
```

Wiring the parts together and serving them with the standard library's
reference WSGI server:

```python
from wsgiref.simple_server import make_server

from ordersvc.cache import CacheConfig, RedisCache
from ordersvc.db import PostgresRepository
from ordersvc.httpapi import OrderApp
from ordersvc.repository import CachedDB
from ordersvc.service import Service

repository = CachedDB(PostgresRepository(connect), RedisCache(CacheConfig(addr="localhost:6379")))
service = Service(repository)
app = OrderApp(service, "templates/index.html")

with make_server("", 8080, app) as server:
    server.serve_forever()
```

Here `connect` is any callable that returns a DB-API connection to a
PostgreSQL database.

## What it does not include

- No command-line entry point. Nothing starts the service on its own; you
  wire the parts together and run them yourself.
- No database driver, table schema or migrations. You supply the `connect`
  callable, and the `orders`, `deliveries`, `payments` and `items` tables
  must already exist.
- No message-broker client. `Consumer` needs a reader object that you
  supply.
- No HTML template. The file at `template_path` has to be provided.