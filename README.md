# ordermatch

An in-memory order matching engine. Each symbol has its own order book. Orders
are matched by price first and then by arrival time. The package also has an
HTTP API for the engine, a small WebSocket server and a command that runs the
engine with some sample orders.

## Installation

```
pip install .
```

To also install the test tools, use `pip install .[test]`.

## Order types

`ordermatch.order_types` defines these types:

- `OrderSide` (`BUY`, `SELL`)
- `OrderType` (`MARKET`, `LIMIT`, `IOC`, `FOK`)
- `Order`, `Trade`, `OrderBookLevel`
- `BestBidOffer`, whose fields are `None` when that side of the book is empty

## Order book

`ordermatch.order_book.OrderBook(symbol, trade_callback=None, bbo_callback=None)`
holds the book for one symbol. Every method takes effect at once.

- `add_order(order)` matches the order against the opposite side, best price
  first and oldest order first within a price level. Each fill produces a
  `Trade` at the resting order's price.
  - A `LIMIT` order only trades at its own price or better, and any part left
    over rests in the book.
  - `MARKET`, `IOC` and `FOK` orders never rest, and an unfilled remainder is
    dropped. `FOK` is handled the same way as `IOC`, so it can be partly
    filled.
  - When one of these orders has a price, it is used as a limit.
  - The method returns `False` only for a `LIMIT` order that has no price.
  - The `Order` object you pass in is not changed.
- `cancel_order(order_id)` removes a resting order. It returns `False` if the
  order is not in the book.
- `modify_order(order_id, new_quantity)` sets a resting order's quantity. The
  order keeps its place in the queue.
- `bbo()` returns a `BestBidOffer` with the best prices and the total quantity
  at each of them.
- `depth(levels)` returns `(price, total_quantity)` pairs. You get up to
  `levels` bid levels, best first, followed by up to `levels` ask levels, best
  first.

`trade_callback(trade)` is called for every fill. `bbo_callback(symbol, bbo)`
is called after every change to the book.

## Matching engine

```python
from ordermatch.engine import MatchingEngine
from ordermatch.order_types import Order, OrderSide, OrderType

with MatchingEngine() as engine:
    engine.submit_order("BTC/USD", Order(id=1, symbol="BTC/USD", side=OrderSide.SELL,
                                         type=OrderType.LIMIT, quantity=2.0, price=500.0))
    engine.submit_order("BTC/USD", Order(id=2, symbol="BTC/USD", side=OrderSide.BUY,
                                         type=OrderType.LIMIT, quantity=1.0, price=510.0))
    engine.drain()
    print(engine.bbo("BTC/USD"))
    print(engine.depth("BTC/USD", 10))
```

`MatchingEngine(trade_callback=None, bbo_callback=None)` keeps one `OrderBook`
per symbol. A book is created the first time an order is submitted for that
symbol.

- `submit_order`, `cancel_order` and `modify_order` put an event on a queue and
  return `True`. A background thread applies the events in the order they
  arrived. Cancelling or modifying an order for a symbol that has no book does
  nothing.
- `bbo(symbol)` and `depth(symbol, levels)` read the current book straight
  away. For a symbol with no book they return an empty `BestBidOffer` or an
  empty list.
- `drain()` blocks until every queued event has been applied.
- `close()` applies what is still queued and then stops the worker. Leaving a
  `with` block does the same.
- After `close()`, the queueing methods raise `RuntimeError`.

The callbacks are passed to every book the engine creates, and they run on the
worker thread.

## HTTP API

`ordermatch.http_server.HttpServer(engine, host="0.0.0.0")` serves these routes:

- `POST /order` takes a JSON object with these fields:
  - `id`: a non-negative integer
  - `symbol`
  - `side`: `"buy"`; any other value means sell
  - `type`: `market`, `limit`, `ioc` or `fok`
  - `quantity`
  - `price`: optional

  The order is queued on the engine.
- `GET /orderbook/<symbol>` returns up to 10 bid levels followed by up to 10 ask
  levels, as a JSON list of `[price, quantity]` pairs.
- `DELETE /order/<symbol>/<id>` queues the cancellation of an order.

Path segments are percent-decoded, so the symbol `BTC/USD` is written
`BTC%2FUSD`. An invalid request gets status 400 with the error text as a plain
text body. An unknown route gets 404.

The server has these methods:

- `start(port)` listens and blocks until `shutdown()` is called from another
  thread. Once it is listening, the bound address is available in
  `server_address`.
- `handle(method, path, body)` routes a single request without any networking.
  It returns `(status, content_type, body_text)`.

## WebSocket server

`ordermatch.websocket_server.WebSocketServer(host="0.0.0.0", message_callback=None,
connection_callback=None, disconnection_callback=None)` accepts WebSocket clients
on a background thread.

- Each client gets an id of the form `client_0x...`.
- Incoming messages go to `message_callback(client_id, payload)`.
- Connects and disconnects go to `connection_callback(connection)` and
  `disconnection_callback(connection)`.

It has these members:

- `start(port)`: `0` picks a free port, which can then be read from `port`.
  Raises `OSError` if the port cannot be bound.
- `stop()`
- `send(connection, message)`
- `broadcast(message)`
- `running`
- `clients`: the ids of the clients connected right now.

## Command line

```
ordermatch
```

This starts the HTTP server on port 8081 and waits one second. It then submits
ten random `BTC/USD` orders, 0.1 seconds apart, and prints each one as JSON. It
keeps serving until you interrupt it.

It takes these options:

- `--host`
- `--port`
- `--symbol`
- `--count`
- `--delay`: seconds between orders
- `--startup-delay`
- `--seed`: random seed
- `--no-server`: only submit the sample orders and then exit

`ordermatch.cli` also provides `generate_random_order(symbol, rng=None)`,
`order_to_json(order)` and `trade_to_json(trade)`. The last two produce
JSON-ready dicts with millisecond timestamps.

## What it does not do

- The WebSocket server is not connected to the engine. Trades and best
  bid/offer changes are only delivered through the engine's callbacks. They are
  not pushed to WebSocket clients.
- The HTTP API cannot modify orders.
- Books are kept only in memory, so nothing is persisted.