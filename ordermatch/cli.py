"""Command line entry point: run the engine, its HTTP server and a few sample orders."""

from __future__ import annotations

import argparse
import itertools
import json
import random
import sys
import threading
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from .engine import MatchingEngine
from .http_server import HttpServer
from .order_types import Order, OrderSide, OrderType, Trade

_order_ids = itertools.count(1)
_default_rng = random.Random()


def _millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def generate_random_order(symbol: str, rng: Optional[random.Random] = None) -> Order:
    """A random order for `symbol` with the next sequential id."""
    rng = rng if rng is not None else _default_rng
    return Order(
        id=next(_order_ids),
        symbol=symbol,
        side=OrderSide.BUY if rng.randint(0, 1) == 0 else OrderSide.SELL,
        type=rng.choice(list(OrderType)),
        price=rng.uniform(100.0, 1000.0),
        quantity=rng.uniform(0.1, 10.0),
    )


def order_to_json(order: Order) -> Dict[str, Any]:
    """The JSON-ready form of an order, with a millisecond timestamp."""
    return {
        "id": order.id,
        "symbol": order.symbol,
        "side": order.side.value,
        "type": order.type.value,
        "price": order.price,
        "quantity": order.quantity,
        "timestamp": _millis(order.timestamp),
    }


def trade_to_json(trade: Trade) -> Dict[str, Any]:
    """The JSON-ready form of a trade, with a millisecond timestamp."""
    return {
        "maker_order_id": trade.maker_order_id,
        "taker_order_id": trade.taker_order_id,
        "symbol": trade.symbol,
        "price": trade.price,
        "quantity": trade.quantity,
        "aggressor_side": trade.aggressor_side.value,
        "timestamp": _millis(trade.timestamp),
    }


def _dump(doc: Dict[str, Any]) -> str:
    return json.dumps(doc, sort_keys=True, separators=(",", ":"))


def _serve(server: HttpServer, port: int) -> None:
    try:
        server.start(port)
    except Exception as exc:
        print(f"HTTP Server Error: {exc}", file=sys.stderr, flush=True)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ordermatch", description="Run the matching engine with its HTTP API."
    )
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=8081, help="HTTP port")
    parser.add_argument("--symbol", default="BTC/USD", help="symbol for sample orders")
    parser.add_argument("--count", type=int, default=10, help="number of sample orders")
    parser.add_argument(
        "--delay", type=float, default=0.1, help="seconds between sample orders"
    )
    parser.add_argument(
        "--startup-delay", type=float, default=1.0, help="seconds to wait for the server"
    )
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument(
        "--no-server",
        dest="serve",
        action="store_false",
        help="only submit the sample orders, then exit",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    rng = random.Random(args.seed)
    try:
        with MatchingEngine() as engine:
            server: Optional[HttpServer] = None
            thread: Optional[threading.Thread] = None
            if args.serve:
                server = HttpServer(engine, host=args.host)
                thread = threading.Thread(
                    target=_serve, args=(server, args.port), daemon=True
                )
                thread.start()
                time.sleep(args.startup_delay)

            for _ in range(args.count):
                order = generate_random_order(args.symbol, rng)
                print(f"Submitting order: {_dump(order_to_json(order))}", flush=True)
                engine.submit_order(args.symbol, order)
                time.sleep(args.delay)

            if thread is not None and server is not None:
                try:
                    while thread.is_alive():
                        thread.join(0.5)
                except KeyboardInterrupt:
                    server.shutdown()
                    thread.join()
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())