"""HTTP front end for submitting, cancelling and inspecting orders."""

from __future__ import annotations

import json
import re
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional, Tuple, Union
from urllib.parse import unquote, urlsplit

from .engine import MatchingEngine
from .order_types import Order, OrderSide, OrderType

Response = Tuple[int, str, str]

_TEXT = "text/plain"
_JSON = "application/json"
_DEPTH_LEVELS = 10
_ORDER_TYPES = {t.value: t for t in OrderType}
_LEADING_DIGITS = re.compile(r"\s*\+?(\d+)")


def _field(doc: dict, key: str, kinds: tuple, kind_name: str) -> Any:
    if key not in doc:
        raise ValueError(f"missing field '{key}'")
    value = doc[key]
    if isinstance(value, bool) or not isinstance(value, kinds):
        raise ValueError(f"field '{key}' must be {kind_name}")
    return value


def _parse_order(body: str) -> Order:
    doc = json.loads(body)
    if not isinstance(doc, dict):
        raise ValueError("order must be a JSON object")
    order_id = _field(doc, "id", (int,), "an integer")
    if order_id < 0:
        raise ValueError("field 'id' must be non-negative")
    symbol = _field(doc, "symbol", (str,), "a string")
    side = OrderSide.BUY if _field(doc, "side", (str,), "a string") == "buy" else OrderSide.SELL
    type_name = _field(doc, "type", (str,), "a string")
    if type_name not in _ORDER_TYPES:
        raise ValueError("Invalid order type")
    quantity = float(_field(doc, "quantity", (int, float), "a number"))
    price = None
    if "price" in doc:
        price = float(_field(doc, "price", (int, float), "a number"))
    return Order(
        id=order_id,
        symbol=symbol,
        side=side,
        type=_ORDER_TYPES[type_name],
        quantity=quantity,
        price=price,
    )


def _parse_order_id(text: str) -> int:
    match = _LEADING_DIGITS.match(text)
    if match is None:
        raise ValueError("invalid order id")
    return int(match.group(1))


class HttpServer:
    """Serves the order endpoints for a matching engine.

    POST /order, GET /orderbook/<symbol> and DELETE /order/<symbol>/<id>.
    Path segments are percent-decoded, so a symbol such as BTC/USD is
    written BTC%2FUSD.
    """

    def __init__(self, engine: MatchingEngine, host: str = "0.0.0.0") -> None:
        self.engine = engine
        self.host = host
        self.server_address: Optional[Tuple[str, int]] = None
        self._httpd: Optional[ThreadingHTTPServer] = None
        self._lock = threading.Lock()

    def handle(self, method: str, path: str, body: Union[str, bytes]) -> Response:
        """Route one request; returns (status, content type, body text)."""
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        segments = [unquote(part) for part in urlsplit(path).path.split("/")[1:]]
        method = method.upper()

        if method == "POST" and segments == ["order"]:
            return self._submit(body)
        if method == "GET" and len(segments) == 2 and segments[0] == "orderbook" and segments[1]:
            return self._orderbook(segments[1])
        if (
            method == "DELETE"
            and len(segments) == 3
            and segments[0] == "order"
            and segments[1]
            and segments[2]
        ):
            return self._cancel(segments[1], segments[2])
        return 404, _TEXT, ""

    def start(self, port: int) -> None:
        """Listen on `port` and serve until shutdown() is called."""
        httpd = ThreadingHTTPServer((self.host, port), self._make_handler())
        httpd.daemon_threads = True
        with self._lock:
            self._httpd = httpd
            self.server_address = httpd.server_address[:2]
        print(f"Starting HTTP server on port {port}", flush=True)
        try:
            httpd.serve_forever()
        finally:
            httpd.server_close()
            with self._lock:
                self._httpd = None

    def shutdown(self) -> None:
        """Stop a running server; does nothing if it is not running."""
        with self._lock:
            httpd = self._httpd
        if httpd is not None:
            httpd.shutdown()

    # ---- routes -----------------------------------------------------------

    def _submit(self, body: str) -> Response:
        try:
            order = _parse_order(body)
            self.engine.submit_order(order.symbol, order)
        except Exception as exc:
            return 400, _TEXT, str(exc)
        return 200, _TEXT, "Order submitted successfully"

    def _orderbook(self, symbol: str) -> Response:
        try:
            depth = self.engine.depth(symbol, _DEPTH_LEVELS)
            payload = json.dumps([list(level) for level in depth], separators=(",", ":"))
        except Exception as exc:
            return 400, _TEXT, str(exc)
        return 200, _JSON, payload

    def _cancel(self, symbol: str, raw_id: str) -> Response:
        try:
            self.engine.cancel_order(symbol, _parse_order_id(raw_id))
        except Exception as exc:
            return 400, _TEXT, str(exc)
        return 200, _TEXT, "Order cancelled successfully"

    def _make_handler(self) -> type:
        app = self

        class _Handler(BaseHTTPRequestHandler):
            protocol_version = "HTTP/1.1"

            def _dispatch(self) -> None:
                length = int(self.headers.get("Content-Length") or 0)
                body = self.rfile.read(length) if length > 0 else b""
                status, content_type, text = app.handle(self.command, self.path, body)
                payload = text.encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)

            do_GET = _dispatch
            do_POST = _dispatch
            do_DELETE = _dispatch

            def log_message(self, format: str, *args: Any) -> None:
                pass

        return _Handler