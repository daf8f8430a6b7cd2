import json
import threading
import time
import urllib.error
import urllib.request

import pytest

from ordermatch.engine import MatchingEngine
from ordermatch.http_server import HttpServer


@pytest.fixture
def engine():
    with MatchingEngine() as eng:
        yield eng


@pytest.fixture
def server(engine):
    return HttpServer(engine)


def _order_body(**overrides):
    doc = {
        "id": 1,
        "symbol": "BTCUSD",
        "side": "buy",
        "type": "limit",
        "quantity": 2.0,
        "price": 100.0,
    }
    doc.update(overrides)
    return json.dumps(doc)


def test_post_order_rests_in_book(server, engine):
    status, content_type, text = server.handle("POST", "/order", _order_body())
    assert (status, content_type, text) == (200, "text/plain", "Order submitted successfully")
    engine.drain()
    assert engine.depth("BTCUSD", 10) == [(100.0, 2.0)]


def test_post_accepts_bytes_body(server, engine):
    status, _, _ = server.handle("POST", "/order", _order_body(id=5).encode())
    assert status == 200
    engine.drain()
    assert engine.bbo("BTCUSD").best_bid == 100.0


def test_invalid_order_type_is_rejected(server):
    status, content_type, text = server.handle("POST", "/order", _order_body(type="stop"))
    assert status == 400
    assert content_type == "text/plain"
    assert text == "Invalid order type"


def test_malformed_json_is_rejected(server):
    status, _, _ = server.handle("POST", "/order", "{not json")
    assert status == 400


@pytest.mark.parametrize("missing", ["id", "symbol", "side", "type", "quantity"])
def test_missing_field_is_rejected(server, missing):
    doc = json.loads(_order_body())
    del doc[missing]
    status, _, text = server.handle("POST", "/order", json.dumps(doc))
    assert status == 400
    assert missing in text


def test_non_object_body_is_rejected(server):
    status, _, _ = server.handle("POST", "/order", "[1, 2]")
    assert status == 400


def test_any_side_other_than_buy_is_sell(server, engine):
    server.handle("POST", "/order", _order_body(side="whatever"))
    engine.drain()
    bbo = engine.bbo("BTCUSD")
    assert bbo.best_offer == 100.0
    assert bbo.best_bid is None


def test_orderbook_returns_json_depth(server, engine):
    server.handle("POST", "/order", _order_body())
    server.handle("POST", "/order", _order_body(id=2, side="sell", price=105.0, quantity=1.0))
    engine.drain()
    status, content_type, text = server.handle("GET", "/orderbook/BTCUSD", "")
    assert status == 200
    assert content_type == "application/json"
    assert json.loads(text) == [[100.0, 2.0], [105.0, 1.0]]


def test_orderbook_for_unknown_symbol_is_empty(server):
    status, _, text = server.handle("GET", "/orderbook/NOPE", "")
    assert status == 200
    assert json.loads(text) == []


def test_encoded_symbol_in_path(server, engine):
    server.handle("POST", "/order", _order_body(symbol="BTC/USD"))
    engine.drain()
    status, _, text = server.handle("GET", "/orderbook/BTC%2FUSD", "")
    assert status == 200
    assert json.loads(text) == [[100.0, 2.0]]


def test_delete_cancels_order(server, engine):
    server.handle("POST", "/order", _order_body(id=9))
    status, _, text = server.handle("DELETE", "/order/BTCUSD/9", "")
    assert (status, text) == (200, "Order cancelled successfully")
    engine.drain()
    assert engine.depth("BTCUSD", 10) == []


def test_delete_with_bad_id_is_rejected(server):
    status, _, _ = server.handle("DELETE", "/order/BTCUSD/abc", "")
    assert status == 400


@pytest.mark.parametrize(
    "method, path",
    [("GET", "/order"), ("PUT", "/order"), ("GET", "/orderbook/"), ("GET", "/nowhere")],
)
def test_unknown_routes_are_not_found(server, method, path):
    assert server.handle(method, path, "")[0] == 404


def test_submit_after_engine_closed_is_bad_request():
    engine = MatchingEngine()
    engine.close()
    status, _, _ = HttpServer(engine).handle("POST", "/order", _order_body())
    assert status == 400


def test_serves_over_http(engine, capsys):
    server = HttpServer(engine, host="127.0.0.1")
    thread = threading.Thread(target=server.start, args=(0,), daemon=True)
    thread.start()
    deadline = time.monotonic() + 5
    while server.server_address is None and time.monotonic() < deadline:
        time.sleep(0.01)
    host, port = server.server_address
    base = f"http://{host}:{port}"
    try:
        request = urllib.request.Request(
            base + "/order", data=_order_body().encode(), method="POST"
        )
        with urllib.request.urlopen(request, timeout=5) as response:
            assert response.status == 200
            assert response.read() == b"Order submitted successfully"
        engine.drain()
        with urllib.request.urlopen(base + "/orderbook/BTCUSD", timeout=5) as response:
            assert json.loads(response.read()) == [[100.0, 2.0]]
        with pytest.raises(urllib.error.HTTPError) as info:
            urllib.request.urlopen(base + "/missing", timeout=5)
        assert info.value.code == 404
    finally:
        server.shutdown()
        thread.join(timeout=5)
    assert not thread.is_alive()
    assert "Starting HTTP server on port 0" in capsys.readouterr().out