from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from ordermatch.order_types import (
    BestBidOffer,
    Order,
    OrderBookLevel,
    OrderSide,
    OrderType,
    Trade,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("market", OrderType.MARKET),
        ("limit", OrderType.LIMIT),
        ("ioc", OrderType.IOC),
        ("fok", OrderType.FOK),
    ],
)
def test_order_type_from_wire_name(text, expected):
    assert OrderType(text) is expected


def test_order_type_unknown_name_raises():
    with pytest.raises(ValueError):
        OrderType("stop")


def test_order_type_declaration_order():
    parsed = [OrderType(name) for name in ("market", "limit", "ioc", "fok")]
    assert parsed == list(OrderType)
    assert [member.value for member in OrderType] == ["market", "limit", "ioc", "fok"]


def test_order_side_wire_names():
    assert OrderSide("buy") is OrderSide.BUY
    assert OrderSide("sell") is OrderSide.SELL
    assert OrderSide.BUY.value == "buy"


def test_order_defaults():
    before = datetime.now(timezone.utc)
    order = Order(id=7, symbol="BTC/USD", side=OrderSide.BUY,
                  type=OrderType.MARKET, quantity=1.5)
    after = datetime.now(timezone.utc)
    assert order.price is None
    assert order.is_active is True
    assert before <= order.timestamp <= after


def test_trade_timestamp_is_current():
    before = datetime.now(timezone.utc)
    trade = Trade(maker_order_id=1, taker_order_id=2, symbol="BTC/USD",
                  price=100.0, quantity=1.0, aggressor_side=OrderSide.SELL)
    after = datetime.now(timezone.utc)
    assert before <= trade.timestamp <= after
    assert trade.aggressor_side is OrderSide.SELL


def test_levels_do_not_share_order_lists():
    first = OrderBookLevel(price=100.0)
    second = OrderBookLevel(price=101.0)
    first.orders.append(Order(id=1, symbol="X", side=OrderSide.BUY,
                              type=OrderType.LIMIT, quantity=1.0, price=100.0))
    assert second.orders == []
    assert first.total_quantity == 0.0


def test_empty_best_bid_offer():
    bbo = BestBidOffer()
    assert (bbo.best_bid, bbo.best_offer,
            bbo.best_bid_quantity, bbo.best_offer_quantity) == (None, None, None, None)


def test_best_bid_offer_is_immutable():
    bbo = BestBidOffer(best_bid=100.0)
    with pytest.raises(FrozenInstanceError):
        bbo.best_bid = 101.0
    assert bbo.best_bid == 100.0