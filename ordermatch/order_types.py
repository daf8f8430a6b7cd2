"""Core value types shared by the order book and the matching engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

OrderId = int
Price = float
Quantity = float


def _now() -> datetime:
    return datetime.now(timezone.utc)


class OrderSide(enum.Enum):
    """Which side of the book an order sits on."""

    BUY = "buy"
    SELL = "sell"


class OrderType(enum.Enum):
    """How an order is executed."""

    MARKET = "market"
    LIMIT = "limit"
    IOC = "ioc"  # immediate-or-cancel
    FOK = "fok"  # fill-or-kill


@dataclass
class Order:
    """An order to buy or sell a quantity of a symbol."""

    id: OrderId
    symbol: str
    side: OrderSide
    type: OrderType
    quantity: Quantity
    price: Optional[Price] = None  # required for LIMIT orders
    timestamp: datetime = field(default_factory=_now)
    is_active: bool = True


@dataclass
class Trade:
    """A fill between a resting (maker) order and an incoming (taker) order."""

    maker_order_id: OrderId
    taker_order_id: OrderId
    symbol: str
    price: Price
    quantity: Quantity
    aggressor_side: OrderSide
    timestamp: datetime = field(default_factory=_now)


@dataclass
class OrderBookLevel:
    """All resting orders at one price, oldest first."""

    price: Price
    total_quantity: Quantity = 0.0
    orders: List[Order] = field(default_factory=list)


@dataclass(frozen=True)
class BestBidOffer:
    """Top of book on both sides; fields are None when a side is empty."""

    best_bid: Optional[Price] = None
    best_offer: Optional[Price] = None
    best_bid_quantity: Optional[Quantity] = None
    best_offer_quantity: Optional[Quantity] = None