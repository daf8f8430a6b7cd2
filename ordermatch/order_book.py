"""A price-time priority limit order book for a single symbol."""

from __future__ import annotations

import dataclasses
import threading
from itertools import islice
from typing import Callable, Dict, List, Optional, Tuple

from sortedcontainers import SortedDict

from .order_types import (
    BestBidOffer,
    Order,
    OrderBookLevel,
    OrderId,
    OrderSide,
    OrderType,
    Price,
    Quantity,
    Trade,
)

TradeCallback = Callable[[Trade], None]
BBOUpdateCallback = Callable[[str, BestBidOffer], None]


def _descending(price: Price) -> Price:
    return -price


class OrderBook:
    """Matches incoming orders against resting ones and keeps the rest.

    Bids are kept best (highest) first, asks best (lowest) first. Within a
    price level orders fill in arrival order.
    """

    def __init__(
        self,
        symbol: str,
        trade_callback: Optional[TradeCallback] = None,
        bbo_callback: Optional[BBOUpdateCallback] = None,
    ) -> None:
        self.symbol = symbol
        self.trade_callback = trade_callback
        self.bbo_callback = bbo_callback
        self._bids: SortedDict = SortedDict(_descending)
        self._asks: SortedDict = SortedDict()
        self._lookup: Dict[OrderId, Tuple[Price, OrderSide]] = {}
        self._lock = threading.RLock()

    # ---- order management -------------------------------------------------

    def add_order(self, order: Order) -> bool:
        """Match the order, then rest any limit remainder.

        Returns False only for a limit order without a price. The caller's
        order object is left untouched.
        """
        with self._lock:
            if order.type is OrderType.LIMIT and order.price is None:
                return False
            order = dataclasses.replace(order)
            self._match(order)
            if order.quantity > 0 and order.type is OrderType.LIMIT:
                self._add_to_book(order)
            return True

    def cancel_order(self, order_id: OrderId) -> bool:
        """Remove a resting order; False if it is not in the book."""
        with self._lock:
            if order_id not in self._lookup:
                return False
            self._remove_from_book(order_id)
            return True

    def modify_order(self, order_id: OrderId, new_quantity: Quantity) -> bool:
        """Set a resting order's quantity, keeping its queue position."""
        with self._lock:
            location = self._lookup.get(order_id)
            if location is None:
                return False
            price, side = location
            level = self._side(side).get(price)
            if level is None:
                return False
            resting = next((o for o in level.orders if o.id == order_id), None)
            if resting is None:
                return False
            level.total_quantity -= resting.quantity
            resting.quantity = new_quantity
            level.total_quantity += new_quantity
            self._update_bbo()
            return True

    # ---- market data ------------------------------------------------------

    def bbo(self) -> BestBidOffer:
        """Best bid and best offer with the total quantity at each."""
        with self._lock:
            best_bid = best_bid_qty = best_offer = best_offer_qty = None
            if self._bids:
                best_bid, level = self._bids.peekitem(0)
                best_bid_qty = level.total_quantity
            if self._asks:
                best_offer, level = self._asks.peekitem(0)
                best_offer_qty = level.total_quantity
            return BestBidOffer(
                best_bid=best_bid,
                best_offer=best_offer,
                best_bid_quantity=best_bid_qty,
                best_offer_quantity=best_offer_qty,
            )

    def depth(self, levels: int) -> List[Tuple[Price, Quantity]]:
        """Up to `levels` bid levels, best first, followed by up to `levels` ask levels."""
        with self._lock:
            return [
                (price, level.total_quantity)
                for book in (self._bids, self._asks)
                for price, level in islice(book.items(), levels)
            ]

    # ---- internals --------------------------------------------------------

    def _side(self, side: OrderSide) -> SortedDict:
        return self._bids if side is OrderSide.BUY else self._asks

    def _match(self, order: Order) -> None:
        if order.quantity <= 0:
            return

        if order.side is OrderSide.BUY:
            opposite = self._asks
            limit = order.price if order.price is not None else float("inf")

            def crosses(price: Price) -> bool:
                return price <= limit

        else:
            opposite = self._bids
            limit = order.price if order.price is not None else 0.0

            def crosses(price: Price) -> bool:
                return price >= limit

        while order.quantity > 0 and opposite:
            price, level = opposite.peekitem(0)
            if not crosses(price):
                break

            kept: List[Order] = []
            for maker in level.orders:
                if order.quantity <= 0:
                    kept.append(maker)
                    continue
                quantity = min(order.quantity, maker.quantity)
                self._notify_trade(
                    Trade(
                        maker_order_id=maker.id,
                        taker_order_id=order.id,
                        symbol=self.symbol,
                        price=price,
                        quantity=quantity,
                        aggressor_side=order.side,
                    )
                )
                order.quantity -= quantity
                maker.quantity -= quantity
                level.total_quantity -= quantity
                if maker.quantity == 0:
                    self._lookup.pop(maker.id, None)
                else:
                    kept.append(maker)
            level.orders = kept

            if not level.orders:
                del opposite[price]
            elif order.quantity > 0:
                break

        self._update_bbo()

    def _add_to_book(self, order: Order) -> None:
        book = self._side(order.side)
        price = order.price
        level = book.get(price)
        if level is None:
            level = OrderBookLevel(price=price)
            book[price] = level
        level.orders.append(order)
        level.total_quantity += order.quantity
        self._lookup[order.id] = (price, order.side)
        self._update_bbo()

    def _remove_from_book(self, order_id: OrderId) -> None:
        price, side = self._lookup[order_id]
        book = self._side(side)
        level = book.get(price)
        if level is not None:
            for position, resting in enumerate(level.orders):
                if resting.id == order_id:
                    level.total_quantity -= resting.quantity
                    del level.orders[position]
                    if not level.orders:
                        del book[price]
                    break
        del self._lookup[order_id]
        self._update_bbo()

    def _notify_trade(self, trade: Trade) -> None:
        if self.trade_callback is not None:
            self.trade_callback(trade)

    def _update_bbo(self) -> None:
        if self.bbo_callback is not None:
            self.bbo_callback(self.symbol, self.bbo())