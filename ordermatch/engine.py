"""A multi-symbol matching engine that applies order events on a worker thread."""

from __future__ import annotations

import dataclasses
import enum
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .order_book import BBOUpdateCallback, OrderBook, TradeCallback
from .order_types import BestBidOffer, Order, OrderId, Price, Quantity

logger = logging.getLogger(__name__)


class _EventType(enum.Enum):
    SUBMIT = enum.auto()
    CANCEL = enum.auto()
    MODIFY = enum.auto()


@dataclass(frozen=True)
class _OrderEvent:
    type: _EventType
    symbol: str
    order: Optional[Order] = None
    order_id: OrderId = 0
    new_quantity: Quantity = 0.0


_STOP = object()


class MatchingEngine:
    """Routes orders to one order book per symbol.

    Submissions, cancellations and modifications are queued and applied in
    arrival order by a background thread; market data reads are immediate.
    """

    def __init__(
        self,
        trade_callback: Optional[TradeCallback] = None,
        bbo_callback: Optional[BBOUpdateCallback] = None,
    ) -> None:
        self._trade_callback = trade_callback
        self._bbo_callback = bbo_callback
        self._books: Dict[str, OrderBook] = {}
        self._books_lock = threading.RLock()
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._state_lock = threading.Lock()
        self._closed = False
        self._worker = threading.Thread(
            target=self._process, name="matching-engine", daemon=True
        )
        self._worker.start()

    # ---- order management -------------------------------------------------

    def submit_order(self, symbol: str, order: Order) -> bool:
        """Queue a new order for `symbol`."""
        self._enqueue(
            _OrderEvent(_EventType.SUBMIT, symbol, order=dataclasses.replace(order))
        )
        return True

    def cancel_order(self, symbol: str, order_id: OrderId) -> bool:
        """Queue the cancellation of a resting order."""
        self._enqueue(_OrderEvent(_EventType.CANCEL, symbol, order_id=order_id))
        return True

    def modify_order(
        self, symbol: str, order_id: OrderId, new_quantity: Quantity
    ) -> bool:
        """Queue a quantity change for a resting order."""
        self._enqueue(
            _OrderEvent(
                _EventType.MODIFY, symbol, order_id=order_id, new_quantity=new_quantity
            )
        )
        return True

    # ---- market data ------------------------------------------------------

    def bbo(self, symbol: str) -> BestBidOffer:
        """Top of book for `symbol`; empty if the symbol has no book yet."""
        with self._books_lock:
            book = self._books.get(symbol)
            return book.bbo() if book is not None else BestBidOffer()

    def depth(self, symbol: str, levels: int) -> List[Tuple[Price, Quantity]]:
        """Aggregated book depth for `symbol`; empty if it has no book yet."""
        with self._books_lock:
            book = self._books.get(symbol)
            return book.depth(levels) if book is not None else []

    # ---- lifecycle --------------------------------------------------------

    def drain(self) -> None:
        """Block until every queued event has been applied."""
        self._queue.join()

    def close(self) -> None:
        """Apply the events still queued, then stop the worker thread."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        self._worker.join()

    def __enter__(self) -> "MatchingEngine":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ---- internals --------------------------------------------------------

    def _enqueue(self, event: _OrderEvent) -> None:
        with self._state_lock:
            if self._closed:
                raise RuntimeError("matching engine is closed")
            self._queue.put(event)

    def _process(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                self._handle(event)  # type: ignore[arg-type]
            except Exception:
                logger.exception("matching engine processing error")
            finally:
                self._queue.task_done()

    def _handle(self, event: _OrderEvent) -> None:
        if event.type is _EventType.SUBMIT:
            assert event.order is not None
            self._book_for(event.symbol).add_order(event.order)
            return
        with self._books_lock:
            book = self._books.get(event.symbol)
            if book is None:
                return
            if event.type is _EventType.CANCEL:
                book.cancel_order(event.order_id)
            else:
                book.modify_order(event.order_id, event.new_quantity)

    def _book_for(self, symbol: str) -> OrderBook:
        with self._books_lock:
            book = self._books.get(symbol)
            if book is None:
                book = OrderBook(
                    symbol,
                    trade_callback=self._trade_callback,
                    bbo_callback=self._bbo_callback,
                )
                self._books[symbol] = book
            return book