"""In-memory book of open orders, grouped by trading pair."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from .orders import CreateOrder, pair_id

ALL_PAIRS = "*"

_log = logging.getLogger(__name__)


@dataclass
class Order:
    """An open order as seen by the book."""

    id: bytes
    owner: bytes
    in_tick: int
    out_tick: int
    remaining: int

    @property
    def rate(self) -> float:
        return self.in_tick / self.out_tick


class OrderBook:
    """Tracks open orders per pair and lists them best rate first."""

    def __init__(
        self, tracked_pairs: Iterable[str] = (), logger: logging.Logger | None = None
    ) -> None:
        self._log = logger or _log
        pairs = list(tracked_pairs)
        self._orders: dict[str, dict[bytes, tuple[int, Order]]] = {}
        self._order_to_pair: dict[bytes, str] = {}
        self._seq = itertools.count()
        self._lock = threading.Lock()
        self.track_all = pairs == [ALL_PAIRS]
        if self.track_all:
            self._log.info("tracking all order books")
        else:
            for pair in pairs:
                self._orders[pair] = {}
                self._log.info("tracking order book %s", pair)

    def add(self, tx_id: bytes, actor: bytes, action: CreateOrder) -> None:
        pair = pair_id(action.in_asset, action.out_asset)
        order = Order(
            bytes(tx_id), bytes(actor), action.in_tick, action.out_tick, action.supply
        )
        with self._lock:
            book = self._orders.get(pair)
            if book is None:
                if not self.track_all:
                    return
                self._log.info("tracking order book %s", pair)
                book = self._orders[pair] = {}
            book[order.id] = (next(self._seq), order)
            self._order_to_pair[order.id] = pair

    def remove(self, order_id: bytes) -> None:
        with self._lock:
            pair = self._order_to_pair.pop(order_id, None)
            if pair is None:
                return
            self._orders.get(pair, {}).pop(order_id, None)

    def update_remaining(self, order_id: bytes, remaining: int) -> None:
        with self._lock:
            pair = self._order_to_pair.get(order_id)
            if pair is None:
                return
            entry = self._orders.get(pair, {}).get(order_id)
            if entry is not None:
                entry[1].remaining = remaining

    def orders(self, pair: str, limit: int) -> list[Order]:
        """Up to ``limit`` orders of ``pair``, highest in/out rate first."""
        with self._lock:
            book = self._orders.get(pair)
            if book is None:
                return []
            ranked = sorted(book.values(), key=lambda e: (-e[1].rate, e[0]))
            return [order for _, order in ranked[: max(limit, 0)]]