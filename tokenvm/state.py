"""In-memory chain state: assets, balances, orders and loans."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .codec import MAX_UINT64

_BALANCE_PREFIX = b"\x00"
_ASSET_PREFIX = b"\x01"
_ORDER_PREFIX = b"\x02"
_LOAN_PREFIX = b"\x03"


class InvalidBalanceError(Exception):
    """Raised when a balance or loan would go below zero."""


@dataclass
class Result:
    """Outcome of executing an action."""

    success: bool
    units: int
    output: bytes = b""
    warp_message: Any = None


@dataclass(frozen=True)
class AssetInfo:
    metadata: bytes
    supply: int
    owner: bytes
    is_warp: bool


@dataclass(frozen=True)
class StoredOrder:
    in_asset: bytes
    in_tick: int
    out_asset: bytes
    out_tick: int
    remaining: int
    owner: bytes


def balance_key(public_key: bytes, asset: bytes) -> bytes:
    return _BALANCE_PREFIX + bytes(public_key) + bytes(asset)


def asset_key(asset: bytes) -> bytes:
    return _ASSET_PREFIX + bytes(asset)


def order_key(order_id: bytes) -> bytes:
    return _ORDER_PREFIX + bytes(order_id)


def loan_key(asset: bytes, destination: bytes) -> bytes:
    return _LOAN_PREFIX + bytes(asset) + bytes(destination)


def _add64(a: int, b: int) -> int:
    total = a + b
    if total > MAX_UINT64:
        raise OverflowError("overflow")
    return total


class MemoryState:
    """A dictionary-backed state database."""

    def __init__(self) -> None:
        self._data: dict[bytes, Any] = {}

    def keys(self) -> set[bytes]:
        return set(self._data)

    def get_asset(self, asset: bytes) -> AssetInfo | None:
        return self._data.get(asset_key(asset))

    def set_asset(self, asset, metadata, supply, owner, is_warp) -> None:
        self._data[asset_key(asset)] = AssetInfo(
            bytes(metadata), supply, bytes(owner), bool(is_warp)
        )

    def delete_asset(self, asset: bytes) -> None:
        self._data.pop(asset_key(asset), None)

    def get_balance(self, public_key: bytes, asset: bytes) -> int:
        return self._data.get(balance_key(public_key, asset), 0)

    def set_balance(self, public_key: bytes, asset: bytes, amount: int) -> None:
        key = balance_key(public_key, asset)
        if amount:
            self._data[key] = amount
        else:
            self._data.pop(key, None)

    def add_balance(self, public_key: bytes, asset: bytes, amount: int) -> None:
        current = self.get_balance(public_key, asset)
        self.set_balance(public_key, asset, _add64(current, amount))

    def sub_balance(self, public_key: bytes, asset: bytes, amount: int) -> None:
        current = self.get_balance(public_key, asset)
        if current < amount:
            raise InvalidBalanceError(f"invalid balance: bal={current}, sub={amount}")
        self.set_balance(public_key, asset, current - amount)

    def get_order(self, order_id: bytes) -> StoredOrder | None:
        return self._data.get(order_key(order_id))

    def set_order(
        self, order_id, in_asset, in_tick, out_asset, out_tick, remaining, owner
    ) -> None:
        self._data[order_key(order_id)] = StoredOrder(
            bytes(in_asset), in_tick, bytes(out_asset), out_tick, remaining, bytes(owner)
        )

    def delete_order(self, order_id: bytes) -> None:
        self._data.pop(order_key(order_id), None)

    def get_loan(self, asset: bytes, destination: bytes) -> int:
        return self._data.get(loan_key(asset, destination), 0)

    def _set_loan(self, asset: bytes, destination: bytes, amount: int) -> None:
        key = loan_key(asset, destination)
        if amount:
            self._data[key] = amount
        else:
            self._data.pop(key, None)

    def add_loan(self, asset: bytes, destination: bytes, amount: int) -> None:
        current = self.get_loan(asset, destination)
        self._set_loan(asset, destination, _add64(current, amount))

    def sub_loan(self, asset: bytes, destination: bytes, amount: int) -> None:
        current = self.get_loan(asset, destination)
        if current < amount:
            raise InvalidBalanceError(f"invalid loan: loan={current}, sub={amount}")
        self._set_loan(asset, destination, current - amount)