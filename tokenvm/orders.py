"""Actions that create, fill and close trade orders."""

from __future__ import annotations

from dataclasses import dataclass

from .assets import (
    OUTPUT_IN_TICK_ZERO,
    OUTPUT_INSUFFICIENT_INPUT,
    OUTPUT_INSUFFICIENT_OUTPUT,
    OUTPUT_ORDER_MISSING,
    OUTPUT_OUT_TICK_ZERO,
    OUTPUT_SAME_IN_OUT,
    OUTPUT_SUPPLY_MISALIGNED,
    OUTPUT_SUPPLY_ZERO,
    OUTPUT_UNAUTHORIZED,
    OUTPUT_VALUE_MISALIGNED,
    OUTPUT_VALUE_ZERO,
    OUTPUT_WRONG_IN,
    OUTPUT_WRONG_OUT,
    OUTPUT_WRONG_OWNER,
    STATE_ERRORS,
    fail,
    fail_with,
)
from .codec import (
    EMPTY_ID,
    EMPTY_PUBLIC_KEY,
    ID_LEN,
    MAX_UINT64,
    PUBLIC_KEY_LEN,
    UINT64_LEN,
    CodecError,
    Packer,
    id_to_string,
)
from .state import MemoryState, Result, balance_key, order_key

BASE_PRICE = 3 * ID_LEN + UINT64_LEN + PUBLIC_KEY_LEN
TRADE_SUCCEEDED_PRICE = 1_000
ORDER_RESULT_SIZE = UINT64_LEN * 3


def pair_id(in_asset: bytes, out_asset: bytes) -> str:
    """Name of the order book trading ``in_asset`` for ``out_asset``."""
    return f"{id_to_string(in_asset)}-{id_to_string(out_asset)}"


@dataclass
class CreateOrder:
    """Lock ``supply`` of ``out_asset`` to be sold for ``in_asset``.

    ``in_tick`` of ``in_asset`` buys ``out_tick`` of ``out_asset``; fills
    must be whole multiples of ``in_tick``.
    """

    in_asset: bytes = EMPTY_ID
    in_tick: int = 0
    out_asset: bytes = EMPTY_ID
    out_tick: int = 0
    supply: int = 0

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        return [balance_key(actor, self.out_asset), order_key(tx_id)]

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        units = self.max_units()
        if self.in_asset == self.out_asset:
            return fail(units, OUTPUT_SAME_IN_OUT)
        if self.in_tick == 0:
            return fail(units, OUTPUT_IN_TICK_ZERO)
        if self.out_tick == 0:
            return fail(units, OUTPUT_OUT_TICK_ZERO)
        if self.supply == 0:
            return fail(units, OUTPUT_SUPPLY_ZERO)
        if self.supply % self.out_tick:
            return fail(units, OUTPUT_SUPPLY_MISALIGNED)
        try:
            state.sub_balance(actor, self.out_asset, self.supply)
        except STATE_ERRORS as exc:
            return fail_with(units, exc)
        state.set_order(
            tx_id,
            self.in_asset,
            self.in_tick,
            self.out_asset,
            self.out_tick,
            self.supply,
            actor,
        )
        return Result(success=True, units=units)

    def max_units(self) -> int:
        return ID_LEN * 2 + UINT64_LEN * 3

    def marshal(self, packer: Packer) -> None:
        packer.pack_id(self.in_asset)
        packer.pack_uint64(self.in_tick)
        packer.pack_id(self.out_asset)
        packer.pack_uint64(self.out_tick)
        packer.pack_uint64(self.supply)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_create_order(packer: Packer) -> CreateOrder:
    in_asset = packer.unpack_id(False)  # empty id is the native asset
    in_tick = packer.unpack_uint64(True)
    out_asset = packer.unpack_id(False)  # empty id is the native asset
    out_tick = packer.unpack_uint64(True)
    supply = packer.unpack_uint64(True)
    return CreateOrder(in_asset, in_tick, out_asset, out_tick, supply)


@dataclass
class OrderResult:
    """Amounts exchanged by a successful fill."""

    in_amount: int
    out_amount: int
    remaining: int

    def marshal(self) -> bytes:
        p = Packer(limit=ORDER_RESULT_SIZE)
        p.pack_uint64(self.in_amount)
        p.pack_uint64(self.out_amount)
        p.pack_uint64(self.remaining)
        return p.to_bytes()


def unmarshal_order_result(data: bytes) -> OrderResult:
    if len(data) > ORDER_RESULT_SIZE:
        raise CodecError("order result too large")
    p = Packer(data)
    in_amount = p.unpack_uint64(True)
    out_amount = p.unpack_uint64(True)
    remaining = p.unpack_uint64(False)  # zero means the order was deleted
    return OrderResult(in_amount, out_amount, remaining)


@dataclass
class FillOrder:
    """Trade up to ``value`` of ``in_asset`` against an open order."""

    order: bytes = EMPTY_ID
    owner: bytes = EMPTY_PUBLIC_KEY
    in_asset: bytes = EMPTY_ID
    out_asset: bytes = EMPTY_ID
    value: int = 0

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        return [
            order_key(self.order),
            balance_key(self.owner, self.in_asset),
            balance_key(actor, self.in_asset),
            balance_key(actor, self.out_asset),
        ]

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        stored = state.get_order(self.order)
        if stored is None:
            return fail(BASE_PRICE, OUTPUT_ORDER_MISSING)
        if stored.owner != self.owner:
            return fail(BASE_PRICE, OUTPUT_WRONG_OWNER)
        if stored.in_asset != self.in_asset:
            return fail(BASE_PRICE, OUTPUT_WRONG_IN)
        if stored.out_asset != self.out_asset:
            return fail(BASE_PRICE, OUTPUT_WRONG_OUT)
        if self.value == 0:
            return fail(BASE_PRICE, OUTPUT_VALUE_ZERO)
        if self.value % stored.in_tick:
            return fail(BASE_PRICE, OUTPUT_VALUE_MISALIGNED)
        output_amount = stored.out_tick * (self.value // stored.in_tick)
        if output_amount > MAX_UINT64:
            return fail_with(BASE_PRICE, OverflowError("overflow"))
        if output_amount == 0:
            return fail(BASE_PRICE, OUTPUT_INSUFFICIENT_OUTPUT)

        input_amount = self.value
        should_delete = False
        order_remaining = 0
        if output_amount > stored.remaining:
            # Take only what is left and refund the excess input.
            blocks_over = (output_amount - stored.remaining) // stored.out_tick
            input_amount -= blocks_over * stored.in_tick
            output_amount = stored.remaining
            should_delete = True
        elif output_amount == stored.remaining:
            should_delete = True
        else:
            order_remaining = stored.remaining - output_amount
        if input_amount == 0:
            return fail(BASE_PRICE, OUTPUT_INSUFFICIENT_INPUT)

        try:
            state.sub_balance(actor, self.in_asset, input_amount)
            state.add_balance(self.owner, self.in_asset, input_amount)
            state.add_balance(actor, self.out_asset, output_amount)
        except STATE_ERRORS as exc:
            return fail_with(BASE_PRICE, exc)
        if should_delete:
            state.delete_order(self.order)
        else:
            state.set_order(
                self.order,
                stored.in_asset,
                stored.in_tick,
                stored.out_asset,
                stored.out_tick,
                order_remaining,
                stored.owner,
            )
        output = OrderResult(input_amount, output_amount, order_remaining).marshal()
        return Result(
            success=True, units=BASE_PRICE + TRADE_SUCCEEDED_PRICE, output=output
        )

    def max_units(self) -> int:
        return BASE_PRICE + TRADE_SUCCEEDED_PRICE

    def marshal(self, packer: Packer) -> None:
        packer.pack_id(self.order)
        packer.pack_public_key(self.owner)
        packer.pack_id(self.in_asset)
        packer.pack_id(self.out_asset)
        packer.pack_uint64(self.value)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_fill_order(packer: Packer) -> FillOrder:
    order = packer.unpack_id(True)
    owner = packer.unpack_public_key(True)
    in_asset = packer.unpack_id(False)  # empty id is the native asset
    out_asset = packer.unpack_id(False)  # empty id is the native asset
    value = packer.unpack_uint64(True)
    return FillOrder(order, owner, in_asset, out_asset, value)


@dataclass
class CloseOrder:
    """Cancel an owned order and return its remaining supply."""

    order: bytes = EMPTY_ID
    out_asset: bytes = EMPTY_ID

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        return [order_key(self.order), balance_key(actor, self.out_asset)]

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        units = self.max_units()
        stored = state.get_order(self.order)
        if stored is None:
            return fail(units, OUTPUT_ORDER_MISSING)
        if stored.owner != actor:
            return fail(units, OUTPUT_UNAUTHORIZED)
        if stored.out_asset != self.out_asset:
            return fail(units, OUTPUT_WRONG_OUT)
        state.delete_order(self.order)
        try:
            state.add_balance(actor, self.out_asset, stored.remaining)
        except STATE_ERRORS as exc:
            return fail_with(units, exc)
        return Result(success=True, units=units)

    def max_units(self) -> int:
        return ID_LEN * 2

    def marshal(self, packer: Packer) -> None:
        packer.pack_id(self.order)
        packer.pack_id(self.out_asset)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_close_order(packer: Packer) -> CloseOrder:
    order = packer.unpack_id(True)
    out_asset = packer.unpack_id(False)  # empty id is the native asset
    return CloseOrder(order, out_asset)