"""Actions that move assets between chains via warp messages."""

from __future__ import annotations

from dataclasses import dataclass

from .assets import (
    OUTPUT_ANYCAST,
    OUTPUT_ASSET_MISSING,
    OUTPUT_CONFLICTING_ASSET,
    OUTPUT_MUST_FILL,
    OUTPUT_NOT_WARP_ASSET,
    OUTPUT_VALUE_ZERO,
    OUTPUT_WARP_ASSET,
    OUTPUT_WARP_VERIFICATION_FAILED,
    OUTPUT_WRONG_DESTINATION,
    STATE_ERRORS,
    checked_add,
    checked_sub,
    fail,
    fail_with,
)
from .codec import (
    EMPTY_ID,
    EMPTY_PUBLIC_KEY,
    ID_LEN,
    PUBLIC_KEY_LEN,
    UINT64_LEN,
    CodecError,
    OptionalWriter,
    Packer,
)
from .state import MemoryState, Result, asset_key, balance_key, loan_key
from .warp import (
    WarpMessage,
    WarpTransfer,
    imported_asset_id,
    imported_asset_metadata,
    unmarshal_warp_transfer,
    valid_swap_params,
)

_ERRORS = STATE_ERRORS + (CodecError,)


class NoSwapToFillError(ValueError):
    """Raised when an import asks to fill a swap the transfer does not request."""

    def __init__(self, message: str = "no swap to fill") -> None:
        super().__init__(message)


class _Rejected(Exception):
    """Carries a fixed failure output out of a helper."""

    def __init__(self, output: bytes) -> None:
        super().__init__(output.decode())
        self.output = output


def _to_id(data: bytes) -> bytes:
    if len(data) != ID_LEN:
        raise CodecError(f"expected {ID_LEN} bytes but got {len(data)}")
    return bytes(data)


@dataclass
class ExportAsset:
    """Send assets to another chain, either as a loan or returning them home."""

    to: bytes = EMPTY_PUBLIC_KEY
    asset: bytes = EMPTY_ID
    value: int = 0
    is_return: bool = False
    reward: int = 0
    swap_in: int = 0
    asset_out: bytes = EMPTY_ID
    swap_out: int = 0
    swap_expiry: int = 0
    destination: bytes = EMPTY_ID

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        if self.is_return:
            return [asset_key(self.asset), balance_key(actor, self.asset)]
        return [
            asset_key(self.asset),
            loan_key(self.asset, self.destination),
            balance_key(actor, self.asset),
        ]

    def _transfer(self, asset: bytes, tx_id: bytes) -> WarpTransfer:
        return WarpTransfer(
            to=self.to,
            asset=asset,
            value=self.value,
            is_return=self.is_return,
            reward=self.reward,
            swap_in=self.swap_in,
            asset_out=self.asset_out,
            swap_out=self.swap_out,
            swap_expiry=self.swap_expiry,
            tx_id=tx_id,
        )

    def _message(self, transfer: WarpTransfer) -> WarpMessage:
        # The source chain id is filled in by the chain that emits the message.
        return WarpMessage(
            source_chain_id=EMPTY_ID,
            destination_chain_id=self.destination,
            payload=transfer.marshal(),
        )

    def _execute_return(self, state: MemoryState, actor: bytes, tx_id: bytes) -> Result:
        units = self.max_units()
        info = state.get_asset(self.asset)
        if info is None:
            return fail(units, OUTPUT_ASSET_MISSING)
        if not info.is_warp:
            return fail(units, OUTPUT_NOT_WARP_ASSET)
        try:
            allowed_destination = _to_id(info.metadata[ID_LEN:])
        except CodecError as exc:
            return fail_with(units, exc)
        if allowed_destination != self.destination:
            return fail(units, OUTPUT_WRONG_DESTINATION)
        try:
            new_supply = checked_sub(info.supply, self.value)
            new_supply = checked_sub(new_supply, self.reward)
            if new_supply > 0:
                state.set_asset(
                    self.asset, info.metadata, new_supply, EMPTY_PUBLIC_KEY, True
                )
            else:
                state.delete_asset(self.asset)
            state.sub_balance(actor, self.asset, self.value)
            if self.reward > 0:
                state.sub_balance(actor, self.asset, self.reward)
            original_asset = _to_id(info.metadata[:ID_LEN])
            message = self._message(self._transfer(original_asset, tx_id))
        except _ERRORS as exc:
            return fail_with(units, exc)
        return Result(success=True, units=units, warp_message=message)

    def _execute_loan(self, state: MemoryState, actor: bytes, tx_id: bytes) -> Result:
        units = self.max_units()
        info = state.get_asset(self.asset)
        if info is None:
            return fail(units, OUTPUT_ASSET_MISSING)
        if info.is_warp:
            # Assets warped in can only leave by returning home.
            return fail(units, OUTPUT_WARP_ASSET)
        try:
            state.add_loan(self.asset, self.destination, self.value)
            state.sub_balance(actor, self.asset, self.value)
            if self.reward > 0:
                state.add_loan(self.asset, self.destination, self.reward)
                state.sub_balance(actor, self.asset, self.reward)
            message = self._message(self._transfer(self.asset, tx_id))
        except _ERRORS as exc:
            return fail_with(units, exc)
        return Result(success=True, units=units, warp_message=message)

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        units = self.max_units()
        if self.value == 0:
            return fail(units, OUTPUT_VALUE_ZERO)
        if self.destination == EMPTY_ID:
            # Every importer would otherwise multiply the exported balance.
            return fail(units, OUTPUT_ANYCAST)
        if self.is_return:
            return self._execute_return(state, actor, tx_id)
        return self._execute_loan(state, actor, tx_id)

    def max_units(self) -> int:
        return (
            PUBLIC_KEY_LEN + ID_LEN + UINT64_LEN + 1 + UINT64_LEN
            + UINT64_LEN + ID_LEN + UINT64_LEN + UINT64_LEN + ID_LEN
        )

    def marshal(self, packer: Packer) -> None:
        packer.pack_public_key(self.to)
        packer.pack_id(self.asset)
        packer.pack_uint64(self.value)
        packer.pack_bool(self.is_return)
        op = OptionalWriter()
        op.pack_uint64(self.reward)
        op.pack_uint64(self.swap_in)
        op.pack_id(self.asset_out)
        op.pack_uint64(self.swap_out)
        op.pack_int64(self.swap_expiry)
        packer.pack_optional(op)
        packer.pack_id(self.destination)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_export_asset(packer: Packer) -> ExportAsset:
    export = ExportAsset()
    export.to = packer.unpack_public_key(False)  # may send to the blackhole
    export.asset = packer.unpack_id(False)  # the native asset may be exported
    export.value = packer.unpack_uint64(True)
    export.is_return = packer.unpack_bool()
    op = packer.new_optional_reader()
    export.reward = op.unpack_uint64()
    export.swap_in = op.unpack_uint64()
    export.asset_out = op.unpack_id()
    export.swap_out = op.unpack_uint64()
    export.swap_expiry = op.unpack_int64()
    op.done()
    export.destination = packer.unpack_id(True)
    if not valid_swap_params(
        export.value, export.swap_in, export.asset_out, export.swap_out, export.swap_expiry
    ):
        raise CodecError("invalid object")
    return export


@dataclass
class ImportAsset:
    """Receive assets sent from another chain, optionally filling a swap."""

    fill: bool = False
    warp_transfer: WarpTransfer | None = None
    warp_message: WarpMessage | None = None

    def _local_asset(self) -> bytes:
        wt = self.warp_transfer
        if wt.is_return:
            return wt.asset
        return imported_asset_id(wt.asset, self.warp_message.source_chain_id)

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        wt = self.warp_transfer
        source = self.warp_message.source_chain_id
        asset = self._local_asset()
        if wt.is_return:
            keys = [loan_key(wt.asset, source), balance_key(wt.to, wt.asset)]
        else:
            keys = [asset_key(asset), balance_key(wt.to, asset)]
        if wt.reward > 0:
            keys.append(balance_key(actor, asset))
        if self.fill and wt.swap_in > 0:
            keys.append(balance_key(actor, wt.asset_out))
            keys.append(balance_key(actor, asset))
            keys.append(balance_key(wt.to, wt.asset_out))
        return keys

    def _mint(self, state: MemoryState, actor: bytes) -> None:
        wt = self.warp_transfer
        source = self.warp_message.source_chain_id
        asset = imported_asset_id(wt.asset, source)
        info = state.get_asset(asset)
        if info is not None and not info.is_warp:
            raise _Rejected(OUTPUT_CONFLICTING_ASSET)
        if info is None:
            metadata, supply = imported_asset_metadata(wt.asset, source), 0
        else:
            metadata, supply = info.metadata, info.supply
        new_supply = checked_add(checked_add(supply, wt.value), wt.reward)
        state.set_asset(asset, metadata, new_supply, EMPTY_PUBLIC_KEY, True)
        state.add_balance(wt.to, asset, wt.value)
        if wt.reward > 0:
            state.add_balance(actor, asset, wt.reward)

    def _return(self, state: MemoryState, actor: bytes) -> None:
        wt = self.warp_transfer
        source = self.warp_message.source_chain_id
        state.sub_loan(wt.asset, source, wt.value)
        state.add_balance(wt.to, wt.asset, wt.value)
        if wt.reward > 0:
            state.sub_loan(wt.asset, source, wt.reward)
            state.add_balance(actor, wt.asset, wt.reward)

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        units = self.max_units()
        wt = self.warp_transfer
        if not warp_verified:
            return fail(units, OUTPUT_WARP_VERIFICATION_FAILED)
        if wt.value == 0:
            return fail(units, OUTPUT_VALUE_ZERO)
        try:
            if wt.is_return:
                self._return(state, actor)
            else:
                self._mint(state, actor)
        except _Rejected as exc:
            return fail(units, exc.output)
        except STATE_ERRORS as exc:
            return fail_with(units, exc)
        if wt.swap_in == 0:
            return Result(success=True, units=units)
        if not self.fill:
            if wt.swap_expiry > timestamp:
                return fail(units, OUTPUT_MUST_FILL)
            return Result(success=True, units=units)
        asset_in = self._local_asset()
        try:
            state.sub_balance(wt.to, asset_in, wt.swap_in)
            state.add_balance(actor, asset_in, wt.swap_in)
            state.sub_balance(actor, wt.asset_out, wt.swap_out)
            state.add_balance(wt.to, wt.asset_out, wt.swap_out)
        except STATE_ERRORS as exc:
            return fail_with(units, exc)
        return Result(success=True, units=units)

    def max_units(self) -> int:
        return len(self.warp_message.payload) + 1

    def marshal(self, packer: Packer) -> None:
        packer.pack_bool(self.fill)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_import_asset(packer: Packer, message: WarpMessage) -> ImportAsset:
    fill = packer.unpack_bool()
    transfer = unmarshal_warp_transfer(message.payload)
    if fill and transfer.swap_in == 0:
        raise NoSwapToFillError()
    return ImportAsset(fill=fill, warp_transfer=transfer, warp_message=message)