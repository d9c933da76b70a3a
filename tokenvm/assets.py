"""Actions that create, move, mint, burn and modify assets."""

from __future__ import annotations

from dataclasses import dataclass, field

from .codec import (
    EMPTY_ID,
    EMPTY_PUBLIC_KEY,
    ID_LEN,
    MAX_UINT64,
    PUBLIC_KEY_LEN,
    UINT64_LEN,
    Packer,
)
from .state import (
    InvalidBalanceError,
    MemoryState,
    Result,
    asset_key,
    balance_key,
)

MAX_METADATA_SIZE = 256

OUTPUT_VALUE_ZERO = b"value is zero"
OUTPUT_ASSET_IS_NATIVE = b"cannot mint native asset"
OUTPUT_ASSET_ALREADY_EXISTS = b"asset already exists"
OUTPUT_ASSET_MISSING = b"asset missing"
OUTPUT_IN_TICK_ZERO = b"in rate is zero"
OUTPUT_OUT_TICK_ZERO = b"out rate is zero"
OUTPUT_SUPPLY_ZERO = b"supply is zero"
OUTPUT_SUPPLY_MISALIGNED = b"supply is misaligned"
OUTPUT_ORDER_MISSING = b"order is missing"
OUTPUT_UNAUTHORIZED = b"unauthorized"
OUTPUT_WRONG_IN = b"wrong in asset"
OUTPUT_WRONG_OUT = b"wrong out asset"
OUTPUT_WRONG_OWNER = b"wrong owner"
OUTPUT_INSUFFICIENT_INPUT = b"insufficient input"
OUTPUT_INSUFFICIENT_OUTPUT = b"insufficient output"
OUTPUT_VALUE_MISALIGNED = b"value is misaligned"
OUTPUT_METADATA_TOO_LARGE = b"metadata is too large"
OUTPUT_SAME_IN_OUT = b"same asset used for in and out"
OUTPUT_CONFLICTING_ASSET = b"warp has same asset as another"
OUTPUT_ANYCAST = b"anycast output"
OUTPUT_NOT_WARP_ASSET = b"not warp asset"
OUTPUT_WARP_ASSET = b"warp asset"
OUTPUT_WRONG_DESTINATION = b"wrong destination"
OUTPUT_MUST_FILL = b"must fill request"
OUTPUT_WARP_VERIFICATION_FAILED = b"warp verification failed"

# Errors raised by state operations that become a failed action's output.
STATE_ERRORS = (InvalidBalanceError, OverflowError)


def fail(units: int, output: bytes) -> Result:
    """A failed result carrying ``output``."""
    return Result(success=False, units=units, output=output)


def fail_with(units: int, exc: BaseException) -> Result:
    """A failed result whose output is the text of ``exc``."""
    return Result(success=False, units=units, output=str(exc).encode())


def checked_add(a: int, b: int) -> int:
    total = a + b
    if total > MAX_UINT64:
        raise OverflowError("overflow")
    return total


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise OverflowError("underflow")
    return a - b


@dataclass
class Transfer:
    """Send ``value`` of ``asset`` to ``to``."""

    to: bytes = EMPTY_PUBLIC_KEY
    asset: bytes = EMPTY_ID
    value: int = 0

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        return [balance_key(actor, self.asset), balance_key(self.to, self.asset)]

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        units = self.max_units()
        if self.value == 0:
            return fail(units, OUTPUT_VALUE_ZERO)
        try:
            state.sub_balance(actor, self.asset, self.value)
            state.add_balance(self.to, self.asset, self.value)
        except STATE_ERRORS as exc:
            return fail_with(units, exc)
        return Result(success=True, units=units)

    def max_units(self) -> int:
        return PUBLIC_KEY_LEN + ID_LEN + UINT64_LEN

    def marshal(self, packer: Packer) -> None:
        packer.pack_public_key(self.to)
        packer.pack_id(self.asset)
        packer.pack_uint64(self.value)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_transfer(packer: Packer) -> Transfer:
    to = packer.unpack_public_key(False)  # may send to the blackhole
    asset = packer.unpack_id(False)  # empty id is the native asset
    value = packer.unpack_uint64(True)
    return Transfer(to, asset, value)


@dataclass
class CreateAsset:
    """Create an asset identified by the creating transaction's id."""

    metadata: bytes = b""

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        return [asset_key(tx_id)]

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        units = self.max_units()
        if len(self.metadata) > MAX_METADATA_SIZE:
            return fail(units, OUTPUT_METADATA_TOO_LARGE)
        state.set_asset(tx_id, self.metadata, 0, actor, False)
        return Result(success=True, units=units)

    def max_units(self) -> int:
        return len(self.metadata)

    def marshal(self, packer: Packer) -> None:
        packer.pack_bytes(self.metadata)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_create_asset(packer: Packer) -> CreateAsset:
    return CreateAsset(packer.unpack_bytes(MAX_METADATA_SIZE, False))


@dataclass
class MintAsset:
    """Mint ``value`` of an owned asset to ``to``."""

    to: bytes = EMPTY_PUBLIC_KEY
    asset: bytes = EMPTY_ID
    value: int = 0

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        return [asset_key(self.asset), balance_key(self.to, self.asset)]

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        units = self.max_units()
        if self.asset == EMPTY_ID:
            return fail(units, OUTPUT_ASSET_IS_NATIVE)
        if self.value == 0:
            return fail(units, OUTPUT_VALUE_ZERO)
        info = state.get_asset(self.asset)
        if info is None:
            return fail(units, OUTPUT_ASSET_MISSING)
        if info.is_warp:
            return fail(units, OUTPUT_WARP_ASSET)
        if info.owner != actor:
            return fail(units, OUTPUT_WRONG_OWNER)
        try:
            new_supply = checked_add(info.supply, self.value)
            state.set_asset(self.asset, info.metadata, new_supply, actor, info.is_warp)
            state.add_balance(self.to, self.asset, self.value)
        except STATE_ERRORS as exc:
            return fail_with(units, exc)
        return Result(success=True, units=units)

    def max_units(self) -> int:
        return PUBLIC_KEY_LEN + ID_LEN + UINT64_LEN

    def marshal(self, packer: Packer) -> None:
        packer.pack_public_key(self.to)
        packer.pack_id(self.asset)
        packer.pack_uint64(self.value)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_mint_asset(packer: Packer) -> MintAsset:
    to = packer.unpack_public_key(True)  # cannot mint to the blackhole
    asset = packer.unpack_id(True)  # cannot mint the native asset
    value = packer.unpack_uint64(True)
    return MintAsset(to, asset, value)


@dataclass
class BurnAsset:
    """Destroy ``value`` of the actor's holding of ``asset``."""

    asset: bytes = EMPTY_ID
    value: int = 0

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        return [asset_key(self.asset), balance_key(actor, self.asset)]

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        units = self.max_units()
        if self.value == 0:
            return fail(units, OUTPUT_VALUE_ZERO)
        try:
            state.sub_balance(actor, self.asset, self.value)
        except STATE_ERRORS as exc:
            return fail_with(units, exc)
        info = state.get_asset(self.asset)
        if info is None:
            return fail(units, OUTPUT_ASSET_MISSING)
        try:
            new_supply = checked_sub(info.supply, self.value)
        except OverflowError as exc:
            return fail_with(units, exc)
        state.set_asset(self.asset, info.metadata, new_supply, info.owner, info.is_warp)
        return Result(success=True, units=units)

    def max_units(self) -> int:
        return ID_LEN + UINT64_LEN

    def marshal(self, packer: Packer) -> None:
        packer.pack_id(self.asset)
        packer.pack_uint64(self.value)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_burn_asset(packer: Packer) -> BurnAsset:
    asset = packer.unpack_id(False)  # the native asset may be burned
    value = packer.unpack_uint64(True)
    return BurnAsset(asset, value)


@dataclass
class ModifyAsset:
    """Replace an owned asset's owner and metadata."""

    asset: bytes = EMPTY_ID
    owner: bytes = EMPTY_PUBLIC_KEY
    metadata: bytes = field(default=b"")

    def state_keys(self, actor: bytes, tx_id: bytes) -> list[bytes]:
        return [asset_key(self.asset)]

    def execute(self, state: MemoryState, timestamp, actor, tx_id, warp_verified) -> Result:
        units = self.max_units()
        if self.asset == EMPTY_ID:
            return fail(units, OUTPUT_ASSET_IS_NATIVE)
        if len(self.metadata) > MAX_METADATA_SIZE:
            return fail(units, OUTPUT_METADATA_TOO_LARGE)
        info = state.get_asset(self.asset)
        if info is None:
            return fail(units, OUTPUT_ASSET_MISSING)
        if info.is_warp:
            return fail(units, OUTPUT_WARP_ASSET)
        if info.owner != actor:
            return fail(units, OUTPUT_WRONG_OWNER)
        state.set_asset(self.asset, self.metadata, info.supply, self.owner, info.is_warp)
        return Result(success=True, units=units)

    def max_units(self) -> int:
        return ID_LEN + PUBLIC_KEY_LEN + len(self.metadata)

    def marshal(self, packer: Packer) -> None:
        packer.pack_id(self.asset)
        packer.pack_public_key(self.owner)
        packer.pack_bytes(self.metadata)

    def valid_range(self) -> tuple[int, int]:
        return -1, -1


def unmarshal_modify_asset(packer: Packer) -> ModifyAsset:
    asset = packer.unpack_id(True)  # the native asset cannot be modified
    owner = packer.unpack_public_key(False)  # empty revokes ownership
    metadata = packer.unpack_bytes(MAX_METADATA_SIZE, False)
    return ModifyAsset(asset, owner, metadata)