"""Chain genesis parameters and the rules derived from them."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Optional

from .codec import HRP, MAX_INT64, MAX_UINT64, MIN_INT64

STATE_LOCKUP_FIELD = "state_lockup"


class InvalidTargetError(ValueError):
    """Raised when a pricing window target is zero."""

    def __init__(self, message: str = "invalid target") -> None:
        super().__init__(message)


class StateLockupMissingError(ValueError):
    """Raised when the state lockup parameter is absent."""

    def __init__(self, message: str = "state lockup parameter missing") -> None:
        super().__init__(message)


_STR = "str"
_INT64 = "int64"
_UINT64 = "uint64"

# JSON name, attribute name, kind; in the order they are written.
_FIELDS = (
    ("hrp", "hrp", _STR),
    ("maxBlockTxs", "max_block_txs", _INT64),
    ("maxBlockUnits", "max_block_units", _UINT64),
    ("baseUnits", "base_units", _UINT64),
    ("validityWindow", "validity_window", _INT64),
    ("minUnitPrice", "min_unit_price", _UINT64),
    ("unitPriceChangeDenominator", "unit_price_change_denominator", _UINT64),
    ("windowTargetUnits", "window_target_units", _UINT64),
    ("minBlockCost", "min_block_cost", _UINT64),
    ("blockCostChangeDenominator", "block_cost_change_denominator", _UINT64),
    ("windowTargetBlocks", "window_target_blocks", _UINT64),
    ("warpBaseFee", "warp_base_fee", _UINT64),
    ("warpFeePerSigner", "warp_fee_per_signer", _UINT64),
)
_ALLOCATIONS = "customAllocation"

# Share of stake that must sign an inbound warp message.
_WARP_QUORUM = Fraction(4, 5)


def _convert(value: Any, kind: str, name: str) -> Any:
    if kind == _STR:
        if not isinstance(value, str):
            raise ValueError(f"{name} must be a string")
        return value
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    low, high = (0, MAX_UINT64) if kind == _UINT64 else (MIN_INT64, MAX_INT64)
    if not low <= value <= high:
        raise ValueError(f"{name} value {value} is out of range")
    return value


@dataclass
class CustomAllocation:
    """An initial native balance given to an address."""

    address: str
    balance: int

    @classmethod
    def from_json(cls, obj: Any) -> CustomAllocation:
        if not isinstance(obj, dict):
            raise ValueError("allocation must be an object")
        address, balance = "", 0
        for key, value in obj.items():
            if value is None:
                continue
            lowered = key.lower()
            if lowered == "address":
                address = _convert(value, _STR, "address")
            elif lowered == "balance":
                balance = _convert(value, _UINT64, "balance")
        return cls(address, balance)

    def to_json(self) -> dict[str, Any]:
        return {"address": self.address, "balance": self.balance}


@dataclass
class Genesis:
    """Parameters fixed when a chain is created."""

    hrp: str = HRP
    max_block_txs: int = 20_000  # rely on max block units
    max_block_units: int = 1_800_000  # 1.8 MiB
    base_units: int = 48  # timestamp(8) + chainID(32) + unitPrice(8)
    validity_window: int = 60  # seconds
    min_unit_price: int = 1
    unit_price_change_denominator: int = 48
    window_target_units: int = 20_000_000
    min_block_cost: int = 0
    block_cost_change_denominator: int = 48
    window_target_blocks: int = 20  # 10s
    warp_base_fee: int = 1_024
    warp_fee_per_signer: int = 128
    custom_allocation: list[CustomAllocation] = field(default_factory=list)

    def rules(self, timestamp: int) -> Rules:
        return Rules(self)

    def to_json(self) -> str:
        obj: dict[str, Any] = {name: getattr(self, attr) for name, attr, _ in _FIELDS}
        obj[_ALLOCATIONS] = (
            [alloc.to_json() for alloc in self.custom_allocation]
            if self.custom_allocation
            else None
        )
        return json.dumps(obj, separators=(",", ":"))

    def _update(self, obj: dict[str, Any]) -> None:
        lookup = {name.lower(): (attr, kind) for name, attr, kind in _FIELDS}
        for key, value in obj.items():
            if value is None:
                continue
            lowered = key.lower()
            if lowered == _ALLOCATIONS.lower():
                if not isinstance(value, list):
                    raise ValueError("customAllocation must be a list")
                self.custom_allocation = [CustomAllocation.from_json(v) for v in value]
            elif lowered in lookup:
                attr, kind = lookup[lowered]
                setattr(self, attr, _convert(value, kind, key))


@dataclass(frozen=True)
class Rules:
    """Chain rules read from a genesis."""

    genesis: Genesis
    custom: Mapping[str, Any] = field(default_factory=dict)
    warp_quorum: Fraction = _WARP_QUORUM
    allowed_sources: Optional[frozenset] = None  # None allows every source

    def get_warp_config(self, source_chain_id: bytes) -> tuple[bool, int, int]:
        # Inbound transfers are allowed from any source once 80% of stake
        # has signed; assets are scoped by their source chain.
        allowed = (
            self.allowed_sources is None
            or bytes(source_chain_id) in self.allowed_sources
        )
        return allowed, self.warp_quorum.numerator, self.warp_quorum.denominator

    def fetch_custom(self, key: str) -> tuple[Any, bool]:
        if key in self.custom:
            return self.custom[key], True
        return None, False

    @property
    def warp_base_fee(self) -> int:
        return self.genesis.warp_base_fee

    @property
    def warp_fee_per_signer(self) -> int:
        return self.genesis.warp_fee_per_signer

    @property
    def max_block_txs(self) -> int:
        return self.genesis.max_block_txs

    @property
    def validity_window(self) -> int:
        return self.genesis.validity_window

    @property
    def max_block_units(self) -> int:
        return self.genesis.max_block_units

    @property
    def base_units(self) -> int:
        return self.genesis.base_units

    @property
    def min_unit_price(self) -> int:
        return self.genesis.min_unit_price

    @property
    def unit_price_change_denominator(self) -> int:
        return self.genesis.unit_price_change_denominator

    @property
    def window_target_units(self) -> int:
        return self.genesis.window_target_units

    @property
    def min_block_cost(self) -> int:
        return self.genesis.min_block_cost

    @property
    def block_cost_change_denominator(self) -> int:
        return self.genesis.block_cost_change_denominator

    @property
    def window_target_blocks(self) -> int:
        return self.genesis.window_target_blocks


def default() -> Genesis:
    """The default genesis."""
    return Genesis()


def load_genesis(data: bytes | str) -> Genesis:
    """Parse a genesis from JSON, filling absent fields with defaults."""
    genesis = default()
    if data:
        text = data.decode(errors="replace") if isinstance(data, bytes) else data
        try:
            obj = json.loads(data)
            if obj is not None:
                if not isinstance(obj, dict):
                    raise ValueError("genesis must be a JSON object")
                genesis._update(obj)
        except ValueError as exc:
            raise ValueError(f"failed to unmarshal config {text}: {exc}") from exc
    if genesis.window_target_units == 0:
        raise InvalidTargetError()
    if genesis.window_target_blocks == 0:
        raise InvalidTargetError()
    return genesis