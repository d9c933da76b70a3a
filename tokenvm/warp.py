"""Cross-chain transfer payloads carried in warp messages."""

from __future__ import annotations

from dataclasses import dataclass

from .codec import (
    EMPTY_ID,
    EMPTY_PUBLIC_KEY,
    ID_LEN,
    PUBLIC_KEY_LEN,
    UINT64_LEN,
    CodecError,
    OptionalWriter,
    Packer,
    to_id,
)

WARP_TRANSFER_SIZE = (
    PUBLIC_KEY_LEN + ID_LEN + UINT64_LEN + 1 + UINT64_LEN + UINT64_LEN
    + ID_LEN + UINT64_LEN + UINT64_LEN + ID_LEN
)


@dataclass
class WarpMessage:
    """A message passed between chains."""

    source_chain_id: bytes
    destination_chain_id: bytes
    payload: bytes
    signers: int = 0


@dataclass
class WarpTransfer:
    """Funds sent from one chain to another, with an optional swap request."""

    to: bytes = EMPTY_PUBLIC_KEY
    asset: bytes = EMPTY_ID
    value: int = 0
    is_return: bool = False
    reward: int = 0
    swap_in: int = 0
    asset_out: bytes = EMPTY_ID
    swap_out: int = 0
    swap_expiry: int = 0
    tx_id: bytes = EMPTY_ID

    def marshal(self) -> bytes:
        p = Packer(limit=WARP_TRANSFER_SIZE)
        p.pack_public_key(self.to)
        p.pack_id(self.asset)
        p.pack_uint64(self.value)
        p.pack_bool(self.is_return)
        op = OptionalWriter()
        op.pack_uint64(self.reward)
        op.pack_uint64(self.swap_in)
        op.pack_id(self.asset_out)
        op.pack_uint64(self.swap_out)
        op.pack_int64(self.swap_expiry)
        p.pack_optional(op)
        p.pack_id(self.tx_id)
        return p.to_bytes()


def imported_asset_metadata(asset_id: bytes, source_chain_id: bytes) -> bytes:
    """Metadata of an imported asset: its id on the home chain, then that chain's id."""
    return bytes(asset_id) + bytes(source_chain_id)


def imported_asset_id(asset_id: bytes, source_chain_id: bytes) -> bytes:
    """Local id of an asset brought in from another chain."""
    return to_id(imported_asset_metadata(asset_id, source_chain_id))


def valid_swap_params(value, swap_in, asset_out, swap_out, swap_expiry) -> bool:
    if swap_expiry < 0:
        return False
    if swap_in > value:
        return False
    if swap_in > 0:
        return swap_out != 0
    return asset_out == EMPTY_ID and swap_out == 0 and swap_expiry == 0


def unmarshal_warp_transfer(data: bytes) -> WarpTransfer:
    p = Packer(data)
    transfer = WarpTransfer()
    transfer.to = p.unpack_public_key(False)
    transfer.asset = p.unpack_id(False)
    transfer.value = p.unpack_uint64(True)
    transfer.is_return = p.unpack_bool()
    op = p.new_optional_reader()
    transfer.reward = op.unpack_uint64()
    transfer.swap_in = op.unpack_uint64()
    transfer.asset_out = op.unpack_id()
    transfer.swap_out = op.unpack_uint64()
    transfer.swap_expiry = op.unpack_int64()
    op.done()
    transfer.tx_id = p.unpack_id(True)
    if not p.empty():
        raise CodecError("invalid object")
    if not valid_swap_params(
        transfer.value,
        transfer.swap_in,
        transfer.asset_out,
        transfer.swap_out,
        transfer.swap_expiry,
    ):
        raise CodecError("invalid object")
    return transfer