import pytest

from tokenvm.assets import (
    MAX_METADATA_SIZE,
    OUTPUT_ASSET_IS_NATIVE,
    OUTPUT_ASSET_MISSING,
    OUTPUT_METADATA_TOO_LARGE,
    OUTPUT_VALUE_ZERO,
    OUTPUT_WARP_ASSET,
    OUTPUT_WRONG_OWNER,
    BurnAsset,
    CreateAsset,
    MintAsset,
    ModifyAsset,
    Transfer,
    unmarshal_burn_asset,
    unmarshal_create_asset,
    unmarshal_mint_asset,
    unmarshal_modify_asset,
    unmarshal_transfer,
)
from tokenvm.codec import EMPTY_ID, EMPTY_PUBLIC_KEY, CodecError, Packer
from tokenvm.state import MemoryState, asset_key, balance_key

ALICE = b"\x0a" * 32
BOB = b"\x0b" * 32
ASSET = b"\xa5" * 32
TX = b"\x77" * 32


def roundtrip(action, unmarshal):
    p = Packer()
    action.marshal(p)
    data = p.to_bytes()
    return data, unmarshal(Packer(data))


@pytest.fixture
def state():
    s = MemoryState()
    s.set_asset(ASSET, b"coin", 100, ALICE, False)
    s.set_balance(ALICE, ASSET, 100)
    return s


def test_failure_outputs_carry_source_text(state):
    zero = Transfer(BOB, ASSET, 0).execute(state, 0, ALICE, TX, False)
    assert zero.output == b"value is zero"
    native = MintAsset(BOB, EMPTY_ID, 1).execute(state, 0, ALICE, TX, False)
    assert native.output == b"cannot mint native asset"


def test_metadata_limit_is_256_bytes(state):
    ok = CreateAsset(b"x" * 256).execute(state, 0, BOB, TX, False)
    assert ok.success
    too_big = CreateAsset(b"x" * 257).execute(state, 0, BOB, b"\x78" * 32, False)
    assert not too_big.success


def test_transfer_roundtrip_and_size():
    t = Transfer(BOB, ASSET, 5)
    data, back = roundtrip(t, unmarshal_transfer)
    assert back == t
    assert len(data) == t.max_units()


def test_transfer_moves_balance(state):
    result = Transfer(BOB, ASSET, 30).execute(state, 0, ALICE, TX, False)
    assert result.success
    assert state.get_balance(ALICE, ASSET) == 70
    assert state.get_balance(BOB, ASSET) == 30


def test_transfer_zero_value(state):
    result = Transfer(BOB, ASSET, 0).execute(state, 0, ALICE, TX, False)
    assert not result.success
    assert result.output == OUTPUT_VALUE_ZERO


def test_transfer_insufficient_balance(state):
    result = Transfer(BOB, ASSET, 101).execute(state, 0, ALICE, TX, False)
    assert not result.success
    assert state.get_balance(BOB, ASSET) == 0


def test_transfer_state_keys():
    keys = Transfer(BOB, ASSET, 1).state_keys(ALICE, TX)
    assert keys == [balance_key(ALICE, ASSET), balance_key(BOB, ASSET)]


def test_unmarshal_transfer_requires_value():
    p = Packer()
    Transfer(BOB, ASSET, 0).marshal(p)
    with pytest.raises(CodecError):
        unmarshal_transfer(Packer(p.to_bytes()))


def test_create_asset(state):
    action = CreateAsset(b"my token")
    result = action.execute(state, 0, BOB, TX, False)
    assert result.success
    assert result.units == len(b"my token")
    info = state.get_asset(TX)
    assert (info.metadata, info.supply, info.owner, info.is_warp) == (
        b"my token", 0, BOB, False)
    assert action.state_keys(BOB, TX) == [asset_key(TX)]


def test_create_asset_metadata_too_large(state):
    result = CreateAsset(b"x" * (MAX_METADATA_SIZE + 1)).execute(state, 0, BOB, TX, False)
    assert result.output == OUTPUT_METADATA_TOO_LARGE
    assert state.get_asset(TX) is None


def test_create_asset_roundtrip_and_limit():
    _, back = roundtrip(CreateAsset(b"meta"), unmarshal_create_asset)
    assert back.metadata == b"meta"
    p = Packer()
    CreateAsset(b"x" * (MAX_METADATA_SIZE + 1)).marshal(p)
    with pytest.raises(CodecError):
        unmarshal_create_asset(Packer(p.to_bytes()))


def test_mint_asset(state):
    result = MintAsset(BOB, ASSET, 50).execute(state, 0, ALICE, TX, False)
    assert result.success
    assert state.get_asset(ASSET).supply == 150
    assert state.get_balance(BOB, ASSET) == 50


@pytest.mark.parametrize(
    "asset,actor,value,expected",
    [
        (EMPTY_ID, ALICE, 1, OUTPUT_ASSET_IS_NATIVE),
        (ASSET, ALICE, 0, OUTPUT_VALUE_ZERO),
        (b"\x01" * 32, ALICE, 1, OUTPUT_ASSET_MISSING),
        (ASSET, BOB, 1, OUTPUT_WRONG_OWNER),
    ],
)
def test_mint_asset_failures(state, asset, actor, value, expected):
    result = MintAsset(BOB, asset, value).execute(state, 0, actor, TX, False)
    assert not result.success
    assert result.output == expected


def test_mint_warp_asset_rejected(state):
    state.set_asset(ASSET, b"coin", 100, ALICE, True)
    result = MintAsset(BOB, ASSET, 1).execute(state, 0, ALICE, TX, False)
    assert result.output == OUTPUT_WARP_ASSET


def test_mint_overflow(state):
    state.set_asset(ASSET, b"coin", 2**64 - 1, ALICE, False)
    result = MintAsset(BOB, ASSET, 1).execute(state, 0, ALICE, TX, False)
    assert not result.success
    assert state.get_asset(ASSET).supply == 2**64 - 1


def test_mint_roundtrip_requires_recipient():
    _, back = roundtrip(MintAsset(BOB, ASSET, 9), unmarshal_mint_asset)
    assert back == MintAsset(BOB, ASSET, 9)
    p = Packer()
    MintAsset(EMPTY_PUBLIC_KEY, ASSET, 9).marshal(p)
    with pytest.raises(CodecError):
        unmarshal_mint_asset(Packer(p.to_bytes()))


def test_burn_asset(state):
    result = BurnAsset(ASSET, 40).execute(state, 0, ALICE, TX, False)
    assert result.success
    assert state.get_balance(ALICE, ASSET) == 60
    assert state.get_asset(ASSET).supply == 60


def test_burn_more_than_balance(state):
    result = BurnAsset(ASSET, 101).execute(state, 0, ALICE, TX, False)
    assert not result.success
    assert state.get_asset(ASSET).supply == 100


def test_burn_missing_asset():
    s = MemoryState()
    s.set_balance(ALICE, ASSET, 5)
    result = BurnAsset(ASSET, 5).execute(s, 0, ALICE, TX, False)
    assert result.output == OUTPUT_ASSET_MISSING


def test_burn_roundtrip_allows_native():
    data, back = roundtrip(BurnAsset(EMPTY_ID, 3), unmarshal_burn_asset)
    assert back == BurnAsset(EMPTY_ID, 3)
    assert len(data) == BurnAsset().max_units()


def test_modify_asset(state):
    result = ModifyAsset(ASSET, BOB, b"renamed").execute(state, 0, ALICE, TX, False)
    assert result.success
    info = state.get_asset(ASSET)
    assert (info.owner, info.metadata, info.supply) == (BOB, b"renamed", 100)


def test_modify_asset_wrong_owner(state):
    result = ModifyAsset(ASSET, BOB, b"x").execute(state, 0, BOB, TX, False)
    assert result.output == OUTPUT_WRONG_OWNER
    assert state.get_asset(ASSET).owner == ALICE


def test_modify_native_rejected(state):
    result = ModifyAsset(EMPTY_ID, BOB, b"x").execute(state, 0, ALICE, TX, False)
    assert result.output == OUTPUT_ASSET_IS_NATIVE


def test_modify_roundtrip_allows_empty_owner():
    action = ModifyAsset(ASSET, EMPTY_PUBLIC_KEY, b"meta")
    data, back = roundtrip(action, unmarshal_modify_asset)
    assert back == action
    assert action.max_units() == len(data) - 4
    p = Packer()
    ModifyAsset(EMPTY_ID, BOB, b"").marshal(p)
    with pytest.raises(CodecError):
        unmarshal_modify_asset(Packer(p.to_bytes()))