import pytest

from tokenvm.auth import generate_private_key, public_key_from_private
from tokenvm.store import DEFAULT_CHAIN_KEY, CliStore, DuplicateError

CHAIN_A = bytes([1]) * 32
CHAIN_B = bytes([2]) * 32


@pytest.fixture
def store():
    with CliStore() as s:
        yield s


def test_default_round_trip(store):
    assert store.get_default(DEFAULT_CHAIN_KEY) is None
    store.store_default(DEFAULT_CHAIN_KEY, CHAIN_A)
    assert store.get_default(DEFAULT_CHAIN_KEY) == CHAIN_A
    store.store_default(DEFAULT_CHAIN_KEY, CHAIN_B)
    assert store.get_default(DEFAULT_CHAIN_KEY) == CHAIN_B


def test_store_and_get_key(store):
    priv = generate_private_key()
    store.store_key(priv)
    assert store.get_key(public_key_from_private(priv)) == priv
    assert store.get_key(bytes(32)) is None


def test_duplicate_key_rejected(store):
    priv = generate_private_key()
    store.store_key(priv)
    with pytest.raises(DuplicateError):
        store.store_key(priv)


def test_get_keys_lists_all(store):
    keys = [generate_private_key() for _ in range(3)]
    for k in keys:
        store.store_key(k)
    assert sorted(store.get_keys()) == sorted(keys)


def test_chains_grouped(store):
    store.store_chain(CHAIN_A, "http://localhost:1")
    store.store_chain(CHAIN_A, "http://localhost:2")
    store.store_chain(CHAIN_B, "http://localhost:3")
    assert sorted(store.get_chain(CHAIN_A)) == ["http://localhost:1", "http://localhost:2"]
    chains = store.get_chains()
    assert set(chains) == {CHAIN_A, CHAIN_B}
    assert chains[CHAIN_B] == ["http://localhost:3"]


def test_duplicate_chain_rejected(store):
    store.store_chain(CHAIN_A, "http://localhost:1")
    with pytest.raises(DuplicateError):
        store.store_chain(CHAIN_A, "http://localhost:1")


def test_delete_chains(store):
    store.store_chain(CHAIN_A, "http://localhost:1")
    store.store_chain(CHAIN_B, "http://localhost:3")
    priv = generate_private_key()
    store.store_key(priv)
    assert sorted(store.delete_chains()) == [CHAIN_A, CHAIN_B]
    assert store.get_chains() == {}
    assert store.get_keys() == [priv]


def test_persists_across_reopen(tmp_path):
    path = tmp_path / "cli.db"
    with CliStore(path) as s:
        s.store_chain(CHAIN_A, "http://localhost:9")
    with CliStore(path) as s:
        assert s.get_chain(CHAIN_A) == ["http://localhost:9"]


def test_closed_store_raises():
    s = CliStore()
    s.close()
    s.close()
    with pytest.raises(RuntimeError):
        s.get_keys()