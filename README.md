# tokenvm

A token ledger state machine with a small command line client. It covers:

- a big-endian binary codec for identifiers, integers, booleans, byte
  strings, public keys, signatures and optional fields
  (`tokenvm.codec.Packer`, `OptionalWriter`, `OptionalReader`), plus
  SHA-256 identifiers (`to_id`) and checksummed base58 text forms
  (`id_to_string`, `id_from_string`);
- an in-memory state holding assets, balances, orders and loans
  (`tokenvm.state.MemoryState`), with the `Result` that actions return;
- Ed25519 signing, verification and fee handling (`tokenvm.auth`:
  `generate_private_key`, `ED25519Factory`, `ED25519`, `get_actor`);
- asset actions `Transfer`, `CreateAsset`, `MintAsset`, `BurnAsset` and
  `ModifyAsset` (`tokenvm.assets`);
- trading actions `CreateOrder`, `FillOrder` and `CloseOrder`, with the
  `OrderResult` a fill produces (`tokenvm.orders`), and an `OrderBook` that
  keeps the open orders of tracked pairs and lists them highest in/out rate
  first (`tokenvm.orderbook`; pass `["*"]` to track every pair);
- cross-chain transfers `ExportAsset` and `ImportAsset` (`tokenvm.bridge`)
  and the `WarpTransfer` payload and `WarpMessage` they use (`tokenvm.warp`);
- genesis parameters and the `Rules` read from them (`tokenvm.genesis`:
  `default`, `load_genesis`, `Genesis.to_json`);
- a sqlite-backed store for defaults, private keys and chain URIs
  (`tokenvm.store.CliStore`);
- Prometheus scrape configuration and dashboard queries
  (`tokenvm.prometheus`).

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Using the library

```python
from tokenvm.assets import CreateAsset, MintAsset, Transfer
from tokenvm.auth import ED25519Factory, generate_private_key
from tokenvm.codec import to_id
from tokenvm.state import MemoryState

state = MemoryState()
factory = ED25519Factory(generate_private_key())
actor = factory.public_key

tx_id = to_id(b"create-asset")  # the new asset's id is its creating transaction's id
result = CreateAsset(metadata=b"my token").execute(state, 0, actor, tx_id, False)
assert result.success

MintAsset(to=actor, asset=tx_id, value=100).execute(state, 0, actor, to_id(b"mint"), False)
assert state.get_balance(actor, tx_id) == 100

other = ED25519Factory(generate_private_key()).public_key
Transfer(to=other, asset=tx_id, value=40).execute(state, 0, actor, to_id(b"send"), False)
assert state.get_balance(other, tx_id) == 40
```

Every action has `state_keys(actor, tx_id)`, `execute(state, timestamp,
actor, tx_id, warp_verified)`, `max_units()` and `marshal(packer)`, and a
matching `unmarshal_*` function that reads it back from a `Packer`
(`unmarshal_import_asset` also takes the `WarpMessage`). A failing action
does not raise: `execute` returns a `Result` whose `success` is false and
whose `output` holds the reason, such as `b"value is zero"`. Malformed
encodings raise `CodecError`.

## Command line

`token-cli` keeps its data in a sqlite file chosen with `--database`
(default `.token-cli`). Commands may be shortened to any unique prefix.

```
token-cli genesis generate allocations.json --genesis-file genesis.json
token-cli prometheus generate --prometheus-file /tmp/prometheus.yaml
```

- `genesis generate` reads a JSON list of `{"address": ..., "balance": ...}`
  objects and writes the default genesis with those allocations.
  `--min-unit-price`, `--max-block-units`, `--window-target-units` and
  `--window-target-blocks` override the defaults; negative values are
  ignored. `generate_genesis` in `tokenvm.cli` does the same from Python.
- `prometheus generate` asks which stored chain to use, writes a scrape
  configuration for its URIs, and prints the dashboard queries, a dashboard
  link and the command line to start Prometheus with (`--prometheus-data`
  sets the data path it shows).

## What this package does not do

There is no node, block production, networking or RPC client: actions run
only against a local `MemoryState`. The command line has no commands to
create or import keys, add chains, send transactions or watch a chain;
keys and chains go into the store through `CliStore.store_key` and
`CliStore.store_chain`, and `prometheus generate` fails with "no available
chains" until one has been stored.