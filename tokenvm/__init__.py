"""Token ledger state machine: codec, state, Ed25519 auth, asset, order and cross-chain actions, genesis and a CLI."""

__version__ = "0.1.0"