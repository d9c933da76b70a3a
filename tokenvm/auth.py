"""Ed25519 transaction authorization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from .codec import EMPTY_ID, EMPTY_PUBLIC_KEY, PUBLIC_KEY_LEN, SIGNATURE_LEN, Packer
from .state import InvalidBalanceError, MemoryState, balance_key

PRIVATE_KEY_LEN = 64
_SEED_LEN = 32


class InvalidSignatureError(Exception):
    """Raised when a signature does not match the message and signer."""

    def __init__(self, message: str = "invalid signature") -> None:
        super().__init__(message)


def _public_bytes(key: Ed25519PrivateKey) -> bytes:
    return key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def generate_private_key() -> bytes:
    """Create a new 64-byte private key (seed followed by public key)."""
    key = Ed25519PrivateKey.generate()
    seed = key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
    return seed + _public_bytes(key)


def _load(private_key: bytes) -> Ed25519PrivateKey:
    if len(private_key) != PRIVATE_KEY_LEN:
        raise ValueError(f"private key must be {PRIVATE_KEY_LEN} bytes")
    return Ed25519PrivateKey.from_private_bytes(bytes(private_key[:_SEED_LEN]))


def public_key_from_private(private_key: bytes) -> bytes:
    return _public_bytes(_load(private_key))


def verify(msg: bytes, public_key: bytes, signature: bytes) -> bool:
    try:
        Ed25519PublicKey.from_public_bytes(bytes(public_key)).verify(
            bytes(signature), bytes(msg)
        )
    except (InvalidSignature, ValueError):
        return False
    return True


@dataclass
class ED25519:
    """A signer and its signature over a transaction."""

    signer: bytes
    signature: bytes

    def max_units(self) -> int:
        # Signatures are priced higher than their size.
        return PUBLIC_KEY_LEN + SIGNATURE_LEN * 5

    def valid_range(self) -> tuple[int, int]:
        return -1, -1

    def state_keys(self) -> list[bytes]:
        # Fees are always paid in the native asset.
        return [balance_key(self.signer, EMPTY_ID)]

    def async_verify(self, msg: bytes) -> None:
        if not verify(msg, self.signer, self.signature):
            raise InvalidSignatureError()

    def payer(self) -> bytes:
        return bytes(self.signer)

    def marshal(self, packer: Packer) -> None:
        packer.pack_public_key(self.signer)
        packer.pack_signature(self.signature)

    def can_deduct(self, state: MemoryState, amount: int) -> None:
        if state.get_balance(self.signer, EMPTY_ID) < amount:
            raise InvalidBalanceError("invalid balance")

    def deduct(self, state: MemoryState, amount: int) -> None:
        state.sub_balance(self.signer, EMPTY_ID, amount)

    def refund(self, state: MemoryState, amount: int) -> None:
        state.add_balance(self.signer, EMPTY_ID, amount)


def unmarshal_ed25519(packer: Packer) -> ED25519:
    signer = packer.unpack_public_key(True)
    signature = packer.unpack_signature()
    return ED25519(signer, signature)


class ED25519Factory:
    """Signs messages with a private key."""

    def __init__(self, private_key: bytes) -> None:
        self._key = _load(private_key)
        self.public_key = _public_bytes(self._key)

    def sign(self, msg: bytes) -> ED25519:
        return ED25519(self.public_key, self._key.sign(bytes(msg)))


def get_actor(auth: Any) -> bytes:
    """Return the account acting for ``auth``, or the empty key."""
    if isinstance(auth, ED25519):
        return auth.signer
    return EMPTY_PUBLIC_KEY


def get_signer(auth: Any) -> bytes:
    if isinstance(auth, ED25519):
        return auth.signer
    return EMPTY_PUBLIC_KEY