"""Local key-value store for CLI defaults, private keys and chain URIs."""

from __future__ import annotations

import sqlite3
from os import PathLike
from typing import Iterator

from .auth import public_key_from_private
from .codec import ID_LEN, to_id

_DEFAULT_PREFIX = b"\x00"
_KEY_PREFIX = b"\x01"
_CHAIN_PREFIX = b"\x02"

DEFAULT_KEY_KEY = "key"
DEFAULT_CHAIN_KEY = "chain"


class DuplicateError(Exception):
    """Raised when an entry is stored twice."""

    def __init__(self, message: str = "duplicate") -> None:
        super().__init__(message)


class CliStore:
    """A sqlite-backed store with ordered prefix scans."""

    def __init__(self, path: str | PathLike[str] = ":memory:") -> None:
        self._db: sqlite3.Connection | None = sqlite3.connect(str(path))
        self._db.execute(
            "CREATE TABLE IF NOT EXISTS kv (key BLOB PRIMARY KEY, value BLOB NOT NULL)"
        )
        self._db.commit()

    def __enter__(self) -> CliStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._db is None:
            raise RuntimeError("store is closed")
        return self._db

    def _put(self, key: bytes, value: bytes) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, bytes(value))
        )
        self._conn.commit()

    def _get(self, key: bytes) -> bytes | None:
        row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return None if row is None else bytes(row[0])

    def _has(self, key: bytes) -> bool:
        return self._get(key) is not None

    def _scan(self, prefix: bytes) -> Iterator[tuple[bytes, bytes]]:
        rows = self._conn.execute(
            "SELECT key, value FROM kv WHERE key >= ? ORDER BY key", (prefix,)
        ).fetchall()
        for key, value in rows:
            key = bytes(key)
            if not key.startswith(prefix):
                break
            yield key, bytes(value)

    def store_default(self, key: str, value: bytes) -> None:
        self._put(_DEFAULT_PREFIX + key.encode(), value)

    def get_default(self, key: str) -> bytes | None:
        """The stored default, or None if unset."""
        return self._get(_DEFAULT_PREFIX + key.encode())

    def store_key(self, private_key: bytes) -> None:
        k = _KEY_PREFIX + public_key_from_private(private_key)
        if self._has(k):
            raise DuplicateError()
        self._put(k, private_key)

    def get_key(self, public_key: bytes) -> bytes | None:
        """The private key for ``public_key``, or None if unknown."""
        return self._get(_KEY_PREFIX + bytes(public_key))

    def get_keys(self) -> list[bytes]:
        return [value for _, value in self._scan(_KEY_PREFIX)]

    @staticmethod
    def _chain_key(chain_id: bytes, uri: str) -> bytes:
        return _CHAIN_PREFIX + bytes(chain_id) + to_id(uri.encode())

    def store_chain(self, chain_id: bytes, uri: str) -> None:
        k = self._chain_key(chain_id, uri)
        if self._has(k):
            raise DuplicateError()
        self._put(k, uri.encode())

    def get_chain(self, chain_id: bytes) -> list[str]:
        return [v.decode() for _, v in self._scan(_CHAIN_PREFIX + bytes(chain_id))]

    def get_chains(self) -> dict[bytes, list[str]]:
        chains: dict[bytes, list[str]] = {}
        for key, value in self._scan(_CHAIN_PREFIX):
            chain_id = key[1 : 1 + ID_LEN]
            chains.setdefault(chain_id, []).append(value.decode())
        return chains

    def delete_chains(self) -> list[bytes]:
        """Remove every stored chain and return their ids."""
        chains = self.get_chains()
        for chain_id, uris in chains.items():
            for uri in uris:
                self._conn.execute(
                    "DELETE FROM kv WHERE key = ?", (self._chain_key(chain_id, uri),)
                )
        self._conn.commit()
        return list(chains)

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None