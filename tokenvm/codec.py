"""Binary encoding of identifiers, integers, keys and optional fields."""

from __future__ import annotations

import hashlib
import struct

ID_LEN = 32
UINT64_LEN = 8
INT64_LEN = 8
BOOL_LEN = 1
PUBLIC_KEY_LEN = 32
SIGNATURE_LEN = 64
MAX_UINT64 = 2**64 - 1
MIN_INT64 = -(2**63)
MAX_INT64 = 2**63 - 1
MAX_OPTIONAL_FIELDS = 64

EMPTY_ID = bytes(ID_LEN)
EMPTY_PUBLIC_KEY = bytes(PUBLIC_KEY_LEN)

HRP = "sim"
NAME = "SIMON"
SYMBOL = "SIM"
VM_ID = NAME.encode().ljust(ID_LEN, b"\x00")

_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_CHECKSUM_LEN = 4


class CodecError(ValueError):
    """Raised when a value cannot be encoded or decoded."""


def to_id(data: bytes) -> bytes:
    """Return the 32-byte identifier (SHA-256 digest) of ``data``."""
    return hashlib.sha256(bytes(data)).digest()


def _b58encode(data: bytes) -> str:
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, rem = divmod(number, 58)
        digits.append(_B58_ALPHABET[rem])
    leading = len(data) - len(data.lstrip(b"\x00"))
    return "1" * leading + "".join(reversed(digits))


def _b58decode(text: str) -> bytes:
    number = 0
    for char in text:
        index = _B58_ALPHABET.find(char)
        if index < 0:
            raise CodecError(f"invalid base58 character {char!r}")
        number = number * 58 + index
    leading = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * leading + body


def id_to_string(value: bytes) -> str:
    """Encode an identifier as checksummed base58."""
    value = bytes(value)
    checksum = hashlib.sha256(value).digest()[-_CHECKSUM_LEN:]
    return _b58encode(value + checksum)


def id_from_string(text: str) -> bytes:
    """Decode a checksummed base58 identifier."""
    raw = _b58decode(text.strip())
    if len(raw) < _CHECKSUM_LEN:
        raise CodecError("encoded identifier too short")
    body, checksum = raw[:-_CHECKSUM_LEN], raw[-_CHECKSUM_LEN:]
    if hashlib.sha256(body).digest()[-_CHECKSUM_LEN:] != checksum:
        raise CodecError("invalid checksum")
    if len(body) != ID_LEN:
        raise CodecError(f"identifier must be {ID_LEN} bytes, got {len(body)}")
    return body


def _fixed(value: bytes, size: int, what: str) -> bytes:
    value = bytes(value)
    if len(value) != size:
        raise CodecError(f"{what} must be {size} bytes, got {len(value)}")
    return value


class Packer:
    """Reads and writes the big-endian wire format."""

    def __init__(self, data: bytes = b"", *, limit: int | None = None) -> None:
        self._buf = bytearray(data)
        self._offset = 0
        self._limit = limit

    def _write(self, chunk: bytes) -> None:
        if self._limit is not None and len(self._buf) + len(chunk) > self._limit:
            raise CodecError("packer size limit exceeded")
        self._buf += chunk

    def _read(self, size: int) -> bytes:
        end = self._offset + size
        if end > len(self._buf):
            raise CodecError("insufficient length")
        chunk = bytes(self._buf[self._offset:end])
        self._offset = end
        return chunk

    def pack_id(self, value: bytes) -> None:
        self._write(_fixed(value, ID_LEN, "identifier"))

    def unpack_id(self, required: bool) -> bytes:
        value = self._read(ID_LEN)
        if required and value == EMPTY_ID:
            raise CodecError("identifier is required")
        return value

    def pack_uint64(self, value: int) -> None:
        if not 0 <= value <= MAX_UINT64:
            raise CodecError(f"{value} is out of uint64 range")
        self._write(struct.pack(">Q", value))

    def unpack_uint64(self, required: bool) -> int:
        (value,) = struct.unpack(">Q", self._read(UINT64_LEN))
        if required and value == 0:
            raise CodecError("uint64 field is required")
        return value

    def pack_int64(self, value: int) -> None:
        if not MIN_INT64 <= value <= MAX_INT64:
            raise CodecError(f"{value} is out of int64 range")
        self._write(struct.pack(">q", value))

    def unpack_int64(self, required: bool) -> int:
        (value,) = struct.unpack(">q", self._read(INT64_LEN))
        if required and value == 0:
            raise CodecError("int64 field is required")
        return value

    def pack_bool(self, value: bool) -> None:
        self._write(b"\x01" if value else b"\x00")

    def unpack_bool(self) -> bool:
        raw = self._read(BOOL_LEN)[0]
        if raw > 1:
            raise CodecError(f"invalid bool byte {raw}")
        return raw == 1

    def pack_bytes(self, value: bytes) -> None:
        value = bytes(value)
        if len(value) > 0xFFFFFFFF:
            raise CodecError("byte string too long")
        self._write(struct.pack(">I", len(value)) + value)

    def unpack_bytes(self, limit: int, required: bool) -> bytes:
        (length,) = struct.unpack(">I", self._read(4))
        if length > limit:
            raise CodecError(f"byte string of {length} exceeds limit {limit}")
        if required and length == 0:
            raise CodecError("byte string is required")
        return self._read(length)

    def pack_public_key(self, value: bytes) -> None:
        self._write(_fixed(value, PUBLIC_KEY_LEN, "public key"))

    def unpack_public_key(self, required: bool) -> bytes:
        value = self._read(PUBLIC_KEY_LEN)
        if required and value == EMPTY_PUBLIC_KEY:
            raise CodecError("public key is required")
        return value

    def pack_signature(self, value: bytes) -> None:
        self._write(_fixed(value, SIGNATURE_LEN, "signature"))

    def unpack_signature(self) -> bytes:
        return self._read(SIGNATURE_LEN)

    def pack_optional(self, writer: OptionalWriter) -> None:
        self.pack_uint64(writer.bits)
        self._write(writer.payload)

    def new_optional_reader(self) -> OptionalReader:
        return OptionalReader(self, self.unpack_uint64(False))

    def to_bytes(self) -> bytes:
        return bytes(self._buf)

    def empty(self) -> bool:
        return self._offset == len(self._buf)


class OptionalWriter:
    """Collects fields that are written only when non-zero."""

    def __init__(self) -> None:
        self._packer = Packer()
        self._offset = 0
        self.bits = 0

    def _present(self, present: bool) -> bool:
        if self._offset >= MAX_OPTIONAL_FIELDS:
            raise CodecError("too many optional fields")
        if present:
            self.bits |= 1 << self._offset
        self._offset += 1
        return present

    @property
    def payload(self) -> bytes:
        return self._packer.to_bytes()

    def pack_uint64(self, value: int) -> None:
        if self._present(value != 0):
            self._packer.pack_uint64(value)

    def pack_int64(self, value: int) -> None:
        if self._present(value != 0):
            self._packer.pack_int64(value)

    def pack_id(self, value: bytes) -> None:
        value = _fixed(value, ID_LEN, "identifier")
        if self._present(value != EMPTY_ID):
            self._packer.pack_id(value)


class OptionalReader:
    """Reads fields written by an :class:`OptionalWriter`."""

    def __init__(self, packer: Packer, bits: int) -> None:
        self._packer = packer
        self._bits = bits
        self._offset = 0

    def _present(self) -> bool:
        if self._offset >= MAX_OPTIONAL_FIELDS:
            raise CodecError("too many optional fields")
        present = bool(self._bits >> self._offset & 1)
        self._offset += 1
        return present

    def unpack_uint64(self) -> int:
        return self._packer.unpack_uint64(True) if self._present() else 0

    def unpack_int64(self) -> int:
        return self._packer.unpack_int64(True) if self._present() else 0

    def unpack_id(self) -> bytes:
        return self._packer.unpack_id(True) if self._present() else EMPTY_ID

    def done(self) -> None:
        if self._bits >> self._offset:
            raise CodecError("unexpected optional fields")