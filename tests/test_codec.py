import pytest

from tokenvm.codec import (
    EMPTY_ID,
    EMPTY_PUBLIC_KEY,
    ID_LEN,
    NAME,
    UINT64_LEN,
    VM_ID,
    CodecError,
    OptionalWriter,
    Packer,
    id_from_string,
    id_to_string,
    to_id,
)


def test_uint64_wire_format_is_big_endian():
    p = Packer()
    p.pack_uint64(1)
    assert p.to_bytes() == b"\x00" * 7 + b"\x01"


def test_round_trip_all_types():
    ident = bytes(range(32))
    pk = bytes(range(1, 33))
    sig = bytes(range(64))
    p = Packer()
    p.pack_id(ident)
    p.pack_uint64(2**64 - 1)
    p.pack_int64(-5)
    p.pack_bool(True)
    p.pack_bytes(b"metadata")
    p.pack_public_key(pk)
    p.pack_signature(sig)
    r = Packer(p.to_bytes())
    assert r.unpack_id(True) == ident
    assert r.unpack_uint64(True) == 2**64 - 1
    assert r.unpack_int64(True) == -5
    assert r.unpack_bool() is True
    assert r.unpack_bytes(16, True) == b"metadata"
    assert r.unpack_public_key(True) == pk
    assert r.unpack_signature() == sig
    assert r.empty()


def test_required_fields_reject_zero():
    p = Packer()
    p.pack_uint64(0)
    p.pack_id(EMPTY_ID)
    p.pack_public_key(EMPTY_PUBLIC_KEY)
    data = p.to_bytes()
    with pytest.raises(CodecError):
        Packer(data).unpack_uint64(True)
    r = Packer(data)
    assert r.unpack_uint64(False) == 0
    with pytest.raises(CodecError):
        r.unpack_id(True)
    r = Packer(data[UINT64_LEN + ID_LEN:])
    with pytest.raises(CodecError):
        r.unpack_public_key(True)


def test_uint64_range_checked():
    with pytest.raises(CodecError):
        Packer().pack_uint64(-1)
    with pytest.raises(CodecError):
        Packer().pack_uint64(2**64)


def test_invalid_bool_byte():
    with pytest.raises(CodecError):
        Packer(b"\x02").unpack_bool()


def test_bytes_limit_and_required():
    p = Packer()
    p.pack_bytes(b"abcdef")
    with pytest.raises(CodecError):
        Packer(p.to_bytes()).unpack_bytes(5, False)
    q = Packer()
    q.pack_bytes(b"")
    with pytest.raises(CodecError):
        Packer(q.to_bytes()).unpack_bytes(5, True)
    assert Packer(q.to_bytes()).unpack_bytes(5, False) == b""


def test_reading_past_end():
    with pytest.raises(CodecError):
        Packer(b"\x00\x01").unpack_uint64(False)


def test_wrong_length_id_rejected():
    with pytest.raises(CodecError):
        Packer().pack_id(b"short")


def test_write_limit():
    p = Packer(limit=UINT64_LEN)
    p.pack_uint64(7)
    with pytest.raises(CodecError):
        p.pack_bool(True)


def test_optional_round_trip_skips_zeros():
    w = OptionalWriter()
    w.pack_uint64(0)
    w.pack_uint64(9)
    w.pack_id(EMPTY_ID)
    w.pack_int64(-3)
    p = Packer()
    p.pack_optional(w)
    data = p.to_bytes()
    assert len(data) == UINT64_LEN * 3
    r = Packer(data).new_optional_reader()
    assert r.unpack_uint64() == 0
    assert r.unpack_uint64() == 9
    assert r.unpack_id() == EMPTY_ID
    assert r.unpack_int64() == -3
    r.done()


def test_optional_done_rejects_unread_fields():
    w = OptionalWriter()
    w.pack_uint64(1)
    w.pack_uint64(2)
    w.pack_uint64(3)
    p = Packer()
    p.pack_optional(w)
    r = Packer(p.to_bytes()).new_optional_reader()
    assert r.unpack_uint64() == 1
    assert r.unpack_uint64() == 2
    with pytest.raises(CodecError):
        r.done()


def test_empty_id_string():
    assert id_to_string(EMPTY_ID) == "11111111111111111111111111111111LpoYY"
    assert id_from_string("11111111111111111111111111111111LpoYY") == EMPTY_ID


def test_id_string_round_trip_and_checksum():
    ident = to_id(b"asset")
    text = id_to_string(ident)
    assert id_from_string(text) == ident
    tampered = text[:-1] + ("2" if text[-1] != "2" else "3")
    with pytest.raises(CodecError):
        id_from_string(tampered)
    with pytest.raises(CodecError):
        id_from_string("0OIl")


def test_to_id_is_deterministic():
    assert len(to_id(b"x")) == ID_LEN
    assert to_id(b"x") == to_id(b"x")
    assert to_id(b"x") != to_id(b"y")


def test_vm_id_is_padded_name():
    assert len(VM_ID) == ID_LEN
    assert VM_ID.rstrip(b"\x00") == NAME.encode()