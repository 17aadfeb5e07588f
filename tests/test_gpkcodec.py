import struct
import zlib

import pytest

from gpktool.errors import CodecError, EmptySize, TruncatedEnvelope
from gpktool.gpkcodec import (
    decode_index, decode_utf16le, decompress, inflate_payload,
    iter_entries, sanitize_name, xor_cipher,
)
from gpktool.gpkstructs import CIPHERCODE, HEADER_SIZE, Entry, EntryHeader

from conftest import envelope, header, name_record


def test_header_size():
    assert HEADER_SIZE == 23


@pytest.mark.parametrize("length", [0, 1, 15, 16, 17, 100, 4099])
def test_xor_roundtrip(length):
    data = bytes((i * 7 + 3) & 0xFF for i in range(length))
    once = xor_cipher(data)
    assert len(once) == length
    assert bytes(xor_cipher(once)) == data


def test_xor_key_repeats():
    out = xor_cipher(bytes(40))
    assert bytes(out[:16]) == CIPHERCODE
    assert bytes(out[16:32]) == CIPHERCODE
    assert bytes(out[32:]) == CIPHERCODE[:8]


def test_xor_in_place():
    buf = bytearray(b"abcdef")
    assert xor_cipher(buf) is buf
    assert buf[0] == ord("a") ^ 0x82


def test_xor_leaves_bytes_alone():
    data = b"abcdef"
    xor_cipher(data)
    assert data == b"abcdef"


def test_decompress():
    payload = b"School Days " * 50
    blob = struct.pack(">I", len(payload)) + zlib.compress(payload)
    assert decompress(blob) == payload


def test_decompress_empty_size():
    blob = struct.pack(">I", 0) + zlib.compress(b"")
    with pytest.raises(EmptySize):
        decompress(blob)


def test_decompress_truncated_prefix():
    blob = envelope(b"hello")
    with pytest.raises(TruncatedEnvelope):
        decompress(blob[:3])


def test_decompress_corrupt():
    blob = struct.pack(">I", 10) + b"this is not zlib"
    with pytest.raises(CodecError) as excinfo:
        decompress(blob)
    assert excinfo.value.code == -3
    assert "corrupted" in excinfo.value.detail


def test_decompress_short_stream():
    blob = envelope(b"x" * 1000)
    with pytest.raises(CodecError) as excinfo:
        decompress(blob[:-6])
    assert excinfo.value.code == -5


@pytest.mark.parametrize("declared", [3, 11])
def test_decompress_size_mismatch(declared):
    blob = struct.pack(">I", declared) + zlib.compress(b"0123456789")
    with pytest.raises(CodecError):
        decompress(blob)


def test_decode_ascii():
    data = bytes([0x48, 0x00, 0x65, 0x00, 0x6C, 0x00, 0x6C, 0x00, 0x6F, 0x00])
    assert decode_utf16le(data, 5) == "Hello"


def test_decode_surrogate_pair():
    data = bytes([0x3D, 0xD8, 0x00, 0xDE])
    text = decode_utf16le(data, 2)
    assert text == "\U0001F600"
    assert len(text.encode("utf-8")) == 4


def test_decode_lone_high_surrogate_at_end():
    data = b"A\x00" + bytes([0x3D, 0xD8])
    assert decode_utf16le(data, 2) == "A\ud83d"


def test_decode_high_surrogate_before_bmp():
    data = bytes([0x3D, 0xD8]) + b"B\x00"
    assert decode_utf16le(data, 2) == "\ud83dB"


def test_decode_offset():
    data = b"\xff\xff" + "ab".encode("utf-16-le")
    assert decode_utf16le(data, 2, offset=2) == "ab"


def test_sanitize_separators():
    assert sanitize_name("bgm\\title\\01.ogg") == "bgm/title/01.ogg"
    assert sanitize_name("a/b") == "a/b"


def test_sanitize_drops_invalid():
    assert sanitize_name('<a>:b"|c?*') == "abc"
    assert sanitize_name("a\x01b\x1fc\x7f") == "abc"
    assert sanitize_name('<>:"|?*') == ""


def test_sanitize_keeps_text():
    assert sanitize_name("画像/é.png") == "画像/é.png"
    assert sanitize_name("\U0001F600.bin") == "\U0001F600.bin"


def test_sanitize_drops_lone_surrogate():
    assert sanitize_name("A\ud83d") == "A"


def test_sanitize_stops_at_nul():
    assert sanitize_name("bgm.ogg\x00junk") == "bgm.ogg"
    assert sanitize_name("\x00bgm.ogg") == ""


def test_sentinel():
    assert list(iter_entries(b"\x00\x00")) == []
    assert list(iter_entries(b"\x00\x00" + name_record("a") + header())) == []


def test_empty_buffer():
    assert list(iter_entries(b"")) == []
    assert list(iter_entries(b"\x01")) == []


def test_entries_in_order():
    buf = (name_record("one.bin") + header(offset=10, comprlen=3, sub_version=2) +
           name_record("two.bin") + header(offset=13, comprlen=5, dflt=b"DFLT", uncomprlen=9) +
           b"\x00\x00")
    assert list(iter_entries(buf)) == [
        Entry("one.bin", EntryHeader(2, 1, 0, 10, 3, b"    ", 0, 0)),
        Entry("two.bin", EntryHeader(0, 1, 0, 13, 5, b"DFLT", 9, 0)),
    ]


def test_invalid_name_skips_header():
    buf = (name_record('???') + header(offset=99, comprlen=99) +
           name_record("ok.bin") + header(offset=7, comprlen=3) +
           b"\x00\x00")
    entries = list(iter_entries(buf))
    assert entries == [Entry("ok.bin", EntryHeader(0, 1, 0, 7, 3, b"    ", 0, 0))]


def test_name_cut_at_nul():
    buf = (name_record("bgm.ogg\x00junk") + header(offset=5) +
           name_record("\x00hidden") + header(offset=99) +
           name_record("se.ogg") + header(offset=9) +
           b"\x00\x00")
    entries = list(iter_entries(buf))
    assert [(e.name, e.header.offset) for e in entries] == [("bgm.ogg", 5), ("se.ogg", 9)]


def test_name_normalized_in_entry():
    buf = name_record("se\\hit.ogg") + header()
    assert [e.name for e in iter_entries(buf)] == ["se/hit.ogg"]


def test_unterminated_stream():
    buf = name_record("a.bin") + header(offset=1)
    assert [e.name for e in iter_entries(buf)] == ["a.bin"]


def test_short_header_ends_walk():
    buf = name_record("a.bin") + header() + name_record("b.bin") + header()[:10]
    assert [e.name for e in iter_entries(buf)] == ["a.bin"]


def test_short_name_ends_walk():
    buf = name_record("a.bin") + header() + struct.pack("<H", 50) + b"b\x00"
    assert [e.name for e in iter_entries(buf)] == ["a.bin"]


def test_duplicates_kept():
    buf = name_record("dup") + header(offset=1) + name_record("dup") + header(offset=2)
    assert [e.header.offset for e in iter_entries(buf)] == [1, 2]


def test_decode_index():
    index = name_record("foo/bar.bin") + header(offset=4, comprlen=3) + b"\x00\x00"
    raw = bytes(xor_cipher(envelope(index)))
    assert decode_index(raw) == [Entry("foo/bar.bin", EntryHeader(0, 1, 0, 4, 3, b"    ", 0, 0))]


def test_inflate_payload():
    hdr = EntryHeader(0, 1, 0, 0, 0, b"DFLT", 5, 0)
    assert inflate_payload(envelope(b"hello"), hdr) == b"hello"
    plain = hdr._replace(dflt=b"    ")
    assert inflate_payload(b"raw", plain) == b"raw"
