import re
import unicodedata
import zlib

import numpy as np

from struct import unpack_from

from .errors import CodecError, EmptySize, TruncatedEnvelope
from .gpkstructs import CIPHERCODE, DFLT, HEADER_SIZE, Entry, EntryHeader, GPKEntryHeader, GPKEnvelope

int16ul = np.dtype("<u2")

KEY = np.frombuffer(CIPHERCODE, dtype=np.uint8)

HOSTILE = frozenset('<>:"|?*')

_ZLIB_ERRORS = {
    -2: "inconsistent stream state",
    -3: "input data corrupted",
    -4: "insufficient memory",
    -5: "insufficient buffer space",
}
_ZLIB_CODE = re.compile(r"Error (-?\d+)")


def xor_cipher(data):
    """XOR data against the repeating 16 byte key.

    A bytearray is transformed in place and handed back; any other buffer
    is copied first. The transform is its own inverse.
    """
    if not isinstance(data, bytearray):
        data = bytearray(data)
    if data:
        buf = np.frombuffer(data, dtype=np.uint8)
        np.bitwise_xor(buf, np.resize(KEY, len(buf)), out=buf)
    return data


def decompress(blob):
    """Unwrap a size prefixed zlib envelope.

    The first four bytes are the inflated size, big endian. The result is
    exactly that long or the call fails.
    """
    if len(blob) < 4:
        raise TruncatedEnvelope("envelope is %d bytes, size prefix needs 4" % len(blob))

    env = GPKEnvelope.parse(blob)
    if env.size == 0:
        raise EmptySize("envelope declares an uncompressed size of 0")

    try:
        data = zlib.decompress(env.data, zlib.MAX_WBITS, env.size)
    except zlib.error as e:
        match = _ZLIB_CODE.search(str(e))
        code = int(match.group(1)) if match else None
        detail = str(e)
        if code in _ZLIB_ERRORS:
            detail = "%s (%s)" % (detail, _ZLIB_ERRORS[code])
        raise CodecError(detail, code) from e
    except MemoryError as e:
        raise CodecError("insufficient memory for %d bytes" % env.size, -4) from e

    if len(data) != env.size:
        raise CodecError("inflated to %d bytes, envelope declares %d" % (len(data), env.size))
    return data


def decode_utf16le(data, count, offset=0):
    if count == 0:
        return ""
    units = np.frombuffer(data, dtype=int16ul, count=count, offset=offset).tolist()

    chars = []
    i = 0
    while i < count:
        c = units[i]
        if 0xD800 <= c <= 0xDBFF and i + 1 < count:
            low = units[i + 1]
            if 0xDC00 <= low <= 0xDFFF:
                chars.append(chr(0x10000 + ((c & 0x3FF) << 10) + (low & 0x3FF)))
                i += 2
                continue
        # lone surrogates pass through as plain code units
        chars.append(chr(c))
        i += 1
    return "".join(chars)


def sanitize_name(name):
    # the engine stops reading a name at its first NUL
    name = name.partition("\x00")[0]
    out = []
    for c in name:
        if c in "\\/":
            out.append("/")
        elif c in HOSTILE or unicodedata.category(c) in ("Cc", "Cs"):
            continue
        else:
            out.append(c)
    return "".join(out)


def read_header(buf, pos=0):
    hdr = GPKEntryHeader.parse(bytes(buf[pos:pos + HEADER_SIZE]))
    return EntryHeader(*(hdr[field] for field in EntryHeader._fields))


def iter_entries(buf):
    """Walk the decompressed index.

    A zero length, or a record cut short at the end of the buffer, ends the
    walk. Neither is an error: real archives end this way.
    """
    pos = 0
    end = len(buf)
    while end - pos >= 2:
        count, = unpack_from("<H", buf, pos)
        pos += 2
        if count == 0:
            break
        if pos + count * 2 > end:
            break

        name = sanitize_name(decode_utf16le(buf, count, pos))
        pos += count * 2

        if not name:
            pos += HEADER_SIZE
            continue

        if pos + HEADER_SIZE > end:
            break
        header = read_header(buf, pos)
        pos += HEADER_SIZE

        yield Entry(name, header)


def decode_index(raw):
    return list(iter_entries(decompress(xor_cipher(raw))))


def inflate_payload(data, header):
    """Decode a DFLT flagged payload; anything else comes back untouched."""
    if bytes(header.dflt) != DFLT:
        return data
    return decompress(data)
