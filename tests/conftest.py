import struct
import zlib

import pytest

from gpktool.gpkcodec import xor_cipher
from gpktool.gpkstructs import GPKEntryHeader, GPKEnvelope, GPKTrailer


def header(offset=0, comprlen=0, sub_version=0, dflt=b"    ", uncomprlen=0, comprheadlen=0):
    return GPKEntryHeader.build(dict(
        sub_version=sub_version,
        version=1,
        zero=0,
        offset=offset,
        comprlen=comprlen,
        dflt=dflt,
        uncomprlen=uncomprlen,
        comprheadlen=comprheadlen,
    ))


def name_record(name):
    raw = name.encode("utf-16-le")
    return struct.pack("<H", len(raw) // 2) + raw


def envelope(data):
    return GPKEnvelope.build(dict(size=len(data), data=zlib.compress(data)))


def trailer(pidx_length):
    return GPKTrailer.build(dict(pidx_length=pidx_length))


def build_archive(files, terminate=True, lead=b"GPKDATA\x00"):
    """Lay out payloads, then the encrypted index, then the trailer.

    files holds (name, payload) or (name, payload, header overrides).
    """
    body = bytearray(lead)
    index = bytearray()
    for name, payload, *extra in files:
        fields = dict(offset=len(body), comprlen=len(payload))
        if extra:
            fields.update(extra[0])
        body += payload
        index += name_record(name) + header(**fields)
    if terminate:
        index += b"\x00\x00"
    blob = xor_cipher(envelope(bytes(index)))
    return bytes(body) + bytes(blob) + trailer(len(blob))


@pytest.fixture
def write_archive(tmp_path):
    def write(files, name="test.GPK", **kwargs):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_archive(files, **kwargs))
        return path
    return write
