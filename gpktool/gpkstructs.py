from collections import namedtuple

from construct import *

TRAILER_IDENT0 = b"STKFile0PIDX"
TRAILER_IDENT1 = b"STKFile0PACKFILE"

CIPHERCODE = bytes((
    0x82, 0xEE, 0x1D, 0xB3,
    0x57, 0xE9, 0x2C, 0xC2,
    0x2F, 0x54, 0x7B, 0x10,
    0x4C, 0x9A, 0x75, 0x49,
))

DFLT = b"DFLT"

# Both idents fill their fields exactly, so a Const match is the
# prefix comparison the engine does with strncmp.
GPKTrailer = Struct(
    "sig0"        / Const(TRAILER_IDENT0),
    "pidx_length" / Int32ul,
    "sig1"        / Const(TRAILER_IDENT1),
)

GPKEntryHeader = Struct(
    "sub_version"  / Int16ul, # same as the script.gpk.* suffix
    "version"      / Int16ul, # always 1
    "zero"         / Int16ul, # always 0
    "offset"       / Int32ul,
    "comprlen"     / Int32ul,
    "dflt"         / Bytes(4), # DFLT or blank
    "uncomprlen"   / Int32ul, # 0 unless dflt
    "comprheadlen" / Int8ul,
)

# qCompress style: big endian size, then a zlib stream
GPKEnvelope = Struct(
    "size" / Int32ub,
    "data" / GreedyBytes,
)

EntryHeader = namedtuple("EntryHeader", """
    sub_version
    version
    zero
    offset
    comprlen
    dflt
    uncomprlen
    comprheadlen
""")

Entry = namedtuple("Entry", "name header")

TRAILER_SIZE = GPKTrailer.sizeof()
HEADER_SIZE = GPKEntryHeader.sizeof()

__all__ = [
    "GPKTrailer", "GPKEntryHeader", "GPKEnvelope", "EntryHeader", "Entry",
    "TRAILER_IDENT0", "TRAILER_IDENT1", "CIPHERCODE", "DFLT",
    "TRAILER_SIZE", "HEADER_SIZE",
]
