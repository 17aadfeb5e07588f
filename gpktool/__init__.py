"""
gpktool - read the GPK package archives of Overflow's School Days engine.

Layout: entry payloads, then an XOR obfuscated, zlib compressed index,
then a 32 byte trailer ("STKFile0PIDX", index length, "STKFile0PACKFILE").
"""

from .errors import (
    GPKError, FormatError, BadSignature, TruncatedArchive,
    DecodeError, EmptySize, TruncatedEnvelope, CodecError,
    ExtractError, TruncatedPayload,
)
from .gpk import GPK, ArchiveIndex, Entry, EntryHeader, read_trailer, read_index, display_name
from .gpkcodec import xor_cipher, decompress, decode_utf16le, sanitize_name, iter_entries, decode_index
from .extract import ExtractReport, unpack_all
from .gpkfs import FileSystem, find_archives, normalize_name

__all__ = [
    "GPK", "ArchiveIndex", "Entry", "EntryHeader", "read_trailer", "read_index", "display_name",
    "xor_cipher", "decompress", "decode_utf16le", "sanitize_name", "iter_entries", "decode_index",
    "ExtractReport", "unpack_all",
    "FileSystem", "find_archives", "normalize_name",
    "GPKError", "FormatError", "BadSignature", "TruncatedArchive",
    "DecodeError", "EmptySize", "TruncatedEnvelope", "CodecError",
    "ExtractError", "TruncatedPayload",
]
