import fnmatch
import io
import os

from construct import ConstError, StreamError

from .errors import BadSignature, TruncatedArchive, TruncatedPayload
from .gpkcodec import decode_index, decompress, xor_cipher
from .gpkstructs import TRAILER_SIZE, Entry, EntryHeader, GPKTrailer
from .log import get_logger

logger = get_logger(__name__)

__all__ = ["GPK", "ArchiveIndex", "Entry", "EntryHeader", "read_trailer", "read_index", "display_name"]


def read_trailer(fd, length):
    """Read and check the 32 byte trailer at the end of an archive.

    Returns (trailer, index_offset, index_length). The index blob sits
    directly in front of the trailer.
    """
    if length < TRAILER_SIZE:
        raise TruncatedArchive("file is %d bytes, trailer needs %d" % (length, TRAILER_SIZE))

    fd.seek(length - TRAILER_SIZE)
    raw = fd.read(TRAILER_SIZE)
    if len(raw) != TRAILER_SIZE:
        raise TruncatedArchive("short trailer read: %d of %d bytes" % (len(raw), TRAILER_SIZE))

    try:
        trailer = GPKTrailer.parse(raw)
    except ConstError as e:
        raise BadSignature("broken signature") from e
    except StreamError as e:
        raise TruncatedArchive(str(e)) from e

    offset = length - TRAILER_SIZE - trailer.pidx_length
    if offset < 0:
        raise TruncatedArchive("index of %d bytes does not fit in a %d byte file"
                               % (trailer.pidx_length, length))
    return trailer, offset, trailer.pidx_length


def read_index_blob(fd, offset, size):
    blob = bytearray(size)
    fd.seek(offset)
    got = fd.readinto(blob)
    if got != size:
        raise TruncatedArchive("short index read: %d of %d bytes" % (got, size))
    return blob


def read_index(path):
    """Return the plain index of the archive at path: deciphered and inflated, not parsed."""
    with open(path, "rb") as fd:
        length = os.fstat(fd.fileno()).st_size
        _, offset, size = read_trailer(fd, length)
        blob = read_index_blob(fd, offset, size)
    return decompress(xor_cipher(blob))


def display_name(path):
    path = os.fspath(path)
    base = path.replace("\\", "/").rsplit("/", 1)[-1]
    return os.path.splitext(base)[0]


def match_name(pattern, name):
    """Case insensitive * and ? matching, an empty pattern matches anything."""
    if pattern in ("", "*"):
        return True
    return fnmatch.fnmatchcase(name.upper(), pattern.upper())


class ArchiveIndex:
    """Entries in on-disk order, with a name lookup built once up front.

    Duplicate names are all kept; lookups resolve to the first one.
    """
    __slots__ = "path", "_entries", "_names"

    def __init__(self, entries=(), path=None):
        self.path = None if path is None else os.fspath(path)
        self._entries = tuple(entries)
        names = {}
        for idx, entry in enumerate(self._entries):
            names.setdefault(entry.name.casefold(), idx)
        self._names = names

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, idx):
        return self._entries[idx]

    def __contains__(self, name):
        return isinstance(name, str) and name.casefold() in self._names

    def __repr__(self):
        return "<ArchiveIndex %d entries>" % len(self._entries)

    def display_name(self):
        """Archive file name without its directory or extension."""
        return display_name(self.path) if self.path is not None else ""

    def find(self, name):
        idx = self._names.get(name.casefold())
        return None if idx is None else self._entries[idx]

    def names(self):
        return [entry.name for entry in self._entries]


class GPK:
    """An open archive: the file handle plus its parsed index.

    Payloads are read back from the file on demand, so the handle stays
    open until close().
    """
    __slots__ = "path", "index", "_fd"

    def __init__(self, path):
        self.path = os.fspath(path)
        self._fd = None
        fd = open(self.path, "rb")
        try:
            length = os.fstat(fd.fileno()).st_size
            _, offset, size = read_trailer(fd, length)
            blob = read_index_blob(fd, offset, size)
            self.index = ArchiveIndex(decode_index(blob), self.path)
        except BaseException:
            fd.close()
            raise
        self._fd = fd
        logger.info("Loaded %d entries from %s", len(self.index), self.name)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __repr__(self):
        return "<GPK %s, %d entries>" % (self.name, len(self.index))

    @property
    def name(self):
        return self.index.display_name()

    @property
    def closed(self):
        return self._fd is None

    @property
    def entries(self):
        return self.index

    def close(self):
        if self._fd is not None:
            self._fd.close()
            self._fd = None

    def read(self, entry):
        """Return the stored bytes of one entry, exactly as found in the archive."""
        if self._fd is None:
            raise ValueError("I/O operation on closed archive")
        hdr = entry.header
        self._fd.seek(hdr.offset)
        data = self._fd.read(hdr.comprlen)
        if len(data) != hdr.comprlen:
            raise TruncatedPayload(entry.name, "read %d of %d bytes at offset %d"
                                   % (len(data), hdr.comprlen, hdr.offset))
        return data

    def open(self, name):
        entry = self.index.find(name)
        if entry is None:
            raise KeyError("file not found in package %s: %s" % (self.name, name))
        return io.BytesIO(self.read(entry))

    def list(self, pattern="*"):
        return [entry.name for entry in self.index if match_name(pattern, entry.name)]
