from collections import namedtuple
from pathlib import Path

from .errors import ExtractError, GPKError
from .gpkcodec import inflate_payload
from .log import get_logger

logger = get_logger(__name__)

ExtractReport = namedtuple("ExtractReport", "extracted failed")

OGG_MAGIC = b"OggS"


def output_path(out_root, name):
    """Map an entry name onto a path below out_root.

    Empty and "." segments are dropped; ".." is refused so nothing lands
    outside the output tree.
    """
    parts = [part for part in name.split("/") if part not in ("", ".")]
    if not parts:
        raise ValueError("empty path")
    if ".." in parts:
        raise ValueError("path escapes the output directory")
    return Path(out_root).joinpath(*parts)


def strip_ogg_header(data, header):
    """Drop the engine's per-file header in front of an Ogg stream.

    comprheadlen bytes are skipped, then the data is advanced to the first
    OggS page if there is one.
    """
    skip = header.comprheadlen
    if skip <= 0 or skip >= len(data):
        return data
    data = data[skip:]
    start = data.find(OGG_MAGIC)
    if start > 0:
        data = data[start:]
    return data


def is_ogg(name):
    return name.upper().endswith(".OGG")


def extract_entry(archive, entry, out_root, inflate=False, strip_ogg=False):
    try:
        path = output_path(out_root, entry.name)
    except ValueError as e:
        raise ExtractError(entry.name, e) from e

    path.parent.mkdir(parents=True, exist_ok=True)

    data = archive.read(entry)
    if inflate:
        data = inflate_payload(data, entry.header)
    if strip_ogg and is_ogg(entry.name):
        data = strip_ogg_header(data, entry.header)

    with path.open("wb") as out:
        out.write(data)
    return path


def unpack_all(archive, out_root, inflate=False, strip_ogg=False, progress_fn=None):
    """Extract every entry of an open archive below out_root.

    A failing entry is logged and recorded; the remaining entries are still
    written. progress_fn, if given, is called as progress_fn(done, total).
    """
    out_root = Path(out_root)
    out_root.mkdir(parents=True, exist_ok=True)

    extracted = []
    failed = []
    total = len(archive.index)
    for done, entry in enumerate(archive.index, 1):
        try:
            path = extract_entry(archive, entry, out_root, inflate=inflate, strip_ogg=strip_ogg)
        except ExtractError as e:
            failed.append(e)
            logger.error("%s: failed to extract %s", archive.name, e)
        except (OSError, GPKError) as e:
            err = ExtractError(entry.name, e)
            failed.append(err)
            logger.error("%s: failed to extract %s", archive.name, err)
        else:
            extracted.append(path)
            logger.debug("Extracted: %s", entry.name)
        if progress_fn:
            progress_fn(done, total)

    if failed:
        logger.warning("%s: extracted %d files, %d failed", archive.name, len(extracted), len(failed))
    else:
        logger.info("%s: extracted %d files", archive.name, len(extracted))
    return ExtractReport(extracted, failed)
