#!/usr/bin/env python3

import logging
import sys

from pathlib import Path
from argparse import ArgumentParser

from .errors import GPKError
from .gpk import read_index
from .gpkfs import FileSystem, find_archives
from .log import get_logger, set_level

logger = get_logger(__name__)

argparser = ArgumentParser(description="Unpack the GPK archives of a game install.")
argparser.add_argument("root", type=Path,
                       help="a .gpk archive, or the game directory holding packs/")
argparser.add_argument("-o", "--out", type=Path, default=None,
                       help="output directory (default: the game directory, "
                            "or the archive's own directory)")
argparser.add_argument("-l", "--list", action="store_true",
                       help="list archive contents instead of extracting")
argparser.add_argument("-d", "--decrypt-only", action="store_true",
                       help="write each archive's deciphered index next to it, extract nothing")
argparser.add_argument("-j", "--jobs", type=int, default=1,
                       help="unpack this many archives at once")
argparser.add_argument("--inflate", action="store_true",
                       help="decompress DFLT flagged entries")
argparser.add_argument("--strip-ogg", action="store_true",
                       help="remove the engine header in front of .ogg entries")
verbosity = argparser.add_mutually_exclusive_group()
verbosity.add_argument("-v", "--verbose", action="store_true")
verbosity.add_argument("-q", "--quiet", action="store_true",
                       help="only report warnings and errors")


def print_listing(gpk, out=None):
    out = out or sys.stdout
    print(gpk.name, file=out)
    print("Offset", "Length", "Compressed", "Name", sep='\t', file=out)
    for entry in gpk.index:
        hdr = entry.header
        print(hex(hdr.offset), hdr.comprlen, hdr.dflt.decode("latin-1").strip("\x00 "),
              entry.name, sep='\t', file=out)


def dump_index(path):
    """Write the plain index of one archive to <name>_decrypted.pidx beside it."""
    out = path.with_name(path.stem + "_decrypted.pidx")
    out.write_bytes(read_index(path))
    logger.info("Wrote index of %s to %s", path.name, out)
    return out


def decrypt_only(root):
    paths = [root] if root.is_file() else list(find_archives(root))
    written = 0
    for path in paths:
        try:
            dump_index(path)
        except (GPKError, OSError) as e:
            logger.error("Failed to decrypt %s: %s: %s", path, type(e).__name__, e)
            continue
        written += 1
    if not written:
        logger.error("No index could be decrypted from %s", root)
        return 1
    return 0


def main(argv=None):
    args = argparser.parse_args(argv)

    if args.verbose:
        set_level(logging.DEBUG)
    elif args.quiet:
        set_level(logging.WARNING)

    root = args.root
    if not root.exists():
        logger.error("Path does not exist: %s", root)
        return 1

    if args.decrypt_only:
        return decrypt_only(root)

    if root.is_file():
        logger.info("Single file mode: %s", root)
        game, paths = root.parent, [root]
    elif root.is_dir():
        game, paths = root, None
    else:
        logger.error("Path is neither a file nor a directory: %s", root)
        return 1

    with FileSystem(game, paths=paths) as fs:
        if not fs.gpks:
            logger.error("No archive could be loaded from %s", root)
            return 1

        if args.list:
            for gpk in fs.gpks:
                print_listing(gpk)
            return 0

        reports = fs.unpack_all(args.out, jobs=args.jobs,
                                inflate=args.inflate, strip_ogg=args.strip_ogg)

    if not any(report is not None for report in reports.values()):
        return 1
    logger.info("Extraction completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
