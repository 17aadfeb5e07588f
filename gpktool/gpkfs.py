from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .errors import GPKError
from .extract import unpack_all
from .gpk import GPK
from .log import get_logger

logger = get_logger(__name__)

PACKS_DIR = "packs"

# first match wins, prefixes compared without regard to case
NAME_RULES = (
    ("SysSe", ".ogg"),
    ("Se",    ".ogg"),
    ("Voice", ".ogg"),
    ("BGM",   "_loop.ogg"),
    ("Event", ".PNG"),
)


def extension_policy(pkg):
    """Suffix the engine appends to bare asset names in package pkg."""
    for prefix, suffix in NAME_RULES:
        if pkg.upper().startswith(prefix.upper()):
            return suffix
    return ""


def normalize_name(pkg, name):
    return name + extension_policy(pkg)


def find_archives(game_root):
    """Yield every .gpk file below game_root/packs, in sorted order."""
    packs = Path(game_root) / PACKS_DIR
    if not packs.is_dir():
        logger.warning("packs directory not found at: %s", packs)
        return
    for path in sorted(packs.rglob("*")):
        if path.suffix.upper() == ".GPK" and path.is_file():
            yield path


def mount(paths):
    """Open each archive in turn; ones that fail to load are logged and skipped."""
    gpks = []
    for path in paths:
        try:
            gpk = GPK(path)
        except (GPKError, OSError) as e:
            logger.error("Failed to mount %s: %s: %s", path, type(e).__name__, e)
            continue
        logger.info("Mounted package: %s", Path(path).name)
        gpks.append(gpk)
    return gpks


class FileSystem:
    """The game's view of its data: loose files under the root, then packages."""

    def __init__(self, root, paths=None):
        self.root = Path(root)
        if paths is None:
            paths = find_archives(self.root)
        self.gpks = mount(paths)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        for gpk in self.gpks:
            gpk.close()

    def package(self, pkg):
        for gpk in self.gpks:
            if gpk.name.casefold() == pkg.casefold():
                return gpk
        return None

    def open(self, filename):
        """Open "Package/name", preferring a loose copy on disk."""
        loose = self.root / filename
        if loose.is_file():
            return loose.open("rb")

        pkg, sep, name = filename.replace("\\", "/").partition("/")
        if not sep:
            raise ValueError("invalid filename format: %s" % filename)

        gpk = self.package(pkg)
        if gpk is None:
            raise FileNotFoundError("file not found: %s" % filename)
        try:
            return gpk.open(normalize_name(gpk.name, name))
        except KeyError:
            raise FileNotFoundError("file not found: %s" % filename) from None

    def list(self, mask):
        pkg, sep, pattern = mask.replace("\\", "/").partition("/")
        if not sep:
            raise ValueError("invalid mask format: %s" % mask)
        gpk = self.package(pkg)
        return [] if gpk is None else gpk.list(pattern)

    def unpack_all(self, out_root=None, jobs=1, **kwargs):
        """Extract every mounted package into out_root/<package name>.

        Returns {package name: ExtractReport}, None for a package whose
        output directory could not be created. With jobs > 1 packages are
        extracted side by side, one package per worker.

        Two archives with the same name (e.g. in different packs/
        subdirectories) would share an output directory; later ones get a
        numbered suffix, BGM_2, BGM_3 and so on.
        """
        out_root = self.root if out_root is None else Path(out_root)

        def unpack(target):
            key, gpk = target
            logger.info("Unpacking: %s", key)
            try:
                return key, unpack_all(gpk, out_root / key, **kwargs)
            except OSError as e:
                logger.error("Failed to unpack %s: %s", key, e)
                return key, None

        targets = list(zip(self.output_names(), self.gpks))
        if jobs > 1 and len(targets) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as pool:
                return dict(pool.map(unpack, targets))
        return dict(unpack(target) for target in targets)

    def output_names(self):
        """One output directory name per mounted package, unique ignoring case."""
        taken = set()
        names = []
        for gpk in self.gpks:
            name, n = gpk.name, 1
            while name.casefold() in taken:
                n += 1
                name = "%s_%d" % (gpk.name, n)
            if n > 1:
                logger.warning("Package name %s is already taken, unpacking %s into %s",
                               gpk.name, gpk.path, name)
            taken.add(name.casefold())
            names.append(name)
        return names
