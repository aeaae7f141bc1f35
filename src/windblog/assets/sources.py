from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterator
from pathlib import Path

from windblog.schemas import AssetMapEntry

from .registry import AssetMinifyRegistry

logger = logging.getLogger(__name__)

MINIFIABLE_EXTENSIONS = frozenset({"js", "css"})
MIN_DIR_NAME = "min"

_HASH_PATTERN = re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE)
_CHUNK_SIZE = 64 * 1024


def fingerprint_file(path: str | Path) -> str:
    """Return the MD5 hex digest used to name minified outputs."""
    digest = hashlib.md5(usedforsecurity=False)
    with Path(path).open("rb") as fp:
        for chunk in iter(lambda: fp.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def register_source(registry: AssetMinifyRegistry, path: str | Path) -> AssetMapEntry | None:
    source = Path(path)
    ext = source.suffix.lstrip(".").lower()
    if not ext:
        raise ValueError(f"source file has no extension: {source}")

    try:
        hash_value = fingerprint_file(source)
        mtime = int(source.stat().st_mtime)
    except OSError as exc:
        logger.warning("asset source unreadable path=%s error=%s", source, exc)
        return None

    registry.put(hash_value, ext, str(source), mtime)
    return AssetMapEntry(src=str(source), mtime=mtime, ext=ext)


def find_source_by_hash(public_dir: str | Path, hash_value: str, ext: str) -> Path | None:
    """Scan the public asset folders for an unminified file whose MD5 matches."""
    hash_value = hash_value.lower()
    ext = ext.lower()
    assets_dir = Path(public_dir) / "assets"

    for candidate in _iter_candidate_files([assets_dir / ext, assets_dir], ext=ext):
        try:
            if fingerprint_file(candidate) == hash_value:
                return candidate
        except OSError:
            continue
    return None


def resolve_source(
    registry: AssetMinifyRegistry,
    public_dir: str | Path,
    hash_value: str,
    ext: str,
) -> Path | None:
    """Locate the source of ``/assets/min/<hash>.<ext>``: registry first, then a scan."""
    if not _HASH_PATTERN.match(hash_value) or ext.lower() not in MINIFIABLE_EXTENSIONS:
        return None

    entry = registry.get(hash_value, ext)
    if entry is not None and entry.src:
        source = Path(entry.src)
        if source.is_file():
            return source
        logger.info("asset_map stale src=%s hash=%s", entry.src, hash_value.lower())

    return find_source_by_hash(public_dir, hash_value, ext)


def _iter_candidate_files(roots: list[Path], *, ext: str) -> Iterator[Path]:
    seen_dirs: set[Path] = set()
    for root in roots:
        if not root.is_dir():
            continue

        directories = [root]
        directories.extend(
            child
            for child in _sorted_children(root)
            if child.is_dir() and child.name != MIN_DIR_NAME
        )

        for directory in directories:
            if directory in seen_dirs:
                continue
            seen_dirs.add(directory)

            for path in _sorted_children(directory):
                if not path.is_file():
                    continue
                if path.suffix.lstrip(".").lower() != ext:
                    continue
                if ".min." in path.name.lower():
                    continue
                yield path


def _sorted_children(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir())
    except OSError:
        return []
