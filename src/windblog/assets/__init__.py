"""Minified asset bookkeeping: hash -> source map and source lookup."""

from .registry import MAP_FILENAME, AssetMapMemo, AssetMinifyRegistry, asset_key
from .sources import (
    find_source_by_hash,
    fingerprint_file,
    register_source,
    resolve_source,
)

__all__ = [
    "MAP_FILENAME",
    "AssetMapMemo",
    "AssetMinifyRegistry",
    "asset_key",
    "find_source_by_hash",
    "fingerprint_file",
    "register_source",
    "resolve_source",
]
