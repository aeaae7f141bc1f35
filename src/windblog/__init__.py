"""windblog service helpers."""

from .config import AppConfig, load_config
from .schemas import AssetMapEntry, Author, Category, Post, PostStatus, Tag

__all__ = [
    "AppConfig",
    "AssetMapEntry",
    "Author",
    "Category",
    "Post",
    "PostStatus",
    "Tag",
    "load_config",
]
