"""SQLite storage for posts, taxonomy and settings."""

from .repo import Repository

__all__ = ["Repository"]
