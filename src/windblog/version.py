"""Wind Connect protocol version."""

from __future__ import annotations

VERSION = "1.0.0"
PROTOCOL_NAME = "Wind Connect"


def get_version() -> str:
    return VERSION


def get_protocol_name() -> str:
    return PROTOCOL_NAME


def get_protocol_identifier(level: str) -> str:
    """Full protocol identifier including the link level, e.g. ``CAT5E/1.0.0``."""
    normalized = level.strip()
    if not normalized:
        raise ValueError("level must not be empty")
    return f"{normalized}/{VERSION}"
