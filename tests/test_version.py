from __future__ import annotations

import pytest

from windblog.version import (
    PROTOCOL_NAME,
    VERSION,
    get_protocol_identifier,
    get_protocol_name,
    get_version,
)


def test_protocol_version_constants() -> None:
    assert get_version() == VERSION == "1.0.0"
    assert get_protocol_name() == PROTOCOL_NAME == "Wind Connect"


def test_protocol_identifier_includes_level() -> None:
    assert get_protocol_identifier("CAT5E") == "CAT5E/1.0.0"
    assert get_protocol_identifier(" CAT6 ") == "CAT6/1.0.0"


def test_protocol_identifier_requires_level() -> None:
    with pytest.raises(ValueError):
        get_protocol_identifier("  ")
