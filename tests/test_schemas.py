from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from windblog.config import AppConfig, load_config
from windblog.schemas import AssetMapEntry, Author, Post, PostStatus

ROOT = Path(__file__).resolve().parents[1]


def test_asset_map_entry_lowercases_ext_and_rejects_negative_mtime() -> None:
    entry = AssetMapEntry.model_validate_json('{"src": "/a/App.CSS", "mtime": 5, "ext": "CSS"}')

    assert entry.ext == "css"
    assert entry.src == "/a/App.CSS"
    with pytest.raises(ValueError):
        AssetMapEntry(src="a.js", mtime=-1, ext="js")


def test_post_created_at_is_normalized_to_utc() -> None:
    naive = Post(id=1, title="naive", created_at=datetime(2026, 1, 1, 9, 0))
    shifted = Post(
        id=2,
        title="kst",
        created_at=datetime(2026, 1, 1, 18, 0, tzinfo=timezone(timedelta(hours=9))),
    )

    assert naive.created_at.tzinfo is not None
    assert shifted.created_at == datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
    assert naive.status == PostStatus.DRAFT


def test_post_author_name_prefers_primary_then_first_author() -> None:
    alice = Author(id=1, name="alice", nickname="Alice")
    bob = Author(id=2, name="bob")

    assert Post(id=1, title="t", primary_author=bob, authors=[alice]).author_name == "bob"
    assert Post(id=1, title="t", authors=[alice, bob]).author_name == "Alice"
    assert Post(id=1, title="t").author_name == "未知作者"


def test_config_example_load_and_validate() -> None:
    config = load_config(ROOT / "config" / "config.example.yaml")

    assert isinstance(config, AppConfig)
    assert config.runtime_path == "runtime"
    assert config.search.host == "http://127.0.0.1:9200"
    assert config.search.analyzer == "ik_max_word"
    assert config.search.rebuild_page_size == 200


def test_config_defaults_without_file() -> None:
    config = load_config(None)

    assert config.runtime_dir() == Path("runtime")
    assert config.database.path == "data/storage/windblog.db"
    assert config.search.enabled is False


def test_config_json_is_accepted(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"runtime_path": "/tmp/rt"}), encoding="utf-8")

    assert load_config(path).runtime_path == "/tmp/rt"


@pytest.mark.parametrize(
    "payload",
    [
        {"unknown": True},
        {"search": {"analyzer": "whitespace"}},
        {"search": {"rebuild_page_size": 0}},
        {"runtime_path": "  "},
    ],
)
def test_invalid_config_raises_value_error(tmp_path, payload) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(path)


def test_config_root_must_be_object(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="root must be an object"):
        load_config(path)
