from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import fasteners
from pydantic import ValidationError

from windblog.config import AppConfig
from windblog.schemas import AssetMapEntry

logger = logging.getLogger(__name__)

MAP_FILENAME = "asset_min_map.json"
LOCK_SUFFIX = ".lock"

RuntimeDir = str | Path | Callable[[], str | Path]

# fcntl locks are per process, so writers inside one process also need a thread lock.
# One entry per resolved map path, never evicted: bounded by the runtime dirs in use.
_thread_locks: dict[str, threading.Lock] = {}
_thread_locks_guard = threading.Lock()


def asset_key(hash_value: str, ext: str) -> str:
    return f"{hash_value.lower()}.{ext.lower()}"


@dataclass(slots=True, frozen=True)
class StoreSnapshot:
    entries: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True, frozen=True)
class WriteOutcome:
    ok: bool
    error: str | None = None


class AssetMapMemo:
    """Parsed copy of the asset map file, loaded at most once until invalidated.

    A memo is owned by whoever creates it: one per request, worker or CLI run.
    Writes made through a registry do not update the memo, so a reader sharing
    it keeps seeing the state captured on the first load.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] | None = None

    @property
    def loaded(self) -> bool:
        return self._entries is not None

    def entries(self, loader: Callable[[], dict[str, Any]]) -> dict[str, Any]:
        if self._entries is None:
            self._entries = loader()
        return self._entries

    def invalidate(self) -> None:
        self._entries = None


class AssetMinifyRegistry:
    """Maps ``(content hash, extension)`` to the source file a minified asset came from.

    The whole map lives in one JSON file under the runtime directory. The map is
    an optimization only: every I/O problem degrades to a cache miss or a
    skipped write and is logged, never raised.
    """

    def __init__(self, runtime_dir: RuntimeDir, *, memo: AssetMapMemo | None = None) -> None:
        self._runtime_dir = runtime_dir
        self.memo = memo if memo is not None else AssetMapMemo()

    @classmethod
    def from_config(
        cls, config: AppConfig, *, memo: AssetMapMemo | None = None
    ) -> AssetMinifyRegistry:
        return cls(config.runtime_dir, memo=memo)

    @property
    def map_path(self) -> Path:
        runtime_dir = self._runtime_dir() if callable(self._runtime_dir) else self._runtime_dir
        return Path(runtime_dir) / MAP_FILENAME

    def put(self, hash_value: str, ext: str, source_path: str | Path, mtime: int) -> None:
        if not hash_value or not ext:
            raise ValueError("hash and ext must not be empty")
        if mtime < 0:
            raise ValueError("mtime must be >= 0")

        key = asset_key(hash_value, ext)
        entry = {"src": str(source_path), "mtime": int(mtime), "ext": ext.lower()}

        map_path = self.map_path
        _ensure_directory(map_path.parent)
        outcome = _locked_upsert(map_path, key, entry)
        if outcome.ok:
            logger.info("asset_map put key=%s", key)
        else:
            logger.warning("asset_map put skipped key=%s error=%s", key, outcome.error)

    def get(self, hash_value: str, ext: str) -> AssetMapEntry | None:
        key = asset_key(hash_value, ext)
        raw = self.memo.entries(self._load_for_memo).get(key)
        if raw is None:
            return None

        try:
            return AssetMapEntry.model_validate(raw)
        except ValidationError:
            logger.warning("asset_map entry malformed key=%s", key)
            return None

    def refresh(self) -> None:
        self.memo.invalidate()

    def _load_for_memo(self) -> dict[str, Any]:
        map_path = self.map_path
        snapshot = read_store(map_path)
        if not snapshot.ok:
            logger.warning("asset_map unreadable path=%s error=%s", map_path, snapshot.error)
        return snapshot.entries


def read_store(map_path: Path) -> StoreSnapshot:
    try:
        raw = map_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return StoreSnapshot()
    except (OSError, UnicodeDecodeError) as exc:
        return StoreSnapshot(error=str(exc))

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        return StoreSnapshot(error=f"invalid json: {exc}")

    if not isinstance(parsed, dict):
        return StoreSnapshot(error="map root is not an object")
    return StoreSnapshot(entries=parsed)


def write_store(map_path: Path, entries: dict[str, Any]) -> WriteOutcome:
    payload = json.dumps(entries, separators=(",", ":"))
    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{map_path.name}.",
            suffix=".tmp",
            dir=map_path.parent,
        )
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            fp.write(payload)
        os.replace(tmp_name, map_path)
    except OSError as exc:
        if tmp_name is not None:
            _discard(Path(tmp_name))
        return WriteOutcome(ok=False, error=str(exc))
    return WriteOutcome(ok=True)


def _locked_upsert(map_path: Path, key: str, entry: dict[str, Any]) -> WriteOutcome:
    lock_path = map_path.with_name(map_path.name + LOCK_SUFFIX)
    try:
        with _thread_lock_for(map_path), fasteners.InterProcessLock(str(lock_path)):
            snapshot = read_store(map_path)
            if not snapshot.ok:
                logger.warning(
                    "asset_map discarding unreadable content path=%s error=%s",
                    map_path,
                    snapshot.error,
                )
            entries = dict(snapshot.entries)
            entries[key] = entry
            return write_store(map_path, entries)
    except (OSError, RuntimeError) as exc:
        return WriteOutcome(ok=False, error=f"lock failed: {exc}")


def _thread_lock_for(map_path: Path) -> threading.Lock:
    lock_key = str(map_path.resolve())
    with _thread_locks_guard:
        lock = _thread_locks.get(lock_key)
        if lock is None:
            lock = threading.Lock()
            _thread_locks[lock_key] = lock
        return lock


def _ensure_directory(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.debug("asset_map mkdir failed path=%s error=%s", directory, exc)


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        logger.debug("asset_map temp cleanup failed path=%s", path)
