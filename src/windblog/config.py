from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)


class DatabaseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = "data/storage/windblog.db"

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("database.path must not be empty")
        return normalized


class SearchConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    host: str = "http://127.0.0.1:9200"
    index: str = "windblog-posts"
    timeout_seconds: float = Field(default=3.0, gt=0.0)
    username: str | None = None
    password_env: str = "WINDBLOG_ES_PASSWORD"
    analyzer: Literal["standard", "ik_max_word"] = "standard"
    rebuild_page_size: int = Field(default=200, ge=1)

    @field_validator("host", "index")
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("search.host and search.index must not be empty")
        return normalized

    @field_validator("host")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    runtime_path: str = "runtime"
    public_path: str = "public"
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)

    @field_validator("runtime_path", "public_path")
    @classmethod
    def validate_directories(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("runtime_path and public_path must not be empty")
        return normalized

    def runtime_dir(self) -> Path:
        return Path(self.runtime_path)


def load_config(path: str | Path | None = None) -> AppConfig:
    if path is None:
        return AppConfig()

    raw = Path(path).read_text(encoding="utf-8")
    payload = _parse_yaml_or_json(raw)
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def _parse_yaml_or_json(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = _parse_yaml(raw)
    if not isinstance(parsed, dict):
        raise ValueError("Configuration root must be an object.")
    return parsed


def _parse_yaml(raw: str) -> dict[str, Any]:
    import yaml

    parsed = yaml.safe_load(raw)
    if not isinstance(parsed, dict):
        raise ValueError("Configuration root must be an object.")
    return parsed
