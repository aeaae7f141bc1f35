from __future__ import annotations

import logging
import os
from collections import deque
from typing import Any

import requests

from windblog.config import SearchConfig
from windblog.schemas import Category, Post, Tag, now_utc

logger = logging.getLogger(__name__)

MAX_SYNC_LOG_ENTRIES = 1000
ANALYZERS = ("standard", "ik_max_word")


class SearchIndexError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ElasticIndexer:
    """Writes posts, tags and categories into one Elasticsearch-compatible index.

    Documents are PUT by id, so indexing the same record twice is harmless.
    Failures raise SearchIndexError after being logged and recorded in the
    in-memory sync log.
    """

    def __init__(
        self,
        *,
        host: str,
        index: str,
        timeout_seconds: float = 3.0,
        username: str | None = None,
        password: str | None = None,
        session: requests.Session | None = None,
        max_log_entries: int = MAX_SYNC_LOG_ENTRIES,
    ) -> None:
        if not host.strip():
            raise ValueError("search host is empty.")
        if not index.strip():
            raise ValueError("search index is empty.")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0.")
        if max_log_entries < 1:
            raise ValueError("max_log_entries must be >= 1.")

        self.host = host.strip().rstrip("/")
        self.index = index.strip()
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self._auth = (username, password or "") if username else None
        self._sync_logs: deque[str] = deque(maxlen=max_log_entries)

    @classmethod
    def from_config(
        cls,
        config: SearchConfig,
        *,
        session: requests.Session | None = None,
    ) -> ElasticIndexer:
        password = os.getenv(config.password_env, "").strip() or None
        return cls(
            host=config.host,
            index=config.index,
            timeout_seconds=config.timeout_seconds,
            username=config.username,
            password=password,
            session=session,
        )

    def create_index(self, analyzer: str = "standard") -> None:
        if analyzer not in ANALYZERS:
            raise ValueError(f"analyzer must be one of: {', '.join(ANALYZERS)}")
        self._send(
            f"createIndex analyzer={analyzer}",
            "PUT",
            self.index,
            body=build_index_mapping(analyzer),
        )

    def index_post(self, post: Post) -> None:
        self._send(
            f"indexPost id={post.id}",
            "PUT",
            f"{self.index}/_doc/{post.id}",
            body=build_post_document(post),
        )

    def index_tag(self, tag: Tag) -> None:
        body = {
            "item_type": "tag",
            "tag_id": tag.id,
            "tag_name": tag.name,
            "tag_slug": tag.slug,
            "tag_description": tag.description,
        }
        self._send(
            f"indexTag id={tag.id} name={tag.name}",
            "PUT",
            f"{self.index}/_doc/tag_{tag.id}",
            body=body,
        )

    def index_category(self, category: Category) -> None:
        body = {
            "item_type": "category",
            "category_id": category.id,
            "category_name": category.name,
            "category_slug": category.slug,
            "category_description": category.description,
        }
        self._send(
            f"indexCategory id={category.id} name={category.name}",
            "PUT",
            f"{self.index}/_doc/category_{category.id}",
            body=body,
        )

    def delete_post(self, post_id: int) -> None:
        self._send(
            f"deletePost id={post_id}",
            "DELETE",
            f"{self.index}/_doc/{post_id}",
            allow_missing=True,
        )

    def delete_tag(self, tag_id: int) -> None:
        self._send(
            f"deleteTag id={tag_id}",
            "DELETE",
            f"{self.index}/_doc/tag_{tag_id}",
            allow_missing=True,
        )

    def delete_category(self, category_id: int) -> None:
        self._send(
            f"deleteCategory id={category_id}",
            "DELETE",
            f"{self.index}/_doc/category_{category_id}",
            allow_missing=True,
        )

    def sync_log_count(self) -> int:
        return len(self._sync_logs)

    def sync_logs(self, start: int = 0, end: int = 49) -> list[str]:
        """Newest-first log lines in the inclusive range ``[start, end]``."""
        start = max(0, start)
        end = max(start, end)
        return list(self._sync_logs)[start : end + 1]

    def clear_sync_logs(self) -> None:
        self._sync_logs.clear()

    def _send(
        self,
        label: str,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        allow_missing: bool = False,
    ) -> dict[str, Any]:
        try:
            payload = self._request(method, path, body=body, allow_missing=allow_missing)
        except SearchIndexError as exc:
            self._add_sync_log(f"[ES] {label} status={exc.status_code or 'n/a'}")
            logger.warning("search %s failed error=%s", label, exc)
            raise

        self._add_sync_log(f"[ES] {label} status=ok")
        return payload

    def _request(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None,
        allow_missing: bool,
    ) -> dict[str, Any]:
        url = f"{self.host}/{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=body,
                auth=self._auth,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise SearchIndexError(f"{method} {url} failed: {exc}") from exc

        if allow_missing and response.status_code == 404:
            return {}

        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise SearchIndexError(
                f"{method} {url} failed: {response.text[:200]}",
                status_code=response.status_code,
            ) from exc

        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}

    def _add_sync_log(self, message: str) -> None:
        timestamp = now_utc().strftime("%Y-%m-%d %H:%M:%S")
        self._sync_logs.appendleft(f"{timestamp} {message}")


def build_post_document(post: Post) -> dict[str, Any]:
    document: dict[str, Any] = {
        "item_type": "post",
        "id": post.id,
        "title": post.title,
        "excerpt": post.excerpt,
        "ai_summary": post.ai_summary,
        "content": post.content,
        "author": post.author_name,
        "created_at": post.created_at.isoformat(),
    }

    optional_lists = {
        "categories_names": [category.name for category in post.categories if category.name],
        "categories_slugs": [category.slug for category in post.categories if category.slug],
        "tags_names": [tag.name for tag in post.tags if tag.name],
        "tags_slugs": [tag.slug for tag in post.tags if tag.slug],
    }
    for field_name, values in optional_lists.items():
        if values:
            document[field_name] = values
    return document


def build_index_mapping(analyzer: str = "standard") -> dict[str, Any]:
    text_analyzer = "ik_max_word" if analyzer == "ik_max_word" else "standard"

    def _text() -> dict[str, Any]:
        return {"type": "text", "analyzer": text_analyzer}

    def _text_with_keyword() -> dict[str, Any]:
        return {**_text(), "fields": {"keyword": {"type": "keyword"}}}

    keyword = {"type": "keyword"}
    return {
        "mappings": {
            "properties": {
                "item_type": keyword,
                "id": {"type": "integer"},
                "title": _text(),
                "excerpt": _text(),
                "ai_summary": _text(),
                "content": _text(),
                "created_at": {
                    "type": "date",
                    "format": "strict_date_optional_time||epoch_millis",
                },
                "author": keyword,
                "categories_names": _text_with_keyword(),
                "tags_names": _text_with_keyword(),
                "categories_slugs": keyword,
                "tags_slugs": keyword,
                "tag_id": {"type": "integer"},
                "tag_name": _text_with_keyword(),
                "tag_slug": keyword,
                "tag_description": _text(),
                "category_id": {"type": "integer"},
                "category_name": _text_with_keyword(),
                "category_slug": keyword,
                "category_description": _text(),
            }
        }
    }
