from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Protocol, TypeVar

from windblog.schemas import Category, Post, Tag

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 200

TRecord = TypeVar("TRecord")


class SearchSink(Protocol):
    def index_post(self, post: Post) -> None:
        """Index one post document."""

    def index_tag(self, tag: Tag) -> None:
        """Index one tag document."""

    def index_category(self, category: Category) -> None:
        """Index one category document."""


class RebuildSource(Protocol):
    def list_tags(self, *, page: int, page_size: int) -> list[Tag]:
        """One page of tags by ascending id."""

    def list_categories(self, *, page: int, page_size: int) -> list[Category]:
        """One page of categories by ascending id."""

    def list_published_posts(self, *, page: int, page_size: int) -> list[Post]:
        """One page of published posts by ascending id, relations loaded."""


def rebuild_all(
    repo: RebuildSource,
    indexer: SearchSink,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> bool:
    """Reindex every tag, category and published post.

    Returns False on the first error. Records indexed before the error stay
    indexed; nothing is retried.
    """
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    counts = {"tags": 0, "categories": 0, "posts": 0}
    try:
        for tag in _iter_pages(repo.list_tags, page_size):
            indexer.index_tag(tag)
            counts["tags"] += 1

        for category in _iter_pages(repo.list_categories, page_size):
            indexer.index_category(category)
            counts["categories"] += 1

        for post in _iter_pages(repo.list_published_posts, page_size):
            indexer.index_post(post)
            counts["posts"] += 1
    except Exception:
        logger.exception(
            "search rebuild failed tags=%d categories=%d posts=%d",
            counts["tags"],
            counts["categories"],
            counts["posts"],
        )
        return False

    logger.info(
        "search rebuild done tags=%d categories=%d posts=%d",
        counts["tags"],
        counts["categories"],
        counts["posts"],
    )
    return True


def _iter_pages(
    fetch_page: Callable[..., list[TRecord]],
    page_size: int,
) -> Iterator[TRecord]:
    page = 1
    while True:
        batch = fetch_page(page=page, page_size=page_size)
        if not batch:
            return
        yield from batch
        page += 1
