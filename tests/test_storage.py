from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from windblog.schemas import Author, Category, Post, PostStatus, Tag
from windblog.storage import Repository

BASE_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _post(post_id: int, *, status: PostStatus = PostStatus.PUBLISHED, **overrides) -> Post:
    payload = {
        "id": post_id,
        "title": f"post {post_id}",
        "slug": f"post-{post_id}",
        "status": status,
        "created_at": BASE_TIME + timedelta(hours=post_id),
    }
    payload.update(overrides)
    return Post(**payload)


def test_repository_upsert_post_with_relations(tmp_path) -> None:
    repo = Repository(tmp_path / "storage.db")
    alice = Author(id=1, name="alice", nickname="Alice")
    bob = Author(id=2, name="bob")
    post = _post(
        10,
        primary_author=bob,
        authors=[alice, bob],
        categories=[Category(id=3, name="Tech", slug="tech")],
        tags=[Tag(id=5, name="Python", slug="python"), Tag(id=4, name="CI", slug="ci")],
    )

    repo.upsert_post(post)
    repo.upsert_post(post)
    stored = repo.get_post(10)

    assert stored is not None
    assert stored.primary_author == bob
    assert [author.id for author in stored.authors] == [1, 2]
    assert [category.slug for category in stored.categories] == ["tech"]
    assert [tag.id for tag in stored.tags] == [4, 5]
    assert stored.created_at == post.created_at


def test_repository_upsert_post_replaces_links(tmp_path) -> None:
    repo = Repository(tmp_path / "storage.db")
    repo.upsert_post(_post(1, tags=[Tag(id=1, name="a"), Tag(id=2, name="b")]))

    repo.upsert_post(_post(1, title="renamed", tags=[Tag(id=2, name="b")]))

    stored = repo.get_post(1)
    assert stored is not None
    assert stored.title == "renamed"
    assert [tag.id for tag in stored.tags] == [2]
    assert [tag.id for tag in repo.list_tags(page=1, page_size=10)] == [1, 2]


def test_repository_get_missing_post(tmp_path) -> None:
    assert Repository(tmp_path / "storage.db").get_post(404) is None


def test_list_published_posts_pages_by_ascending_id(tmp_path) -> None:
    repo = Repository(tmp_path / "storage.db")
    for post_id in [5, 3, 1, 4, 2]:
        repo.upsert_post(_post(post_id))
    repo.upsert_post(_post(6, status=PostStatus.DRAFT))

    pages = [
        [post.id for post in repo.list_published_posts(page=page, page_size=2)]
        for page in range(1, 5)
    ]

    assert pages == [[1, 2], [3, 4], [5], []]


def test_list_posts_orders_newest_first(tmp_path) -> None:
    repo = Repository(tmp_path / "storage.db")
    repo.upsert_post(_post(1, created_at=BASE_TIME))
    repo.upsert_post(_post(2, created_at=BASE_TIME + timedelta(days=1)))
    repo.upsert_post(_post(3, created_at=BASE_TIME))

    assert [post.id for post in repo.list_posts()] == [2, 3, 1]
    assert [post.id for post in repo.list_posts(offset=1, limit=1)] == [3]
    assert [post.id for post in repo.list_posts(offset=2)] == [1]


def test_list_tags_and_categories_paginate(tmp_path) -> None:
    repo = Repository(tmp_path / "storage.db")
    for index in range(1, 4):
        repo.upsert_tag(Tag(id=index, name=f"tag-{index}"))
        repo.upsert_category(Category(id=index, name=f"cat-{index}"))

    assert [tag.id for tag in repo.list_tags(page=2, page_size=2)] == [3]
    assert [cat.id for cat in repo.list_categories(page=1, page_size=2)] == [1, 2]


def test_settings_roundtrip(tmp_path) -> None:
    repo = Repository(tmp_path / "storage.db")

    assert repo.get_setting("posts_per_page") is None
    repo.set_setting("posts_per_page", "5")
    repo.set_setting("posts_per_page", "7")
    assert repo.get_setting("posts_per_page") == "7"


@pytest.mark.parametrize(("page", "page_size"), [(0, 10), (1, 0)])
def test_pagination_rejects_invalid_arguments(tmp_path, page, page_size) -> None:
    repo = Repository(tmp_path / "storage.db")

    with pytest.raises(ValueError):
        repo.list_published_posts(page=page, page_size=page_size)
