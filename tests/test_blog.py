from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from windblog.blog import DEFAULT_POSTS_PER_PAGE, BlogService
from windblog.schemas import Post, PostStatus
from windblog.storage import Repository


def _seed_posts(repo: Repository, count: int) -> None:
    base_time = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for post_id in range(1, count + 1):
        repo.upsert_post(
            Post(
                id=post_id,
                title=f"post {post_id}",
                status=PostStatus.PUBLISHED,
                created_at=base_time + timedelta(days=post_id),
            )
        )


def test_get_posts_pages_newest_first(tmp_path) -> None:
    repo = Repository(tmp_path / "storage.db")
    _seed_posts(repo, 5)
    repo.set_setting("posts_per_page", "2")
    blog = BlogService(repo)

    assert [post.id for post in blog.get_posts(1)] == [5, 4]
    assert [post.id for post in blog.get_posts(2)] == [3, 2]
    assert [post.id for post in blog.get_posts(3)] == [1]
    assert blog.get_posts(4) == []


def test_get_posts_uses_default_page_size(tmp_path) -> None:
    repo = Repository(tmp_path / "storage.db")
    _seed_posts(repo, DEFAULT_POSTS_PER_PAGE + 2)
    blog = BlogService(repo)

    assert len(blog.get_posts(1)) == DEFAULT_POSTS_PER_PAGE
    assert len(blog.get_posts(2)) == 2


@pytest.mark.parametrize("raw", ["abc", "0", "-3", ""])
def test_invalid_page_size_setting_falls_back_to_default(tmp_path, raw) -> None:
    repo = Repository(tmp_path / "storage.db")
    repo.set_setting("posts_per_page", raw)

    assert BlogService(repo).posts_per_page() == DEFAULT_POSTS_PER_PAGE


def test_get_posts_rejects_page_below_one(tmp_path) -> None:
    blog = BlogService(Repository(tmp_path / "storage.db"))

    with pytest.raises(ValueError, match="page must be >= 1"):
        blog.get_posts(0)
