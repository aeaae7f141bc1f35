from __future__ import annotations

import logging

from windblog.schemas import Post
from windblog.storage import Repository

logger = logging.getLogger(__name__)

POSTS_PER_PAGE_KEY = "posts_per_page"
DEFAULT_POSTS_PER_PAGE = 10


class BlogService:
    """Front-page post listing."""

    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def posts_per_page(self) -> int:
        raw = self.repo.get_setting(POSTS_PER_PAGE_KEY)
        if raw is None:
            return DEFAULT_POSTS_PER_PAGE

        try:
            value = int(str(raw).strip())
        except ValueError:
            logger.warning("invalid setting %s=%r, using default", POSTS_PER_PAGE_KEY, raw)
            return DEFAULT_POSTS_PER_PAGE
        if value < 1:
            logger.warning("invalid setting %s=%r, using default", POSTS_PER_PAGE_KEY, raw)
            return DEFAULT_POSTS_PER_PAGE
        return value

    def get_posts(self, page: int) -> list[Post]:
        if page < 1:
            raise ValueError("page must be >= 1")

        limit = self.posts_per_page()
        return self.repo.list_posts(offset=(page - 1) * limit, limit=limit)
