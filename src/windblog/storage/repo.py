from __future__ import annotations

import sqlite3
from collections import defaultdict
from collections.abc import Sequence
from pathlib import Path

from windblog.schemas import Author, Category, Post, PostStatus, Tag


class Repository:
    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def set_setting(self, key: str, value: str) -> None:
        query = """
        INSERT INTO settings (key, value)
        VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """
        with self._connect() as conn:
            conn.execute(query, (key, value))

    def get_setting(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()

        if row is None:
            return None
        return row["value"]

    def upsert_author(self, author: Author) -> None:
        with self._connect() as conn:
            self._upsert_author(conn, author)

    def upsert_tag(self, tag: Tag) -> None:
        with self._connect() as conn:
            self._upsert_tag(conn, tag)

    def upsert_category(self, category: Category) -> None:
        with self._connect() as conn:
            self._upsert_category(conn, category)

    def upsert_post(self, post: Post) -> None:
        """Store a post with its authors, categories and tags; links are replaced."""
        payload = (
            post.id,
            post.title,
            post.slug,
            post.excerpt,
            post.content,
            post.ai_summary,
            post.status.value,
            post.created_at.isoformat(),
            post.primary_author.id if post.primary_author is not None else None,
        )
        query = """
        INSERT INTO posts (
            id, title, slug, excerpt, content, ai_summary, status, created_at, primary_author_id
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            title=excluded.title,
            slug=excluded.slug,
            excerpt=excluded.excerpt,
            content=excluded.content,
            ai_summary=excluded.ai_summary,
            status=excluded.status,
            created_at=excluded.created_at,
            primary_author_id=excluded.primary_author_id
        """
        with self._connect() as conn:
            if post.primary_author is not None:
                self._upsert_author(conn, post.primary_author)
            for author in post.authors:
                self._upsert_author(conn, author)
            for category in post.categories:
                self._upsert_category(conn, category)
            for tag in post.tags:
                self._upsert_tag(conn, tag)

            conn.execute(query, payload)

            conn.execute("DELETE FROM post_authors WHERE post_id = ?", (post.id,))
            conn.executemany(
                "INSERT INTO post_authors (post_id, author_id, position) VALUES (?, ?, ?)",
                [(post.id, author.id, position) for position, author in enumerate(post.authors)],
            )
            conn.execute("DELETE FROM post_categories WHERE post_id = ?", (post.id,))
            conn.executemany(
                "INSERT INTO post_categories (post_id, category_id) VALUES (?, ?)",
                [(post.id, category.id) for category in post.categories],
            )
            conn.execute("DELETE FROM post_tags WHERE post_id = ?", (post.id,))
            conn.executemany(
                "INSERT INTO post_tags (post_id, tag_id) VALUES (?, ?)",
                [(post.id, tag.id) for tag in post.tags],
            )

    def get_post(self, post_id: int) -> Post | None:
        query = f"{_POST_COLUMNS} WHERE p.id = ?"
        with self._connect() as conn:
            rows = conn.execute(query, (post_id,)).fetchall()
            posts = self._hydrate_posts(conn, rows)

        return posts[0] if posts else None

    def list_posts(self, *, offset: int = 0, limit: int | None = None) -> list[Post]:
        """Newest first, as the front page shows them."""
        if offset < 0:
            raise ValueError("offset must be >= 0")

        query = f"{_POST_COLUMNS} ORDER BY p.created_at DESC, p.id DESC"
        params: tuple[object, ...] = ()
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params = (limit, offset)
        elif offset:
            query += " LIMIT -1 OFFSET ?"
            params = (offset,)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
            return self._hydrate_posts(conn, rows)

    def list_published_posts(self, *, page: int, page_size: int) -> list[Post]:
        offset = _page_offset(page, page_size)
        query = f"{_POST_COLUMNS} WHERE p.status = ? ORDER BY p.id ASC LIMIT ? OFFSET ?"
        with self._connect() as conn:
            rows = conn.execute(
                query, (PostStatus.PUBLISHED.value, page_size, offset)
            ).fetchall()
            return self._hydrate_posts(conn, rows)

    def list_tags(self, *, page: int, page_size: int) -> list[Tag]:
        offset = _page_offset(page, page_size)
        query = """
        SELECT id, name, slug, description
        FROM tags
        ORDER BY id ASC
        LIMIT ? OFFSET ?
        """
        with self._connect() as conn:
            rows = conn.execute(query, (page_size, offset)).fetchall()

        return [self._row_to_tag(row) for row in rows]

    def list_categories(self, *, page: int, page_size: int) -> list[Category]:
        offset = _page_offset(page, page_size)
        query = """
        SELECT id, name, slug, description
        FROM categories
        ORDER BY id ASC
        LIMIT ? OFFSET ?
        """
        with self._connect() as conn:
            rows = conn.execute(query, (page_size, offset)).fetchall()

        return [self._row_to_category(row) for row in rows]

    def _hydrate_posts(self, conn: sqlite3.Connection, rows: Sequence[sqlite3.Row]) -> list[Post]:
        if not rows:
            return []

        post_ids = [row["id"] for row in rows]
        placeholders = ", ".join("?" for _ in post_ids)

        authors_by_post: dict[int, list[Author]] = defaultdict(list)
        for row in conn.execute(
            f"""
            SELECT pa.post_id, a.id, a.name, a.nickname
            FROM post_authors pa
            INNER JOIN authors a ON a.id = pa.author_id
            WHERE pa.post_id IN ({placeholders})
            ORDER BY pa.post_id ASC, pa.position ASC, a.id ASC
            """,
            post_ids,
        ):
            authors_by_post[row["post_id"]].append(self._row_to_author(row))

        categories_by_post: dict[int, list[Category]] = defaultdict(list)
        for row in conn.execute(
            f"""
            SELECT pc.post_id, c.id, c.name, c.slug, c.description
            FROM post_categories pc
            INNER JOIN categories c ON c.id = pc.category_id
            WHERE pc.post_id IN ({placeholders})
            ORDER BY pc.post_id ASC, c.id ASC
            """,
            post_ids,
        ):
            categories_by_post[row["post_id"]].append(self._row_to_category(row))

        tags_by_post: dict[int, list[Tag]] = defaultdict(list)
        for row in conn.execute(
            f"""
            SELECT pt.post_id, t.id, t.name, t.slug, t.description
            FROM post_tags pt
            INNER JOIN tags t ON t.id = pt.tag_id
            WHERE pt.post_id IN ({placeholders})
            ORDER BY pt.post_id ASC, t.id ASC
            """,
            post_ids,
        ):
            tags_by_post[row["post_id"]].append(self._row_to_tag(row))

        posts: list[Post] = []
        for row in rows:
            primary_author = None
            if row["primary_author_id"] is not None:
                primary_author = Author(
                    id=row["primary_author_id"],
                    name=row["primary_author_name"],
                    nickname=row["primary_author_nickname"],
                )
            posts.append(
                Post(
                    id=row["id"],
                    title=row["title"],
                    slug=row["slug"],
                    excerpt=row["excerpt"],
                    content=row["content"],
                    ai_summary=row["ai_summary"],
                    status=PostStatus(row["status"]),
                    created_at=row["created_at"],
                    primary_author=primary_author,
                    authors=authors_by_post.get(row["id"], []),
                    categories=categories_by_post.get(row["id"], []),
                    tags=tags_by_post.get(row["id"], []),
                )
            )
        return posts

    def _init_schema(self) -> None:
        schema_path = Path(__file__).with_name("schema.sql")
        schema = schema_path.read_text(encoding="utf-8")
        with self._connect() as conn:
            conn.executescript(schema)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @staticmethod
    def _upsert_author(conn: sqlite3.Connection, author: Author) -> None:
        conn.execute(
            """
            INSERT INTO authors (id, name, nickname)
            VALUES (?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name=excluded.name,
                nickname=excluded.nickname
            """,
            (author.id, author.name, author.nickname),
        )

    @staticmethod
    def _upsert_tag(conn: sqlite3.Connection, tag: Tag) -> None:
        conn.execute(
            """
            INSERT INTO tags (id, name, slug, description)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name=excluded.name,
                slug=excluded.slug,
                description=excluded.description
            """,
            (tag.id, tag.name, tag.slug, tag.description),
        )

    @staticmethod
    def _upsert_category(conn: sqlite3.Connection, category: Category) -> None:
        conn.execute(
            """
            INSERT INTO categories (id, name, slug, description)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name=excluded.name,
                slug=excluded.slug,
                description=excluded.description
            """,
            (category.id, category.name, category.slug, category.description),
        )

    @staticmethod
    def _row_to_author(row: sqlite3.Row) -> Author:
        return Author(id=row["id"], name=row["name"], nickname=row["nickname"])

    @staticmethod
    def _row_to_tag(row: sqlite3.Row) -> Tag:
        return Tag(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            description=row["description"],
        )

    @staticmethod
    def _row_to_category(row: sqlite3.Row) -> Category:
        return Category(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            description=row["description"],
        )


_POST_COLUMNS = """
SELECT
    p.id, p.title, p.slug, p.excerpt, p.content, p.ai_summary, p.status, p.created_at,
    p.primary_author_id,
    pa.name AS primary_author_name,
    pa.nickname AS primary_author_nickname
FROM posts p
LEFT JOIN authors pa ON pa.id = p.primary_author_id
"""


def _page_offset(page: int, page_size: int) -> int:
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    return (page - 1) * page_size
