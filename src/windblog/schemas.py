from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_AUTHOR = "未知作者"


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def _normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DTOBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PostStatus(StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"


class AssetMapEntry(DTOBase):
    """One minified-asset record as persisted in the asset map file."""

    src: str
    mtime: int = Field(ge=0)
    ext: str

    @field_validator("ext", mode="after")
    @classmethod
    def lower_ext(cls, value: str) -> str:
        return value.lower()


class Author(DTOBase):
    id: int
    name: str
    nickname: str | None = None

    @property
    def display_name(self) -> str:
        return self.nickname or self.name or UNKNOWN_AUTHOR


class Tag(DTOBase):
    id: int
    name: str
    slug: str = ""
    description: str = ""


class Category(DTOBase):
    id: int
    name: str
    slug: str = ""
    description: str = ""


class Post(DTOBase):
    id: int
    title: str
    slug: str = ""
    excerpt: str = ""
    content: str = ""
    ai_summary: str = ""
    status: PostStatus = PostStatus.DRAFT
    created_at: datetime = Field(default_factory=now_utc)
    primary_author: Author | None = None
    authors: list[Author] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)

    @field_validator("created_at", mode="after")
    @classmethod
    def validate_created_at(cls, value: datetime) -> datetime:
        return _normalize_datetime(value)

    @property
    def author_name(self) -> str:
        if self.primary_author is not None:
            return self.primary_author.display_name
        if self.authors:
            return self.authors[0].display_name
        return UNKNOWN_AUTHOR
