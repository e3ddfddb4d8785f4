"""Post, follow and connection schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

PostVisibility = Literal["PUBLIC", "COLLEGE"]
PostType = Literal["STANDARD", "BADGE_AWARD", "SHARE"]
FeedScope = Literal["college", "global", "following"]


class PostCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    visibility: PostVisibility = "COLLEGE"
    type: PostType = "STANDARD"
    tags: list[str] = Field(default_factory=list, max_length=20)


class PostUpdate(BaseModel):
    """Partial post edit by its author."""

    content: str | None = Field(None, min_length=1, max_length=5000)
    visibility: PostVisibility | None = None
    type: PostType | None = None
    tags: list[str] | None = Field(None, max_length=20)

    @field_validator("content", "visibility", "type", "tags")
    @classmethod
    def reject_null(cls, v: object) -> object:
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    college_id: str
    author_id: str
    author_name: str
    author_avatar: str | None
    author_role: str
    content: str
    visibility: str
    type: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime | None
    like_count: int = 0
    comment_count: int = 0
    liked_by_me: bool = False
    bookmarked_by_me: bool = False


class FeedResponse(BaseModel):
    items: list[PostResponse]
    next_cursor: datetime | None = None


class LikeResponse(BaseModel):
    liked: bool
    like_count: int


class BookmarkResponse(BaseModel):
    bookmarked: bool


class PostCommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class PostCommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: str
    author_id: str
    author_name: str
    author_avatar: str | None
    content: str
    created_at: datetime


class FollowCreate(BaseModel):
    user_id: str = Field(..., min_length=1)


class FollowResponse(BaseModel):
    followed: bool


class FollowStatsResponse(BaseModel):
    user_id: str
    followers: int
    following: int
    is_following: bool
    follows_me: bool


class FollowEntry(BaseModel):
    user_id: str
    followed_at: datetime


class ConnectionRequestCreate(BaseModel):
    addressee_id: str = Field(..., min_length=1)
    note: str | None = Field(None, max_length=500)


class ConnectionRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: str
    addressee_id: str
    note: str | None
    status: str
    created_at: datetime
    decided_at: datetime | None


class ConnectionEntry(BaseModel):
    user_id: str
    connected_at: datetime


class RemovedResponse(BaseModel):
    removed: bool
