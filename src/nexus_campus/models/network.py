"""Models for the campus social network: posts, reactions, follows and connections."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nexus_campus.db.session import Base
from nexus_campus.db.time import utcnow

VISIBILITY_PUBLIC = "PUBLIC"
VISIBILITY_COLLEGE = "COLLEGE"

CONNECTION_PENDING = "PENDING"
CONNECTION_ACCEPTED = "ACCEPTED"
CONNECTION_REJECTED = "REJECTED"


def _new_id() -> str:
    return str(uuid.uuid4())


class Post(Base):
    """A feed post; PUBLIC posts are visible to every college."""

    __tablename__ = "post"
    __table_args__ = (Index("ix_post_college_created", "college_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    college_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    author_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    author_avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_role: Mapped[str] = mapped_column(String(32), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    visibility: Mapped[str] = mapped_column(String(16), nullable=False, default=VISIBILITY_COLLEGE)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="STANDARD")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class PostLike(Base):
    """One like per (post, user)."""

    __tablename__ = "post_like"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_like_post_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("post.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    liked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class PostBookmark(Base):
    """One bookmark per (post, user)."""

    __tablename__ = "post_bookmark"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_bookmark_post_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("post.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    bookmarked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    post: Mapped[Post] = relationship("Post", lazy="joined")


class PostComment(Base):
    """Comment on a post; ``college_id`` is the commenter's college."""

    __tablename__ = "post_comment"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True
    )
    college_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    author_avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserFollow(Base):
    """``follower_id`` follows ``following_id``; at most once."""

    __tablename__ = "user_follow"
    __table_args__ = (
        UniqueConstraint("following_id", "follower_id", name="uq_user_follow_following_follower"),
        Index("ix_user_follow_follower", "follower_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    following_id: Mapped[str] = mapped_column(String(64), nullable=False)
    follower_id: Mapped[str] = mapped_column(String(64), nullable=False)
    followed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ConnectionRequest(Base):
    """A request that leaves PENDING exactly once, for ACCEPTED or REJECTED."""

    __tablename__ = "connection_request"
    __table_args__ = (
        UniqueConstraint("addressee_id", "requester_id", name="uq_connection_request_addressee_requester"),
        Index("ix_connection_request_requester", "requester_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    addressee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    requester_id: Mapped[str] = mapped_column(String(64), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=CONNECTION_PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Connection(Base):
    """Mutual connection stored once with ``user_a < user_b``."""

    __tablename__ = "connection"
    __table_args__ = (UniqueConstraint("user_a", "user_b", name="uq_connection_pair"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_a: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_b: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
