"""Business logic for the campus social network.

Likes, bookmarks, follows and connection requests are unique
(resource, requester) claims and go through :func:`claim_slot`. A
connection request leaves PENDING once through :func:`transition_claim`;
acceptance writes the mutual :class:`Connection` in the same transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from nexus_campus.core.errors import AlreadyClaimedError, BadRequestError, NotFoundError
from nexus_campus.core.security import CallerContext
from nexus_campus.db.time import as_utc, utcnow
from nexus_campus.models import (
    Connection,
    ConnectionRequest,
    Post,
    PostBookmark,
    PostComment,
    PostLike,
    UserFollow,
)
from nexus_campus.models.network import (
    CONNECTION_ACCEPTED,
    CONNECTION_PENDING,
    CONNECTION_REJECTED,
    VISIBILITY_PUBLIC,
)
from nexus_campus.schemas.network import (
    ConnectionRequestCreate,
    PostCommentCreate,
    PostCreate,
    PostUpdate,
)
from nexus_campus.services.authorization import Action, require
from nexus_campus.services.claims import (
    ClaimRequest,
    ClaimResult,
    StatusTransition,
    claim_slot,
    transition_claim,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostStats:
    like_count: int = 0
    comment_count: int = 0
    liked_by_me: bool = False
    bookmarked_by_me: bool = False


def _visible_to(caller: CallerContext) -> Any:
    return or_(Post.visibility == VISIBILITY_PUBLIC, Post.college_id == caller.college_id)


def load_post(db: Session, caller: CallerContext, post_id: str) -> Post:
    """Return a live post that is public or belongs to the caller's college."""
    post = db.scalar(select(Post).where(Post.id == post_id, Post.deleted_at.is_(None), _visible_to(caller)))
    if post is None:
        raise NotFoundError("Post not found")
    return post


def post_stats(db: Session, caller: CallerContext, posts: list[Post]) -> dict[str, PostStats]:
    """Counters and the caller's own reactions for a page of posts."""
    ids = [post.id for post in posts]
    if not ids:
        return {}
    likes = dict(
        db.execute(
            select(PostLike.post_id, func.count()).where(PostLike.post_id.in_(ids)).group_by(PostLike.post_id)
        ).all()
    )
    comments = dict(
        db.execute(
            select(PostComment.post_id, func.count())
            .where(PostComment.post_id.in_(ids), PostComment.deleted_at.is_(None))
            .group_by(PostComment.post_id)
        ).all()
    )
    liked = set(
        db.scalars(select(PostLike.post_id).where(PostLike.post_id.in_(ids), PostLike.user_id == caller.subject))
    )
    bookmarked = set(
        db.scalars(
            select(PostBookmark.post_id).where(
                PostBookmark.post_id.in_(ids), PostBookmark.user_id == caller.subject
            )
        )
    )
    return {
        post_id: PostStats(
            like_count=likes.get(post_id, 0),
            comment_count=comments.get(post_id, 0),
            liked_by_me=post_id in liked,
            bookmarked_by_me=post_id in bookmarked,
        )
        for post_id in ids
    }


def feed(
    db: Session,
    caller: CallerContext,
    *,
    scope: str = "college",
    cursor: datetime | None = None,
    limit: int = 20,
) -> tuple[list[Post], datetime | None]:
    """Return a page of posts, newest first, and the cursor for the next page.

    ``college`` shows every post from the caller's college, ``global`` only
    public posts, and ``following`` visible posts by accounts the caller
    follows.
    """
    stmt = select(Post).where(Post.deleted_at.is_(None))
    if scope == "global":
        stmt = stmt.where(Post.visibility == VISIBILITY_PUBLIC)
    elif scope == "following":
        followees = select(UserFollow.following_id).where(UserFollow.follower_id == caller.subject)
        stmt = stmt.where(Post.author_id.in_(followees), _visible_to(caller))
    else:
        stmt = stmt.where(Post.college_id == caller.college_id)
    if cursor is not None:
        stmt = stmt.where(Post.created_at < as_utc(cursor))

    rows = list(db.scalars(stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit + 1)))
    page = rows[:limit]
    next_cursor = as_utc(page[-1].created_at) if len(rows) > limit else None
    return page, next_cursor


def create_post(db: Session, caller: CallerContext, data: PostCreate) -> Post:
    post = Post(
        college_id=caller.college_id,
        author_id=caller.subject,
        author_name=caller.name or "",
        author_avatar=caller.avatar_url,
        author_role=caller.primary_role,
        content=data.content,
        visibility=data.visibility,
        type=data.type,
        tags=list(data.tags),
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    logger.info("Post %s created by %s (%s)", post.id, caller.subject, post.visibility)
    return post


def update_post(db: Session, caller: CallerContext, post_id: str, data: PostUpdate) -> Post:
    post = load_post(db, caller, post_id)
    require(caller, "post", Action.UPDATE, post)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(post, key, value)
    post.updated_at = utcnow()
    db.commit()
    db.refresh(post)
    return post


def delete_post(db: Session, caller: CallerContext, post_id: str) -> None:
    post = load_post(db, caller, post_id)
    require(caller, "post", Action.DELETE, post)
    post.deleted_at = utcnow()
    db.commit()
    logger.info("Post %s deleted by %s", post_id, caller.subject)


def _like_count(session_factory: sessionmaker[Session], post_id: str) -> int:
    # Own session so the count includes the claim committed by another session.
    with session_factory() as session:
        return int(
            session.scalar(select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)) or 0
        )


def like_post(
    db: Session, session_factory: sessionmaker[Session], caller: CallerContext, post_id: str
) -> tuple[ClaimResult, int]:
    """Like a post; return the claim outcome and the resulting like count."""
    post = load_post(db, caller, post_id)
    request = ClaimRequest(
        model=PostLike,
        resource_field="post_id",
        requester_field="user_id",
        values={"post_id": post.id, "user_id": caller.subject},
    )
    result = claim_slot(session_factory, request)
    return result, _like_count(session_factory, post.id)


def unlike_post(
    db: Session, session_factory: sessionmaker[Session], caller: CallerContext, post_id: str
) -> tuple[bool, int]:
    post = load_post(db, caller, post_id)
    removed = db.execute(
        delete(PostLike).where(PostLike.post_id == post.id, PostLike.user_id == caller.subject)
    ).rowcount
    db.commit()
    return removed > 0, _like_count(session_factory, post.id)


def bookmark_post(
    db: Session, session_factory: sessionmaker[Session], caller: CallerContext, post_id: str
) -> ClaimResult:
    post = load_post(db, caller, post_id)
    request = ClaimRequest(
        model=PostBookmark,
        resource_field="post_id",
        requester_field="user_id",
        values={"post_id": post.id, "user_id": caller.subject},
    )
    return claim_slot(session_factory, request)


def unbookmark_post(db: Session, caller: CallerContext, post_id: str) -> bool:
    post = load_post(db, caller, post_id)
    removed = db.execute(
        delete(PostBookmark).where(PostBookmark.post_id == post.id, PostBookmark.user_id == caller.subject)
    ).rowcount
    db.commit()
    return removed > 0


def list_bookmarks(
    db: Session,
    caller: CallerContext,
    *,
    cursor: datetime | None = None,
    limit: int = 20,
) -> tuple[list[Post], datetime | None]:
    """Bookmarked posts that are still visible, most recently bookmarked first."""
    stmt = (
        select(PostBookmark)
        .join(Post, Post.id == PostBookmark.post_id)
        .where(PostBookmark.user_id == caller.subject, Post.deleted_at.is_(None), _visible_to(caller))
    )
    if cursor is not None:
        stmt = stmt.where(PostBookmark.bookmarked_at < as_utc(cursor))
    rows = list(
        db.scalars(
            stmt.order_by(PostBookmark.bookmarked_at.desc(), PostBookmark.id.desc()).limit(limit + 1)
        ).unique()
    )
    page = rows[:limit]
    next_cursor = as_utc(page[-1].bookmarked_at) if len(rows) > limit else None
    return [bookmark.post for bookmark in page], next_cursor


def list_post_comments(db: Session, caller: CallerContext, post_id: str) -> list[PostComment]:
    post = load_post(db, caller, post_id)
    return list(
        db.scalars(
            select(PostComment)
            .where(PostComment.post_id == post.id, PostComment.deleted_at.is_(None))
            .order_by(PostComment.created_at.asc())
        )
    )


def add_post_comment(db: Session, caller: CallerContext, post_id: str, data: PostCommentCreate) -> PostComment:
    post = load_post(db, caller, post_id)
    comment = PostComment(
        post_id=post.id,
        college_id=caller.college_id,
        author_id=caller.subject,
        author_name=caller.name or "",
        author_avatar=caller.avatar_url,
        content=data.content,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def delete_post_comment(db: Session, caller: CallerContext, comment_id: str) -> None:
    comment = db.get(PostComment, comment_id)
    if comment is None or comment.deleted_at is not None:
        raise NotFoundError("Comment not found")
    require(caller, "post_comment", Action.DELETE, comment)
    comment.deleted_at = utcnow()
    db.commit()


def follow_user(session_factory: sessionmaker[Session], caller: CallerContext, user_id: str) -> ClaimResult:
    if user_id == caller.subject:
        raise BadRequestError("Cannot follow yourself")
    request = ClaimRequest(
        model=UserFollow,
        resource_field="following_id",
        requester_field="follower_id",
        values={"following_id": user_id, "follower_id": caller.subject},
    )
    result = claim_slot(session_factory, request)
    logger.info("Follow %s -> %s: %s", caller.subject, user_id, result.outcome.value)
    return result


def unfollow_user(db: Session, caller: CallerContext, user_id: str) -> bool:
    removed = db.execute(
        delete(UserFollow).where(UserFollow.follower_id == caller.subject, UserFollow.following_id == user_id)
    ).rowcount
    db.commit()
    return removed > 0


def _follow_count(db: Session, *criteria: Any) -> int:
    return int(db.scalar(select(func.count()).select_from(UserFollow).where(*criteria)) or 0)


def follow_stats(db: Session, caller: CallerContext, user_id: str) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "followers": _follow_count(db, UserFollow.following_id == user_id),
        "following": _follow_count(db, UserFollow.follower_id == user_id),
        "is_following": _follow_count(
            db, UserFollow.follower_id == caller.subject, UserFollow.following_id == user_id
        ) > 0,
        "follows_me": _follow_count(
            db, UserFollow.follower_id == user_id, UserFollow.following_id == caller.subject
        ) > 0,
    }


def followers(db: Session, user_id: str, limit: int = 50) -> list[tuple[str, datetime]]:
    rows = db.execute(
        select(UserFollow.follower_id, UserFollow.followed_at)
        .where(UserFollow.following_id == user_id)
        .order_by(UserFollow.followed_at.desc())
        .limit(limit)
    ).all()
    return [(row.follower_id, row.followed_at) for row in rows]


def following(db: Session, user_id: str, limit: int = 50) -> list[tuple[str, datetime]]:
    rows = db.execute(
        select(UserFollow.following_id, UserFollow.followed_at)
        .where(UserFollow.follower_id == user_id)
        .order_by(UserFollow.followed_at.desc())
        .limit(limit)
    ).all()
    return [(row.following_id, row.followed_at) for row in rows]


def _pair(first: str, second: str) -> tuple[str, str]:
    return (first, second) if first < second else (second, first)


def _between(first: str, second: str) -> Any:
    return or_(
        and_(ConnectionRequest.requester_id == first, ConnectionRequest.addressee_id == second),
        and_(ConnectionRequest.requester_id == second, ConnectionRequest.addressee_id == first),
    )


def send_connection_request(
    db: Session,
    session_factory: sessionmaker[Session],
    caller: CallerContext,
    data: ConnectionRequestCreate,
) -> ClaimResult:
    """Ask ``data.addressee_id`` to connect; at most one request per direction."""
    if data.addressee_id == caller.subject:
        raise BadRequestError("Cannot connect with yourself")
    user_a, user_b = _pair(caller.subject, data.addressee_id)
    if db.scalar(select(Connection.id).where(Connection.user_a == user_a, Connection.user_b == user_b)):
        raise AlreadyClaimedError("Already connected")
    incoming = db.scalar(
        select(ConnectionRequest.id).where(
            ConnectionRequest.requester_id == data.addressee_id,
            ConnectionRequest.addressee_id == caller.subject,
            ConnectionRequest.status == CONNECTION_PENDING,
        )
    )
    if incoming is not None:
        raise AlreadyClaimedError("A request from this user is awaiting your answer")

    request = ClaimRequest(
        model=ConnectionRequest,
        resource_field="addressee_id",
        requester_field="requester_id",
        values={
            "addressee_id": data.addressee_id,
            "requester_id": caller.subject,
            "note": data.note,
            "status": CONNECTION_PENDING,
            "decided_at": None,
        },
    )
    result = claim_slot(session_factory, request)
    logger.info("Connection request %s -> %s: %s", caller.subject, data.addressee_id, result.outcome.value)
    return result


def received_requests(db: Session, caller: CallerContext) -> list[ConnectionRequest]:
    return list(
        db.scalars(
            select(ConnectionRequest)
            .where(ConnectionRequest.addressee_id == caller.subject, ConnectionRequest.status == CONNECTION_PENDING)
            .order_by(ConnectionRequest.created_at.desc())
        )
    )


def sent_requests(db: Session, caller: CallerContext) -> list[ConnectionRequest]:
    return list(
        db.scalars(
            select(ConnectionRequest)
            .where(ConnectionRequest.requester_id == caller.subject)
            .order_by(ConnectionRequest.created_at.desc())
        )
    )


def _mark_decided(session: Session, request: ConnectionRequest) -> None:
    request.decided_at = utcnow()


def _connect(session: Session, request: ConnectionRequest) -> None:
    _mark_decided(session, request)
    user_a, user_b = _pair(request.requester_id, request.addressee_id)
    session.add(Connection(user_a=user_a, user_b=user_b))


def decide_connection_request(
    db: Session,
    session_factory: sessionmaker[Session],
    caller: CallerContext,
    request_id: str,
    *,
    accept: bool,
) -> ClaimResult:
    """Accept or reject a pending request addressed to the caller."""
    request = db.get(ConnectionRequest, request_id)
    if request is None or request.addressee_id != caller.subject:
        raise NotFoundError("Connection request not found")

    transition = StatusTransition(
        model=ConnectionRequest,
        record_id=request.id,
        resource_field="addressee_id",
        from_status=CONNECTION_PENDING,
        to_status=CONNECTION_ACCEPTED if accept else CONNECTION_REJECTED,
        bounded_status=CONNECTION_ACCEPTED,
        on_transition=_connect if accept else _mark_decided,
    )
    result = transition_claim(session_factory, transition)
    logger.info("Connection request %s decided by %s: %s", request.id, caller.subject, result.outcome.value)
    return result


def list_connections(db: Session, caller: CallerContext) -> list[tuple[str, datetime]]:
    rows = db.scalars(
        select(Connection)
        .where(or_(Connection.user_a == caller.subject, Connection.user_b == caller.subject))
        .order_by(Connection.created_at.desc())
    )
    return [
        (row.user_b if row.user_a == caller.subject else row.user_a, row.created_at)
        for row in rows
    ]


def remove_connection(db: Session, caller: CallerContext, user_id: str) -> bool:
    """Drop the connection and the requests that formed it so either side can ask again."""
    user_a, user_b = _pair(caller.subject, user_id)
    removed = db.execute(
        delete(Connection).where(Connection.user_a == user_a, Connection.user_b == user_b)
    ).rowcount
    if removed:
        db.execute(delete(ConnectionRequest).where(_between(caller.subject, user_id)))
    db.commit()
    return removed > 0
