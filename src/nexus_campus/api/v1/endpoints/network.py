"""Feed, follow graph and bookmark listing endpoints."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from nexus_campus.schemas.network import (
    FeedResponse,
    FeedScope,
    FollowCreate,
    FollowEntry,
    FollowResponse,
    FollowStatsResponse,
)
from nexus_campus.services import network_service

from ..dependencies import CallerDep, SessionDep, SessionFactoryDep
from .posts import to_post_response

router = APIRouter(prefix="/network", tags=["network"])


@router.get("/feed", response_model=FeedResponse)
async def feed(
    caller: CallerDep,
    db: SessionDep,
    scope: FeedScope = "college",
    cursor: datetime | None = None,
    limit: Annotated[int, Query(ge=1, le=50)] = 20,
) -> FeedResponse:
    """Newest posts first; pass ``next_cursor`` back as ``cursor`` for the next page."""
    posts, next_cursor = network_service.feed(db, caller, scope=scope, cursor=cursor, limit=limit)
    stats = network_service.post_stats(db, caller, posts)
    return FeedResponse(
        items=[to_post_response(post, stats[post.id]) for post in posts],
        next_cursor=next_cursor,
    )


@router.get("/bookmarks", response_model=FeedResponse)
async def bookmarks(
    caller: CallerDep,
    db: SessionDep,
    cursor: datetime | None = None,
    limit: Annotated[int, Query(ge=1, le=50)] = 20,
) -> FeedResponse:
    posts, next_cursor = network_service.list_bookmarks(db, caller, cursor=cursor, limit=limit)
    stats = network_service.post_stats(db, caller, posts)
    return FeedResponse(
        items=[to_post_response(post, stats[post.id]) for post in posts],
        next_cursor=next_cursor,
    )


@router.post("/follow", response_model=FollowResponse)
def follow(data: FollowCreate, caller: CallerDep, session_factory: SessionFactoryDep) -> FollowResponse:
    result = network_service.follow_user(session_factory, caller, data.user_id)
    return FollowResponse(followed=result.succeeded)


@router.delete("/follow/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow(user_id: str, caller: CallerDep, db: SessionDep) -> Response:
    network_service.unfollow_user(db, caller, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/followers/{user_id}/stats", response_model=FollowStatsResponse)
async def follow_stats(user_id: str, caller: CallerDep, db: SessionDep) -> FollowStatsResponse:
    return FollowStatsResponse(**network_service.follow_stats(db, caller, user_id))


@router.get("/followers/{user_id}", response_model=list[FollowEntry])
async def followers(
    user_id: str,
    caller: CallerDep,
    db: SessionDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> list[FollowEntry]:
    return [
        FollowEntry(user_id=follower, followed_at=at)
        for follower, at in network_service.followers(db, user_id, limit)
    ]


@router.get("/following/{user_id}", response_model=list[FollowEntry])
async def following(
    user_id: str,
    caller: CallerDep,
    db: SessionDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> list[FollowEntry]:
    return [
        FollowEntry(user_id=followee, followed_at=at)
        for followee, at in network_service.following(db, user_id, limit)
    ]
