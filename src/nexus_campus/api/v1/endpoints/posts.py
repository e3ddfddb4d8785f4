"""Post endpoints: authoring, likes, bookmarks and comments."""

from fastapi import APIRouter, Response, status

from nexus_campus.models import Post
from nexus_campus.schemas.network import (
    BookmarkResponse,
    LikeResponse,
    PostCommentCreate,
    PostCommentResponse,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from nexus_campus.services import network_service
from nexus_campus.services.network_service import PostStats

from ..dependencies import CallerDep, SessionDep, SessionFactoryDep

router = APIRouter(prefix="/posts", tags=["posts"])


def to_post_response(post: Post, stats: PostStats | None = None) -> PostResponse:
    response = PostResponse.model_validate(post)
    if stats is not None:
        response.like_count = stats.like_count
        response.comment_count = stats.comment_count
        response.liked_by_me = stats.liked_by_me
        response.bookmarked_by_me = stats.bookmarked_by_me
    return response


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(data: PostCreate, caller: CallerDep, db: SessionDep) -> PostResponse:
    return to_post_response(network_service.create_post(db, caller, data))


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, caller: CallerDep, db: SessionDep) -> PostResponse:
    post = network_service.load_post(db, caller, post_id)
    stats = network_service.post_stats(db, caller, [post])
    return to_post_response(post, stats[post.id])


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(post_id: str, data: PostUpdate, caller: CallerDep, db: SessionDep) -> PostResponse:
    return to_post_response(network_service.update_post(db, caller, post_id, data))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: str, caller: CallerDep, db: SessionDep) -> Response:
    network_service.delete_post(db, caller, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/like", response_model=LikeResponse)
def like_post(
    post_id: str, caller: CallerDep, db: SessionDep, session_factory: SessionFactoryDep
) -> LikeResponse:
    """Like a post; liking twice is a no-op reported as ``liked: false``."""
    result, like_count = network_service.like_post(db, session_factory, caller, post_id)
    return LikeResponse(liked=result.succeeded, like_count=like_count)


@router.delete("/{post_id}/like", response_model=LikeResponse)
def unlike_post(
    post_id: str, caller: CallerDep, db: SessionDep, session_factory: SessionFactoryDep
) -> LikeResponse:
    _, like_count = network_service.unlike_post(db, session_factory, caller, post_id)
    return LikeResponse(liked=False, like_count=like_count)


@router.post("/{post_id}/bookmark", response_model=BookmarkResponse)
def bookmark_post(
    post_id: str, caller: CallerDep, db: SessionDep, session_factory: SessionFactoryDep
) -> BookmarkResponse:
    result = network_service.bookmark_post(db, session_factory, caller, post_id)
    return BookmarkResponse(bookmarked=result.succeeded)


@router.delete("/{post_id}/bookmark", status_code=status.HTTP_204_NO_CONTENT)
async def unbookmark_post(post_id: str, caller: CallerDep, db: SessionDep) -> Response:
    network_service.unbookmark_post(db, caller, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{post_id}/comments", response_model=list[PostCommentResponse])
async def list_comments(post_id: str, caller: CallerDep, db: SessionDep) -> list[PostCommentResponse]:
    comments = network_service.list_post_comments(db, caller, post_id)
    return [PostCommentResponse.model_validate(comment) for comment in comments]


@router.post(
    "/{post_id}/comments",
    response_model=PostCommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: str, data: PostCommentCreate, caller: CallerDep, db: SessionDep
) -> PostCommentResponse:
    return PostCommentResponse.model_validate(network_service.add_post_comment(db, caller, post_id, data))


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(comment_id: str, caller: CallerDep, db: SessionDep) -> Response:
    network_service.delete_post_comment(db, caller, comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
