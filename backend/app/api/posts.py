"""Feed endpoints. Every change is pushed to all connected clients."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from ghostmedia.realtime import EventRouter

from app.api.deps import get_event_router, get_ghost_reaper
from app.config import get_settings
from app.database import get_db
from app.models import Post
from app.schemas import ActingUser, ActionResult, PostCreate, PostRead, PostResult, PostUpdate
from app.services.ghosts import GhostReaper, resolve_expiration

router = APIRouter(tags=["posts"])

settings = get_settings()

logger = logging.getLogger(__name__)


def _serialize_post(post: Post) -> dict:
    return PostRead.model_validate(post).model_dump(mode="json", by_alias=True)


def _require_own_post(post_id: int, username: str, db: Session, verb: str) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    if post.username != username:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to {verb} this post",
        )
    return post


@router.post("/user/createPost", response_model=PostResult, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
    ghosts: GhostReaper = Depends(get_ghost_reaper),
) -> PostResult:
    post = Post(
        username=payload.username,
        content=payload.content,
        is_ghost=payload.is_ghost,
        expires_at=resolve_expiration(
            payload.is_ghost, payload.expiration_date, settings.ghost_post_ttl_seconds
        ),
        user_avatar=payload.user_avatar,
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    ghosts.schedule_post(post)

    await events.broadcast("postAdded", _serialize_post(post))
    return PostResult(message="Post created successfully", post=PostRead.model_validate(post))


@router.get("/allPosts", response_model=list[PostRead])
def list_posts(db: Session = Depends(get_db)) -> list[PostRead]:
    stmt = select(Post).order_by(Post.created_at.desc(), Post.id.desc())
    return [PostRead.model_validate(post) for post in db.execute(stmt).scalars()]


@router.get("/user/posts/{username}", response_model=list[PostRead])
def list_user_posts(username: str, db: Session = Depends(get_db)) -> list[PostRead]:
    stmt = (
        select(Post)
        .where(Post.username == username)
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    return [PostRead.model_validate(post) for post in db.execute(stmt).scalars()]


@router.put("/post/{post_id}", response_model=PostResult)
async def update_post(
    post_id: int,
    payload: PostUpdate,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
    ghosts: GhostReaper = Depends(get_ghost_reaper),
) -> PostResult:
    """Edit a post. Toggling ghost mode or its expiration re-arms the expiry."""

    post = _require_own_post(post_id, payload.username, db, "edit")
    previous_expiry = post.expires_at
    post.content = payload.content
    post.is_edited = True
    if payload.is_ghost:
        if not post.is_ghost or payload.expiration_date is not None:
            post.expires_at = resolve_expiration(
                True, payload.expiration_date, settings.ghost_post_ttl_seconds
            )
    else:
        post.expires_at = None
    post.is_ghost = payload.is_ghost
    db.add(post)
    db.commit()
    db.refresh(post)
    if post.expires_at != previous_expiry:
        ghosts.schedule_post(post)

    await events.broadcast("postUpdated", _serialize_post(post))
    return PostResult(message="Post updated successfully", post=PostRead.model_validate(post))


@router.delete("/post/{post_id}", response_model=ActionResult)
async def delete_post(
    post_id: int,
    payload: ActingUser,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
) -> ActionResult:
    post = _require_own_post(post_id, payload.username, db, "delete")
    db.delete(post)
    db.commit()
    logger.info("Post %s deleted by %s", post_id, payload.username)

    await events.broadcast(
        "postDeleted",
        {"postId": post_id, "username": payload.username, "reason": "deleted"},
    )
    return ActionResult(message="Post deleted successfully")
