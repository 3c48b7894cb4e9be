"""Moderation endpoints guarded by an admin token."""

from __future__ import annotations

import logging
import math
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from ghostmedia.realtime import EventRouter

from app.api.deps import get_event_router, require_admin
from app.config import get_settings
from app.core.security import create_admin_token
from app.database import get_db
from app.models import Friendship, Message, Post, User, UserStatus
from app.schemas import (
    AdminLogin,
    AdminToken,
    PostPage,
    PostRead,
    UserDeletionResult,
    UserPage,
    UserRead,
    UserStatusResult,
    UserStatusUpdate,
)

router = APIRouter(prefix="/admin", tags=["admin"])

settings = get_settings()

logger = logging.getLogger(__name__)


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _page_params(page: int, limit: int | None) -> tuple[int, int, int]:
    size = limit or settings.admin_page_default_limit
    size = max(1, min(size, settings.admin_page_max_limit))
    page = max(page, 1)
    return page, size, (page - 1) * size


def _count(db: Session, model, *criteria) -> int:
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return db.execute(stmt).scalar_one()


def _post_page(db: Session, criteria: list, page: int, limit: int | None) -> PostPage:
    page, size, offset = _page_params(page, limit)
    total = _count(db, Post, *criteria)
    stmt = (
        select(Post)
        .where(*criteria)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(size)
    )
    posts = [PostRead.model_validate(post) for post in db.execute(stmt).scalars()]
    return PostPage(
        posts=posts,
        current_page=page,
        total_pages=math.ceil(total / size),
        total_posts=total,
    )


@router.post("/login", response_model=AdminToken)
def admin_login(credentials: AdminLogin) -> AdminToken:
    valid_user = secrets.compare_digest(credentials.username, settings.admin_username)
    valid_password = secrets.compare_digest(credentials.password, settings.admin_password)
    if not (valid_user and valid_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin credentials")
    return AdminToken(message="Admin login successful", token=create_admin_token(credentials.username))


@router.get("/users", response_model=UserPage)
def list_users(
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    search: str = Query(default=""),
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
) -> UserPage:
    page, size, offset = _page_params(page, limit)
    criteria = []
    if search:
        pattern = _like(search)
        criteria.append(
            or_(User.username.ilike(pattern, escape="\\"), User.email.ilike(pattern, escape="\\"))
        )
    total = _count(db, User, *criteria)
    stmt = (
        select(User)
        .where(*criteria)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(offset)
        .limit(size)
    )
    users = [UserRead.model_validate(user) for user in db.execute(stmt).scalars()]
    return UserPage(
        users=users,
        current_page=page,
        total_pages=math.ceil(total / size),
        total_users=total,
    )


@router.patch("/users/{user_id}", response_model=UserStatusResult)
def update_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
) -> UserStatusResult:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    user.status = payload.status
    db.add(user)
    db.commit()
    db.refresh(user)
    verb = "banned" if payload.status == UserStatus.BANNED else "activated"
    logger.info("User %s %s", user.username, verb)
    return UserStatusResult(message=f"User {verb} successfully", user=UserRead.model_validate(user))


@router.get("/posts", response_model=PostPage)
def list_all_posts(
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    search: str = Query(default=""),
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
) -> PostPage:
    criteria = [Post.content.ilike(_like(search), escape="\\")] if search else []
    return _post_page(db, criteria, page, limit)


@router.get("/posts/{username}", response_model=PostPage)
def list_posts_by_user(
    username: str,
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    search: str = Query(default=""),
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
) -> PostPage:
    criteria = [Post.username == username]
    if search:
        criteria.append(Post.content.ilike(_like(search), escape="\\"))
    return _post_page(db, criteria, page, limit)


@router.delete("/posts/{post_id}")
async def remove_post(
    post_id: int,
    db: Session = Depends(get_db),
    events: EventRouter = Depends(get_event_router),
    _admin: str = Depends(require_admin),
) -> dict[str, str | int]:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    author = post.username
    db.delete(post)
    db.commit()
    await events.broadcast(
        "postDeleted",
        {"postId": post_id, "username": author, "reason": "moderated"},
    )
    return {"message": "Post deleted successfully", "postId": post_id}


@router.delete("/users/{user_id}", response_model=UserDeletionResult)
def remove_user(
    user_id: int,
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
) -> UserDeletionResult:
    """Delete a user together with the posts, friendships and messages keyed by them."""

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    username = user.username

    posts = db.execute(delete(Post).where(Post.username == username))
    links = db.execute(
        delete(Friendship).where(
            or_(Friendship.sender == username, Friendship.receiver == username)
        )
    )
    messages = db.execute(
        delete(Message).where(or_(Message.sender == username, Message.receiver == username))
    )
    db.delete(user)
    db.commit()
    logger.info(
        "Deleted user %s (%d posts, %d friendships, %d messages)",
        username,
        posts.rowcount,
        links.rowcount,
        messages.rowcount,
    )
    return UserDeletionResult(
        message="User and all associated data deleted successfully",
        user_id=user_id,
        username=username,
        posts_deleted=posts.rowcount,
        friendships_deleted=links.rowcount,
        messages_deleted=messages.rowcount,
    )
