"""Registration, login and profile endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from app.api.deps import get_user_by_username, require_user
from app.core.security import create_access_token, get_password_hash, verify_password
from app.database import get_db
from app.models import Friendship, Message, Post, User, UserStatus
from app.schemas import (
    ActionResult,
    LoginRequest,
    LoginResponse,
    ProfileImageUpdate,
    PublicUser,
    RegisterResponse,
    UserCreate,
    UserProfileUpdate,
    UserRead,
)

router = APIRouter(tags=["users"])

logger = logging.getLogger(__name__)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register_user(user_in: UserCreate, db: Session = Depends(get_db)) -> RegisterResponse:
    """Register a new user in the system."""

    existing = db.execute(select(User).where(User.email == user_in.email)).scalar_one_or_none()
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists",
        )
    if get_user_by_username(user_in.username, db) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this username already exists",
        )

    user = User(
        username=user_in.username,
        email=user_in.email,
        password_hash=get_password_hash(user_in.password),
        profile_picture="",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.username)
    return RegisterResponse(message="User registered successfully", user=UserRead.model_validate(user))


@router.post("/login", response_model=LoginResponse)
def login_user(credentials: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate a user by email and password."""

    user = db.execute(select(User).where(User.email == credentials.email)).scalar_one_or_none()
    if user is None or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")
    if user.status == UserStatus.BANNED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This account has been banned")

    token = create_access_token({"sub": user.username})
    return LoginResponse(
        message="Login successful",
        user=PublicUser.model_validate(user),
        access_token=token,
    )


@router.get("/getUser/{username}", response_model=PublicUser)
def read_user(username: str, db: Session = Depends(get_db)) -> PublicUser:
    return PublicUser.model_validate(require_user(username, db))


@router.post("/updateProfileImage", response_model=ActionResult)
def update_profile_image(payload: ProfileImageUpdate, db: Session = Depends(get_db)) -> ActionResult:
    user = require_user(payload.username, db)
    user.profile_picture = payload.profile_picture
    db.add(user)
    db.commit()
    return ActionResult(message="Profile picture updated successfully")


def _rename_references(db: Session, old: str, new: str) -> None:
    """Carry a username change over to every record keyed by it."""

    db.execute(update(Post).where(Post.username == old).values(username=new))
    db.execute(update(Message).where(Message.sender == old).values(sender=new))
    db.execute(update(Message).where(Message.receiver == old).values(receiver=new))
    links = db.execute(
        select(Friendship).where(or_(Friendship.sender == old, Friendship.receiver == old))
    ).scalars().all()
    for link in links:
        if link.sender == old:
            link.sender = new
        if link.receiver == old:
            link.receiver = new
        link.sync_pair()


@router.put("/updateUserProfile/{username}", response_model=PublicUser)
def update_user_profile(
    username: str,
    payload: UserProfileUpdate,
    db: Session = Depends(get_db),
) -> PublicUser:
    """Update username, email or password of an account."""

    user = require_user(username, db)

    if payload.username and payload.username != user.username:
        if get_user_by_username(payload.username, db) is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User with this username already exists",
            )
        _rename_references(db, user.username, payload.username)
        user.username = payload.username
    if payload.email and payload.email != user.email:
        taken = db.execute(select(User.id).where(User.email == payload.email)).scalar_one_or_none()
        if taken is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User with this email already exists",
            )
        user.email = payload.email
    if payload.password:
        user.password_hash = get_password_hash(payload.password)

    db.add(user)
    db.commit()
    db.refresh(user)
    return PublicUser.model_validate(user)


@router.get("/searchFriend/{prefix}", response_model=list[PublicUser])
def search_users(prefix: str, db: Session = Depends(get_db)) -> list[PublicUser]:
    """Case-insensitive username prefix search."""

    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    stmt = (
        select(User)
        .where(User.username.ilike(f"{escaped}%", escape="\\"))
        .order_by(User.username.asc())
    )
    users = db.execute(stmt).scalars().all()
    if not users:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return [PublicUser.model_validate(user) for user in users]
