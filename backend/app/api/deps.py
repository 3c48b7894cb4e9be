"""FastAPI dependencies for the API layer."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from ghostmedia.realtime import EventRouter, RealtimeHub

from app.core.security import ADMIN_ROLE, decode_access_token
from app.models import User
from app.services.ghosts import GhostReaper

admin_scheme = OAuth2PasswordBearer(tokenUrl="/api/admin/login", auto_error=False)


def get_realtime(request: Request) -> RealtimeHub:
    """Return the realtime hub owned by the running application."""

    return request.app.state.realtime


def get_event_router(hub: RealtimeHub = Depends(get_realtime)) -> EventRouter:
    return hub.router


def get_ghost_reaper(request: Request) -> GhostReaper:
    return request.app.state.ghosts


def require_admin(token: str | None = Depends(admin_scheme)) -> str:
    """Ensure the request carries an admin token and return the admin name."""

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
        )
    payload = decode_access_token(token)
    if payload.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token. Access denied.",
        )
    return str(payload.get("sub"))


def get_user_by_username(username: str, db: Session) -> User | None:
    stmt = select(User).where(User.username == username)
    return db.execute(stmt).scalar_one_or_none()


def require_user(username: str, db: Session) -> User:
    """Return the user with *username* or raise HTTP 404."""

    user = get_user_by_username(username, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
