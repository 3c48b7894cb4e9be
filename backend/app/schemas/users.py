"""Schemas for registration, login and profile endpoints."""

from datetime import datetime

from pydantic import Field, constr

from app.models.enums import UserStatus
from app.schemas.common import CamelModel

Email = constr(strip_whitespace=True, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")


class UserCreate(CamelModel):
    """Payload for creating a new user via registration."""

    username: constr(strip_whitespace=True, min_length=1, max_length=64) = Field(
        ..., description="Unique username used as the public identity"
    )
    email: Email = Field(..., description="Unique email address used to log in")
    password: constr(min_length=1, max_length=128) = Field(
        ..., description="Plain text password that will be hashed before storing"
    )


class LoginRequest(CamelModel):
    """Payload for user login."""

    email: Email
    password: constr(min_length=1, max_length=128)


class PublicUser(CamelModel):
    """Public-facing user information."""

    id: int
    username: str
    email: str
    profile_picture: str = ""


class UserRead(PublicUser):
    """Representation of a user returned after registration."""

    status: UserStatus = UserStatus.ACTIVE
    created_at: datetime
    updated_at: datetime


class RegisterResponse(CamelModel):
    message: str
    user: UserRead


class LoginResponse(CamelModel):
    """Login result with an access token for API clients."""

    message: str
    user: PublicUser
    access_token: str
    token_type: str = "bearer"


class ProfileImageUpdate(CamelModel):
    username: constr(strip_whitespace=True, min_length=1)
    profile_picture: constr(min_length=1)


class UserProfileUpdate(CamelModel):
    """Partial profile update; omitted fields are left unchanged."""

    username: constr(strip_whitespace=True, min_length=1, max_length=64) | None = None
    email: Email | None = None
    password: constr(min_length=1, max_length=128) | None = None
