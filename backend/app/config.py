from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="GhostMedia API", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1",
            "http://127.0.0.1:5173",
        ],
        description="List of allowed CORS origins (the frontend URL)",
    )
    cors_allow_origin_regex: str | None = Field(
        default=None,
        description="Optional regular expression that matches allowed CORS origins",
    )

    db_user: str = Field(default="ghostmedia")
    db_password: str = Field(default="ghostmedia")
    db_host: str = Field(default="db")
    db_port: int = Field(default=3306)
    db_name: str = Field(default="ghostmedia")
    database_url_override: str | None = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="Full SQLAlchemy URL; takes precedence over the DB_* parts",
    )

    jwt_secret_key: str = Field(default="change-this-secret-key-before-deploying")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60)

    admin_username: str = Field(default="admin")
    admin_password: str = Field(default="changeme")

    websocket_keepalive_timeout_seconds: float = Field(default=30)
    websocket_keepalive_ping_interval_seconds: float = Field(default=25)
    broadcast_online_users: bool = Field(
        default=True,
        description="Broadcast the online user list whenever someone connects or leaves.",
    )

    ghost_post_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        description="Lifetime of a ghost post created without an explicit expiration.",
    )
    ghost_message_ttl_seconds: int = Field(
        default=60 * 60,
        description="Lifetime of a ghost message sent without an explicit expiration.",
    )
    message_max_length: int = Field(default=2000)
    admin_page_default_limit: int = Field(default=10)
    admin_page_max_limit: int = Field(default=100)

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
