"""create users, posts, friendships and messages

Revision ID: 20261018_01
Revises: 
Create Date: 2026-10-18 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


USER_STATUS = sa.Enum("active", "banned", name="user_status")
FRIENDSHIP_STATUS = sa.Enum("pending", "accepted", name="friendship_status")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("profile_picture", sa.Text(), nullable=False),
        sa.Column("status", USER_STATUS, nullable=False, server_default="active"),
        *_timestamps(),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "posts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("user_avatar", sa.Text(), nullable=True),
        sa.Column("is_ghost", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_posts_username_created", "posts", ["username", "created_at"])

    op.create_table(
        "friendships",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("sender", sa.String(length=64), nullable=False),
        sa.Column("receiver", sa.String(length=64), nullable=False),
        sa.Column("user_low", sa.String(length=64), nullable=False),
        sa.Column("user_high", sa.String(length=64), nullable=False),
        sa.Column("status", FRIENDSHIP_STATUS, nullable=False, server_default="pending"),
        *_timestamps(),
        sa.UniqueConstraint("user_low", "user_high", name="uq_friendship_pair"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_friendships_sender", "friendships", ["sender"])
    op.create_index("ix_friendships_receiver", "friendships", ["receiver"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("sender", sa.String(length=64), nullable=False),
        sa.Column("receiver", sa.String(length=64), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_ghost", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_messages_sender_receiver", "messages", ["sender", "receiver"])


def downgrade() -> None:
    op.drop_index("ix_messages_sender_receiver", table_name="messages")
    op.drop_table("messages")
    op.drop_index("ix_friendships_receiver", table_name="friendships")
    op.drop_index("ix_friendships_sender", table_name="friendships")
    op.drop_table("friendships")
    op.drop_index("ix_posts_username_created", table_name="posts")
    op.drop_table("posts")
    op.drop_table("users")

    bind = op.get_bind()
    FRIENDSHIP_STATUS.drop(bind, checkfirst=True)
    USER_STATUS.drop(bind, checkfirst=True)
