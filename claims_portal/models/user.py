# claims_portal/models/user.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

ADMIN_ROLES = frozenset({"admin", "master_admin"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """
    Portal account for a contractor (or an administrator).

    Identity:
      - email: unique, always stored trimmed + lowercased
      - password_hash: bcrypt hash, never returned to any client

    Role:
      - "master_admin" | "admin" | "user"
      - is_admin is the legacy flag; either grants admin access.

    Status:
      - "active" | "inactive" | "suspended" (only active accounts may log in)
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Login email (normalized to lowercase)",
    )

    password_hash: str = Field(
        description="bcrypt hash of the password",
    )

    name: str = Field(
        max_length=200,
        description="Display name",
    )

    contractor_id: str = Field(
        index=True,
        description="ClickUp task id of the contractor this user belongs to",
    )

    role: str = Field(
        default="user",
        index=True,
        description="Application role: master_admin | admin | user",
    )

    is_admin: bool = Field(default=False)

    user_type: str = Field(
        default="contractor",
        description="Kind of account carried in access tokens",
    )

    status: str = Field(
        default="active",
        index=True,
        description="Account status: active | inactive | suspended",
    )

    last_login: datetime | None = Field(default=None)

    # [{timestamp, ip, user_agent}, ...], oldest first, capped by the store
    login_history: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Creation timestamp (UTC)",
    )

    @property
    def has_admin_access(self) -> bool:
        return self.is_admin or self.role in ADMIN_ROLES


class RefreshToken(SQLModel, table=True):
    """
    One active refresh token (one logged-in device) of a user.

    A record counts only while expires_at is in the future, independently
    of the exp claim signed into the token itself.
    """

    __tablename__ = "refresh_tokens"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    token: str = Field(
        unique=True,
        index=True,
        description="The signed refresh token as issued",
    )

    created_at: datetime = Field(default_factory=utcnow)

    expires_at: datetime = Field(
        index=True,
        description="Storage TTL (created_at + REFRESH_TOKEN_EXPIRE_DAYS)",
    )

    user_agent: str | None = Field(default=None)
    ip: str | None = Field(default=None)
