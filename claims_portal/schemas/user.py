# claims_portal/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

Role = Literal["master_admin", "admin", "user"]
AccountStatus = Literal["active", "inactive", "suspended"]


class UserRead(SQLModel):
    """
    Account as returned to clients.

    The password hash and login history never leave the server.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    email: str
    name: str
    contractor_id: str = Field(alias="contractorId")
    role: Role
    is_admin: bool = Field(alias="isAdmin")
    status: AccountStatus
    last_login: datetime | None = Field(default=None, alias="lastLogin")

    @classmethod
    def from_user(cls, user) -> "UserRead":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            contractor_id=user.contractor_id,
            role=user.role,
            is_admin=user.is_admin,
            status=user.status,
            last_login=user.last_login,
        )


class UserStatusUpdate(SQLModel):
    """Admin-only account status change."""

    model_config = ConfigDict(extra="forbid")
    status: AccountStatus
