# claims_portal/schemas/auth.py
from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field


class SignupRequest(SQLModel):
    """
    Payload for POST /auth/signup (JSON body or HTML form).

    contractorId is checked by the route itself so a missing value
    produces the portal's own 400 message instead of a validation error.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=1)
    name: str = Field(max_length=200)
    contractor_id: str | None = Field(default=None, alias="contractorId")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("contractor_id")
    @classmethod
    def normalize_contractor(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip() or None


class LoginRequest(SQLModel):
    """Payload for POST /auth/login. Not validated as EmailStr: bad input is just bad credentials."""

    email: str = ""
    password: str = ""


class RefreshRequest(SQLModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str | None = Field(default=None, alias="refreshToken")


class ChangePasswordRequest(SQLModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(min_length=6, alias="newPassword")


class TokenPair(SQLModel):
    """Tokens handed to API clients; expiresIn mirrors the access-token lifetime."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    expires_in: int = Field(alias="expiresIn", description="Access token lifetime in seconds")


class AccessTokenClaims(SQLModel):
    """Decoded, verified access token."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    email: str
    name: str | None = None
    contractor_id: str | None = Field(default=None, alias="contractorId")
    role: str = "user"
    is_admin: bool = Field(default=False, alias="isAdmin")
    user_type: str = Field(default="contractor", alias="userType")
    iss: str
    aud: str
    iat: int | None = None
    exp: int
    jti: str | None = None


class RefreshTokenClaims(SQLModel):
    """Decoded, verified refresh token."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    email: str
    token_type: str = Field(alias="tokenType")
    iss: str
    aud: str
    iat: int | None = None
    exp: int
    jti: str | None = None


class Identity(SQLModel):
    """
    The authenticated caller attached to a request.

    Built either from access token claims or from the legacy session blob;
    the session only carries id/email/name/contractor_id, so every other
    field is optional.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    email: str | None = None
    name: str | None = None
    contractor_id: str | None = Field(default=None, alias="contractorId")
    role: str | None = None
    is_admin: bool = Field(default=False, alias="isAdmin")
    user_type: str | None = Field(default=None, alias="userType")
    source: str = Field(default="token", description="token | session")

    @property
    def has_admin_access(self) -> bool:
        return self.is_admin or self.role in {"admin", "master_admin"}
