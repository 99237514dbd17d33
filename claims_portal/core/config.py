# claims_portal/core/config.py
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-jwt-secret-change-me"
DEV_JWT_REFRESH_SECRET = "dev-jwt-refresh-secret-change-me"
DEV_SESSION_SECRET = "dev-session-secret-change-me"


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required in production (.env):
      - JWT_SECRET / JWT_REFRESH_SECRET (must differ from each other)
      - SESSION_SECRET (signs the legacy session cookie)
      - DATABASE_URL
      - CLICKUP_API_KEY / CLICKUP_TEAM_ID

    Development falls back to a local SQLite file and throwaway secrets.
    """

    PROJECT_NAME: str = "Key Adjusting Contractor Portal"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    DATABASE_URL: str = "sqlite:///./claims_portal.db"

    # Legacy cookie session
    SESSION_SECRET: str = DEV_SESSION_SECRET

    # JWT issuance / verification
    JWT_SECRET: str = DEV_JWT_SECRET
    JWT_REFRESH_SECRET: str = DEV_JWT_REFRESH_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "keyadjusting-portal"
    ACCESS_TOKEN_AUDIENCE: str = "keyadjusting-users"
    REFRESH_TOKEN_AUDIENCE: str = "keyadjusting-refresh"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Credential store policy
    MAX_REFRESH_TOKENS: int = 5
    LOGIN_HISTORY_LIMIT: int = 20
    BCRYPT_ROUNDS: int = 10

    # ClickUp (claims SaaS)
    CLICKUP_API_KEY: str | None = None
    CLICKUP_TEAM_ID: str | None = None
    CLICKUP_API_URL: str = "https://api.clickup.com/api/v2"
    CLICKUP_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"

    @model_validator(mode="after")
    def check_secrets(self) -> "Settings":
        """
        Access and refresh tokens must never share a signing secret,
        and production must not run on the development defaults.
        """
        if self.JWT_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must be different")

        if self.is_production:
            insecure = [
                name
                for name, default in (
                    ("JWT_SECRET", DEV_JWT_SECRET),
                    ("JWT_REFRESH_SECRET", DEV_JWT_REFRESH_SECRET),
                    ("SESSION_SECRET", DEV_SESSION_SECRET),
                )
                if getattr(self, name) == default
            ]
            if insecure:
                raise ValueError(
                    f"Insecure default values in production: {', '.join(insecure)}"
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
