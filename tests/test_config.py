import pytest

from claims_portal.core.config import DEV_JWT_SECRET, Settings


def test_jwt_secrets_must_differ():
    with pytest.raises(ValueError):
        Settings(JWT_SECRET="same", JWT_REFRESH_SECRET="same")


def test_production_rejects_development_secrets():
    with pytest.raises(ValueError, match="JWT_SECRET"):
        Settings(ENVIRONMENT="production", JWT_SECRET=DEV_JWT_SECRET, JWT_REFRESH_SECRET="r")


def test_production_with_real_secrets():
    settings = Settings(
        ENVIRONMENT="Production",
        JWT_SECRET="access-secret",
        JWT_REFRESH_SECRET="refresh-secret",
        SESSION_SECRET="session-secret",
    )

    assert settings.is_production is True


def test_defaults():
    settings = Settings(JWT_SECRET="a", JWT_REFRESH_SECRET="b")

    assert settings.ACCESS_TOKEN_EXPIRE_MINUTES == 15
    assert settings.REFRESH_TOKEN_EXPIRE_DAYS == 7
    assert settings.MAX_REFRESH_TOKENS == 5
    assert settings.is_production is False
