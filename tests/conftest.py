from __future__ import annotations

import os

# Must be set before claims_portal reads its settings.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CLICKUP_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from claims_portal.core.config import get_settings
from claims_portal.core.dependencies import get_claim_service
from claims_portal.core.exceptions import ClaimsServiceError
from claims_portal.core.tokens import TokenService
from claims_portal.database import create_db_and_tables, engine
from claims_portal.main import app
from claims_portal.repositories.refresh_token_repo import RefreshTokenRepository
from claims_portal.repositories.user_repo import UserRepository
from claims_portal.services.claim_service import ClaimService
from claims_portal.services.credential_store import CredentialStore

JSON = {"Accept": "application/json"}
PASSWORD = "correct-horse"


class FakeClaimsClient:
    """In-memory stand-in for ClickUp, keyed by task id."""

    def __init__(self):
        self.tasks: dict[str, dict] = {}
        self.comments: dict[str, list] = {}

    def get_task(self, task_id: str) -> dict:
        if task_id not in self.tasks:
            raise ClaimsServiceError("ClickUp answered HTTP 404", status_code=404)
        return self.tasks[task_id]

    def get_task_comments(self, task_id: str) -> list:
        return self.comments.get(task_id, [])


@pytest.fixture(autouse=True)
def fresh_database():
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables()
    yield


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def token_service(settings):
    return TokenService(settings)


@pytest.fixture
def store(settings):
    return CredentialStore(UserRepository(), RefreshTokenRepository(), settings)


@pytest.fixture
def claims_client():
    return FakeClaimsClient()


@pytest.fixture
def client(claims_client):
    app.dependency_overrides[get_claim_service] = lambda: ClaimService(claims_client)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(store):
    """Create a persisted account and return it."""

    def _make_user(email="jane@contractor.com", password=PASSWORD, **kwargs):
        with Session(engine) as session:
            user = store.create_user(
                session,
                email=email,
                raw_password=password,
                name=kwargs.pop("name", "Jane Doe"),
                contractor_id=kwargs.pop("contractor_id", "CTR-1"),
                **kwargs,
            )
            session.expunge(user)
        return user

    return _make_user


def signup(client, email="jane@contractor.com", password=PASSWORD, contractor_id="CTR-1"):
    return client.post(
        "/auth/signup",
        json={
            "email": email,
            "password": password,
            "name": "Jane Doe",
            "contractorId": contractor_id,
        },
        headers=JSON,
    )


def login(client, email="jane@contractor.com", password=PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password}, headers=JSON)


def count_tokens(store, email="jane@contractor.com") -> int:
    with Session(engine) as session:
        user = store.find_by_email(session, email)
        return store.count_refresh_tokens(session, user) if user else 0
