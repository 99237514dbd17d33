# claims_portal/database.py
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from claims_portal.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Engine
#
# - pool_pre_ping=True: validate connections before using them
# - SQLite (local dev / tests): allow use across threads, since
#   FastAPI runs sync endpoints in a thread pool; an in-memory
#   database must share one connection or every session would
#   see a different, empty database.
# ---------------------------------------------------------

db_url = settings.DATABASE_URL


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(
    db_url,
    echo=False,        # set to True if you want to debug SQL queries
    **_engine_kwargs(db_url),
)


def create_db_and_tables() -> None:
    """
    Create the users / refresh_tokens tables when missing.

    Called by the app lifespan and by create_admin.py.
    """
    # registers User and RefreshToken on SQLModel.metadata
    from claims_portal.models import user as _user_models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """
    Request-scoped Session dependency.

    The credential store commits its own writes; the session is closed
    once the response has been produced.
    """
    with Session(engine) as session:
        yield session
