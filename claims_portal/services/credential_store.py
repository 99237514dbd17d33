# claims_portal/services/credential_store.py
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from claims_portal.core import security
from claims_portal.core.config import Settings
from claims_portal.core.exceptions import DuplicateEmail
from claims_portal.models.user import RefreshToken, User
from claims_portal.repositories.refresh_token_repo import RefreshTokenRepository
from claims_portal.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

ACCOUNT_STATUSES = ("active", "inactive", "suspended")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class CredentialStore:
    """
    Persistence rules for accounts and their refresh tokens.

    Responsibilities:
      - unique, normalized emails and bcrypt password hashes
      - the bounded set of refresh tokens per user (oldest evicted first)
      - login bookkeeping (last_login, capped login history)

    Every mutation of a user's token set locks that user's row first, so
    concurrent logins / refreshes of one user apply one after another.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        token_repo: RefreshTokenRepository,
        settings: Settings,
    ):
        self.user_repo = user_repo
        self.token_repo = token_repo
        self.max_tokens = settings.MAX_REFRESH_TOKENS
        self.token_ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        self.history_limit = settings.LOGIN_HISTORY_LIMIT
        self.bcrypt_rounds = settings.BCRYPT_ROUNDS

    # ----- Accounts -----

    def create_user(
        self,
        session: Session,
        email: str,
        raw_password: str,
        name: str,
        contractor_id: str,
        *,
        role: str = "user",
        is_admin: bool = False,
    ) -> User:
        """
        Create an account.

        Raises:
            DuplicateEmail: the normalized email is already registered.
        """
        email = normalize_email(email)
        if self.user_repo.get_by_email(session, email):
            raise DuplicateEmail()

        user = User(
            email=email,
            password_hash=security.hash_password(raw_password, rounds=self.bcrypt_rounds),
            name=name.strip(),
            contractor_id=contractor_id.strip(),
            role=role,
            is_admin=is_admin,
        )
        try:
            return self.user_repo.create(session, user)
        except IntegrityError as exc:
            # lost a race against a concurrent signup with the same email
            session.rollback()
            raise DuplicateEmail() from exc

    def find_by_email(self, session: Session, email: str) -> User | None:
        return self.user_repo.get_by_email(session, normalize_email(email))

    def get_user(self, session: Session, user_id: uuid.UUID | str) -> User | None:
        """Look a user up by id; malformed ids simply find nothing."""
        if not isinstance(user_id, uuid.UUID):
            try:
                user_id = uuid.UUID(str(user_id))
            except ValueError:
                return None
        return self.user_repo.get_by_id(session, user_id)

    def list_users(self, session: Session, skip: int = 0, limit: int = 50) -> list[User]:
        return self.user_repo.list(session, skip=skip, limit=limit)

    def verify_password(self, user: User, raw_password: str) -> bool:
        return security.verify_password(raw_password, user.password_hash)

    def change_password(self, session: Session, user: User, new_password: str) -> User:
        """The only place a password hash is regenerated."""
        user.password_hash = security.hash_password(new_password, rounds=self.bcrypt_rounds)
        return self.user_repo.update(session, user)

    def set_status(self, session: Session, user: User, status: str) -> User:
        if status not in ACCOUNT_STATUSES:
            raise ValueError(f"Unknown account status: {status}")
        user.status = status
        return self.user_repo.update(session, user)

    def record_login(
        self,
        session: Session,
        user: User,
        ip: str | None,
        user_agent: str | None,
    ) -> User:
        """Stamp last_login and append to the login history, keeping the newest entries."""
        now = datetime.now(timezone.utc)
        entry = {"timestamp": now.isoformat(), "ip": ip, "user_agent": user_agent}
        # reassign (not append) so the JSON column is flagged dirty
        user.login_history = [*(user.login_history or []), entry][-self.history_limit:]
        user.last_login = now
        return self.user_repo.update(session, user)

    def delete_user(self, session: Session, user: User) -> None:
        """Delete an account together with all of its refresh tokens."""
        self.token_repo.delete_all(session, user.id)
        self.user_repo.delete(session, user)

    # ----- Refresh tokens -----

    def add_refresh_token(
        self,
        session: Session,
        user: User,
        token: str,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> None:
        """
        Store a refresh token, evicting the oldest ones so that at most
        `max_tokens` remain afterwards.
        """
        self._lock(session, user)
        self._add(session, user, token, user_agent, ip)
        session.commit()

    def _add(
        self,
        session: Session,
        user: User,
        token: str,
        user_agent: str | None,
        ip: str | None,
    ) -> None:
        now = datetime.now(timezone.utc)
        self.token_repo.delete_expired(session, user.id, now)

        active = self.token_repo.list_active(session, user.id, now)
        overflow = len(active) - (self.max_tokens - 1)
        if overflow > 0:
            self.token_repo.delete_ids(session, [row.id for row in active[:overflow]])
            logger.info("Evicted %d refresh token(s) for user %s", overflow, user.id)

        self.token_repo.add(
            session,
            RefreshToken(
                user_id=user.id,
                token=token,
                created_at=now,
                expires_at=now + self.token_ttl,
                user_agent=user_agent,
                ip=ip,
            ),
        )

    def remove_refresh_token(self, session: Session, user: User, token: str) -> bool:
        """Remove one token; returns False when it was already gone."""
        self._lock(session, user)
        removed = self.token_repo.delete_token(session, user.id, token)
        session.commit()
        return removed > 0

    def remove_all_refresh_tokens(self, session: Session, user: User) -> int:
        self._lock(session, user)
        removed = self.token_repo.delete_all(session, user.id)
        session.commit()
        return removed

    def has_refresh_token(self, session: Session, user: User, token: str) -> bool:
        """True only for a stored record that has not passed its storage TTL."""
        now = datetime.now(timezone.utc)
        return self.token_repo.get_active(session, user.id, token, now) is not None

    def rotate_refresh_token(
        self,
        session: Session,
        user: User,
        old_token: str,
        new_token: str,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> bool:
        """
        Replace `old_token` by `new_token` in one transaction.

        Returns False (and stores nothing) when `old_token` is no longer
        present or has expired, i.e. a concurrent refresh already consumed it.
        """
        self._lock(session, user)
        now = datetime.now(timezone.utc)
        if self.token_repo.get_active(session, user.id, old_token, now) is None:
            session.rollback()
            return False
        if self.token_repo.delete_token(session, user.id, old_token) == 0:
            session.rollback()
            return False
        self._add(session, user, new_token, user_agent, ip)
        session.commit()
        return True

    def count_refresh_tokens(self, session: Session, user: User) -> int:
        return len(self.token_repo.list_active(session, user.id, datetime.now(timezone.utc)))

    def _lock(self, session: Session, user: User) -> None:
        self.user_repo.lock(session, user.id)
