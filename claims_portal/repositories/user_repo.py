# claims_portal/repositories/user_repo.py
import uuid

from sqlmodel import Session, select

from claims_portal.models.user import User


class UserRepository:
    """
    Data access layer for portal accounts.

    Emails arrive here already normalized by the credential store;
    nothing in this class hashes, validates or decides anything.
    """

    # ----- Lookups -----

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Exact match on the stored (lowercased) email."""
        stmt = select(User).where(User.email == email)
        return session.exec(stmt).first()

    def lock(self, session: Session, user_id: uuid.UUID) -> User | None:
        """
        Re-read an account with a row lock (SELECT ... FOR UPDATE).

        Holds until the surrounding transaction commits; used to serialize
        concurrent writers of the same user's refresh-token set. Backends
        without row locks (SQLite) serialize writes on their own.
        """
        stmt = select(User).where(User.id == user_id).with_for_update()
        return session.exec(stmt).first()

    def list(self, session: Session, skip: int = 0, limit: int = 50) -> list[User]:
        """
        Accounts for the admin listing, newest first.

        Args:
            skip: rows to skip
            limit: page size
        """
        stmt = select(User).order_by(User.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    # ----- Writes (each commits) -----

    def create(self, session: Session, user: User) -> User:
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def update(self, session: Session, user: User) -> User:
        """Flush profile, status, password or login bookkeeping changes."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def delete(self, session: Session, user: User) -> None:
        """Delete an account. Token rows must be removed in the same transaction first."""
        session.delete(user)
        session.commit()
