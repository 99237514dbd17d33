# claims_portal/repositories/refresh_token_repo.py
import uuid
from datetime import datetime

from sqlalchemy import delete
from sqlmodel import Session, select

from claims_portal.models.user import RefreshToken


class RefreshTokenRepository:
    """
    Data access layer for RefreshToken rows.

    Methods never commit: the credential store owns the transaction so a
    lock taken on the user row covers every statement issued here.
    """

    def list_active(
        self, session: Session, user_id: uuid.UUID, now: datetime
    ) -> list[RefreshToken]:
        """Live records of a user, oldest first."""
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.expires_at > now)
            .order_by(RefreshToken.created_at.asc())
        )
        return list(session.exec(stmt).all())

    def get_active(
        self, session: Session, user_id: uuid.UUID, token: str, now: datetime
    ) -> RefreshToken | None:
        stmt = select(RefreshToken).where(
            RefreshToken.user_id == user_id,
            RefreshToken.token == token,
            RefreshToken.expires_at > now,
        )
        return session.exec(stmt).first()

    def add(self, session: Session, record: RefreshToken) -> RefreshToken:
        session.add(record)
        return record

    def delete_token(self, session: Session, user_id: uuid.UUID, token: str) -> int:
        """Delete one record; the row count says whether it was still there."""
        stmt = delete(RefreshToken).where(
            RefreshToken.user_id == user_id,
            RefreshToken.token == token,
        )
        return session.exec(stmt).rowcount

    def delete_ids(self, session: Session, ids: list[uuid.UUID]) -> int:
        if not ids:
            return 0
        stmt = delete(RefreshToken).where(RefreshToken.id.in_(ids))
        return session.exec(stmt).rowcount

    def delete_expired(self, session: Session, user_id: uuid.UUID, now: datetime) -> int:
        stmt = delete(RefreshToken).where(
            RefreshToken.user_id == user_id,
            RefreshToken.expires_at <= now,
        )
        return session.exec(stmt).rowcount

    def delete_all(self, session: Session, user_id: uuid.UUID) -> int:
        stmt = delete(RefreshToken).where(RefreshToken.user_id == user_id)
        return session.exec(stmt).rowcount
