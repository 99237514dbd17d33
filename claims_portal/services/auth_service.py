# claims_portal/services/auth_service.py
import logging

from sqlmodel import Session

from claims_portal.core.exceptions import InvalidCredentials, InvalidToken, NotAuthenticated
from claims_portal.core.tokens import TokenService
from claims_portal.models.user import User
from claims_portal.schemas.auth import Identity, SignupRequest, TokenPair
from claims_portal.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class AuthService:
    """
    Token lifecycle on top of the credential store.

    Responsibilities:
      - signup / login: issue a pair and remember the refresh token
      - refresh: verify, check revocation, rotate
      - logout / logout-all / delete-account: revoke

    Cookies, the legacy session and response negotiation belong to the
    router; this class only deals in users, tokens and domain errors.
    """

    def __init__(self, store: CredentialStore, tokens: TokenService):
        self.store = store
        self.tokens = tokens

    def _issue(
        self, session: Session, user: User, user_agent: str | None, ip: str | None
    ) -> TokenPair:
        pair = self.tokens.issue_token_pair(user)
        self.store.add_refresh_token(session, user, pair.refresh_token, user_agent, ip)
        return pair

    def signup(
        self,
        session: Session,
        payload: SignupRequest,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> tuple[User, TokenPair]:
        """
        Raises:
            DuplicateEmail: email already registered.
        """
        user = self.store.create_user(
            session,
            email=payload.email,
            raw_password=payload.password,
            name=payload.name,
            contractor_id=payload.contractor_id or "",
        )
        logger.info("Created account %s", user.id)
        return user, self._issue(session, user, user_agent, ip)

    def login(
        self,
        session: Session,
        email: str,
        password: str,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> tuple[User, TokenPair]:
        """
        Raises:
            InvalidCredentials: unknown email, wrong password or an account
            that is not active; callers cannot tell which.
        """
        user = self.store.find_by_email(session, email) if email else None
        if user is None or not password or not self.store.verify_password(user, password):
            raise InvalidCredentials()
        if user.status != "active":
            logger.info("Rejected login for %s account %s", user.status, user.id)
            raise InvalidCredentials()

        user = self.store.record_login(session, user, ip, user_agent)
        return user, self._issue(session, user, user_agent, ip)

    def refresh(
        self,
        session: Session,
        refresh_token: str | None,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> tuple[User, TokenPair]:
        """
        Exchange a stored refresh token for a brand-new pair.

        The presented token is removed and the new one stored in the same
        transaction; of two concurrent refreshes with one token only the
        first succeeds.

        Raises:
            InvalidToken: missing, bad, expired, revoked or already rotated.
        """
        if not refresh_token:
            raise InvalidToken("Refresh token required")

        claims = self.tokens.verify_refresh_token(refresh_token)
        user = self.store.get_user(session, claims.id)
        if user is None or not self.store.has_refresh_token(session, user, refresh_token):
            raise InvalidToken("Invalid refresh token")

        pair = self.tokens.issue_token_pair(user)
        rotated = self.store.rotate_refresh_token(
            session, user, refresh_token, pair.refresh_token, user_agent, ip
        )
        if not rotated:
            raise InvalidToken("Invalid refresh token")
        return user, pair

    def logout(self, session: Session, refresh_token: str | None) -> None:
        """Best effort: revoke the presented refresh token if it still verifies."""
        if not refresh_token:
            return
        try:
            claims = self.tokens.verify_refresh_token(refresh_token)
        except InvalidToken as exc:
            logger.info("Error removing refresh token: %s", exc.message)
            return
        user = self.store.get_user(session, claims.id)
        if user is not None:
            self.store.remove_refresh_token(session, user, refresh_token)

    def logout_all(
        self,
        session: Session,
        refresh_token: str | None,
        session_user_id: str | None,
    ) -> int:
        """
        Revoke every refresh token of the user named by the refresh token,
        or by the legacy session when the token doesn't verify.

        Returns:
            Number of revoked tokens (0 when no user could be resolved).
        """
        user_id = None
        if refresh_token:
            try:
                user_id = self.tokens.verify_refresh_token(refresh_token).id
            except InvalidToken as exc:
                logger.info("Refresh token verification failed: %s", exc.message)
        user_id = user_id or session_user_id
        if not user_id:
            return 0

        user = self.store.get_user(session, user_id)
        if user is None:
            return 0
        removed = self.store.remove_all_refresh_tokens(session, user)
        logger.info("Logged out %s from all devices (%d tokens)", user.id, removed)
        return removed

    def change_password(
        self,
        session: Session,
        identity: Identity,
        current_password: str,
        new_password: str,
    ) -> User:
        """
        Re-hash the password and revoke every refresh token.

        Raises:
            NotAuthenticated: the identity no longer maps to an account.
            InvalidCredentials: current password is wrong.
        """
        user = self.store.get_user(session, identity.id)
        if user is None:
            raise NotAuthenticated()
        if not self.store.verify_password(user, current_password):
            raise InvalidCredentials("Current password is incorrect")
        user = self.store.change_password(session, user, new_password)
        self.store.remove_all_refresh_tokens(session, user)
        return user

    def delete_account(self, session: Session, identity: Identity) -> None:
        """
        Raises:
            NotAuthenticated: the identity no longer maps to an account.
        """
        user = self.store.get_user(session, identity.id)
        if user is None:
            raise NotAuthenticated()
        self.store.delete_user(session, user)
        logger.info("Deleted account %s", identity.id)
