# claims_portal/core/tokens.py
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import ValidationError

from claims_portal.core.config import Settings
from claims_portal.core.exceptions import InvalidToken, MalformedHeader, WrongTokenType
from claims_portal.models.user import User
from claims_portal.schemas.auth import AccessTokenClaims, RefreshTokenClaims, TokenPair

logger = logging.getLogger(__name__)

REFRESH_TOKEN_TYPE = "refresh"


class TokenService:
    """
    Issues and verifies signed access / refresh tokens (HS256 JWTs).

    Access and refresh tokens are signed with different secrets and
    carry different audiences, so neither verifies as the other. The
    service keeps no state besides its configuration; one instance is
    built at startup and shared through `app.state`.
    """

    def __init__(self, settings: Settings):
        self._access_secret = settings.JWT_SECRET
        self._refresh_secret = settings.JWT_REFRESH_SECRET
        self._algorithm = settings.JWT_ALGORITHM
        self._issuer = settings.JWT_ISSUER
        self._access_audience = settings.ACCESS_TOKEN_AUDIENCE
        self._refresh_audience = settings.REFRESH_TOKEN_AUDIENCE
        self.access_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    # ----- Issuance -----

    def _encode(self, payload: dict[str, Any], secret: str, audience: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            **payload,
            "iss": self._issuer,
            "aud": audience,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, secret, algorithm=self._algorithm)

    def create_access_token(self, user: User) -> str:
        payload = {
            "sub": str(user.id),
            "id": str(user.id),
            "email": user.email,
            "name": user.name,
            "contractorId": user.contractor_id,
            "role": user.role or "user",
            "isAdmin": bool(user.is_admin),
            "userType": user.user_type or "contractor",
        }
        return self._encode(payload, self._access_secret, self._access_audience, self.access_ttl)

    def create_refresh_token(self, user: User) -> str:
        payload = {
            "sub": str(user.id),
            "id": str(user.id),
            "email": user.email,
            "tokenType": REFRESH_TOKEN_TYPE,
        }
        return self._encode(payload, self._refresh_secret, self._refresh_audience, self.refresh_ttl)

    def issue_token_pair(self, user: User) -> TokenPair:
        """Create a fresh access + refresh token pair for `user`."""
        return TokenPair(
            access_token=self.create_access_token(user),
            refresh_token=self.create_refresh_token(user),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    # ----- Verification -----

    def _decode(self, token: str, secret: str, audience: str) -> dict[str, Any]:
        if not token or not isinstance(token, str):
            raise InvalidToken("No token provided")
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                audience=audience,
                issuer=self._issuer,
            )
        except JWTError as exc:
            raise InvalidToken(f"Invalid token: {exc}") from exc

    def verify_access_token(self, token: str) -> AccessTokenClaims:
        """
        Verify signature, expiry, issuer and audience of an access token.

        Raises:
            InvalidToken: bad signature / expired / malformed.
            WrongTokenType: the token carries a tokenType marker (refresh).
        """
        payload = self._decode(token, self._access_secret, self._access_audience)
        if payload.get("tokenType") is not None:
            raise WrongTokenType("Refresh token presented as access token")
        try:
            return AccessTokenClaims.model_validate(payload)
        except ValidationError as exc:
            raise InvalidToken("Access token is missing required claims") from exc

    def verify_refresh_token(self, token: str) -> RefreshTokenClaims:
        """
        Verify a refresh token and its tokenType marker.

        Raises:
            InvalidToken: bad signature / expired / malformed.
            WrongTokenType: signature is fine but tokenType != "refresh".
        """
        payload = self._decode(token, self._refresh_secret, self._refresh_audience)
        if payload.get("tokenType") != REFRESH_TOKEN_TYPE:
            raise WrongTokenType()
        try:
            return RefreshTokenClaims.model_validate(payload)
        except ValidationError as exc:
            raise InvalidToken("Refresh token is missing required claims") from exc

    # ----- Helpers -----

    @staticmethod
    def extract_bearer_token(header_value: str | None) -> str:
        """Return the token of an exact `Bearer <token>` header."""
        if not header_value:
            raise MalformedHeader("No authorization header provided")
        parts = header_value.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
            raise MalformedHeader()
        return parts[1]

    @staticmethod
    def decode_unverified(token: str) -> dict[str, Any] | None:
        """Read claims without checking the signature. Diagnostics only."""
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return None

    def get_token_expiration(self, token: str) -> datetime | None:
        claims = self.decode_unverified(token)
        if not claims or "exp" not in claims:
            return None
        try:
            return datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None

    def is_token_expired(self, token: str) -> bool:
        expiry = self.get_token_expiration(token)
        if expiry is None:
            return True
        return datetime.now(timezone.utc) >= expiry
