# claims_portal/core/auth.py
import logging
from typing import Callable

from fastapi import Depends, Request
from pydantic import ValidationError

from claims_portal.core.dependencies import get_token_service
from claims_portal.core.exceptions import Forbidden, InvalidToken, NotAuthenticated
from claims_portal.core.tokens import TokenService
from claims_portal.schemas.auth import Identity

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
SESSION_USER_KEY = "user"

Resolver = Callable[[Request, TokenService], Identity | None]


def accepts_json(request: Request) -> bool:
    """True when the caller declared it wants a JSON answer (API client, fetch)."""
    return "application/json" in request.headers.get("accept", "")


def resolve_from_token(request: Request, tokens: TokenService) -> Identity | None:
    """
    Bearer header first, `accessToken` cookie otherwise.

    A present but invalid token is logged and treated as "not applicable"
    so the next strategy still gets a chance.
    """
    try:
        header = request.headers.get("authorization")
        if header:
            token = tokens.extract_bearer_token(header)
        else:
            token = request.cookies.get(ACCESS_COOKIE)
        if not token:
            return None
        claims = tokens.verify_access_token(token)
    except InvalidToken as exc:
        logger.info("Token authentication failed, trying session: %s", exc.message)
        return None

    return Identity(
        id=claims.id,
        email=claims.email,
        name=claims.name,
        contractor_id=claims.contractor_id,
        role=claims.role,
        is_admin=claims.is_admin,
        user_type=claims.user_type,
        source="token",
    )


def resolve_from_session(request: Request, tokens: TokenService) -> Identity | None:
    """Legacy cookie session; the stored user may hold only id/email/name/contractor."""
    if "session" not in request.scope:
        return None
    user = request.session.get(SESSION_USER_KEY)
    if not isinstance(user, dict) or not user.get("id"):
        return None
    try:
        return Identity.model_validate({**user, "source": "session"})
    except ValidationError:
        logger.warning("Discarding malformed session user")
        return None


# Tried in order; the first identity wins.
RESOLVERS: tuple[Resolver, ...] = (resolve_from_token, resolve_from_session)


def resolve_identity(request: Request, tokens: TokenService) -> Identity | None:
    for resolver in RESOLVERS:
        identity = resolver(request, tokens)
        if identity is not None:
            request.state.user = identity
            return identity
    return None


def get_current_identity(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Identity | None:
    """
    Resolve the caller without enforcing anything.

    Returns:
        Identity if a token or legacy session authenticated the request, else None.
    """
    return resolve_identity(request, tokens)


def require_auth(identity: Identity | None = Depends(get_current_identity)) -> Identity:
    """
    Enforce authentication.

    Raises:
        NotAuthenticated: rendered as 401 JSON for API callers and as a
        redirect to the login page for browsers (see main.py handlers).
    """
    if identity is None:
        raise NotAuthenticated()
    return identity


def require_admin(identity: Identity = Depends(require_auth)) -> Identity:
    """
    Enforce admin access: is_admin flag or role admin / master_admin.

    Raises:
        Forbidden: rendered as 403 JSON or an access-denied page.
    """
    if not identity.has_admin_access:
        raise Forbidden()
    return identity
