# claims_portal/routers/auth.py
import html
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import ValidationError
from sqlmodel import Session

from claims_portal.core.auth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    SESSION_USER_KEY,
    accepts_json,
    require_auth,
)
from claims_portal.core.config import get_settings
from claims_portal.core.dependencies import get_auth_service
from claims_portal.core.exceptions import DuplicateEmail, InvalidCredentials, InvalidToken
from claims_portal.database import get_session
from claims_portal.models.user import User
from claims_portal.schemas.auth import (
    ChangePasswordRequest,
    Identity,
    LoginRequest,
    SignupRequest,
    TokenPair,
)
from claims_portal.schemas.user import UserRead
from claims_portal.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])

logger = logging.getLogger(__name__)

DASHBOARD_URL = "/dashboard"
HOME_URL = "/"
LOGIN_URL = "/auth/login"

_LOGIN_PAGE = """<!doctype html>
<html>
<head><title>Contractor Portal - Login</title></head>
<body>
  <h1>Contractor Portal</h1>
  {error}
  <form method="post" action="{action}">
    <input type="email" name="email" value="{email}" placeholder="Email" required>
    <input type="password" name="password" placeholder="Password" required>
    <button type="submit">Log in</button>
  </form>
</body>
</html>"""


# -------- helpers --------


async def request_payload(request: Request) -> dict[str, Any]:
    """
    Body of a JSON or HTML-form request as a plain dict.

    Browsers post forms, API clients post JSON; anything unreadable is
    treated as an empty body.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    return {}


def render_login_page(error: str | None = None, email: str = "") -> str:
    error_html = f'<p class="error">{html.escape(error)}</p>' if error else ""
    return _LOGIN_PAGE.format(error=error_html, action=LOGIN_URL, email=html.escape(email))


def _client_info(request: Request) -> tuple[str | None, str | None]:
    ip = request.client.host if request.client else None
    return request.headers.get("user-agent"), ip


def set_auth_cookies(response, pair: TokenPair, auth: AuthService) -> None:
    options = {
        "httponly": True,
        "secure": get_settings().is_production,
        "samesite": "strict",
    }
    response.set_cookie(
        ACCESS_COOKIE,
        pair.access_token,
        max_age=int(auth.tokens.access_ttl.total_seconds()),
        **options,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=int(auth.tokens.refresh_ttl.total_seconds()),
        **options,
    )


def clear_auth_cookies(response) -> None:
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)


def _remember_in_session(request: Request, user: User) -> None:
    """Legacy session login, kept for pages that still read request.session."""
    request.session[SESSION_USER_KEY] = {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "contractor_id": user.contractor_id,
    }


def _authenticated_response(
    request: Request,
    auth: AuthService,
    user: User,
    pair: TokenPair,
    message: str,
):
    _remember_in_session(request, user)
    if accepts_json(request):
        response = JSONResponse(
            {
                "message": message,
                "user": UserRead.from_user(user).model_dump(mode="json", by_alias=True),
                "tokens": pair.model_dump(by_alias=True),
            }
        )
    else:
        response = RedirectResponse(DASHBOARD_URL, status_code=status.HTTP_303_SEE_OTHER)
    set_auth_cookies(response, pair, auth)
    return response


def _signed_out_response(request: Request, message: str, redirect_to: str = HOME_URL):
    request.session.clear()
    if accepts_json(request):
        response = JSONResponse({"message": message})
    else:
        response = RedirectResponse(redirect_to, status_code=status.HTTP_303_SEE_OTHER)
    clear_auth_cookies(response)
    return response


# -------- signup / login --------


@router.post("/signup")
def signup(
    request: Request,
    payload: dict[str, Any] = Depends(request_payload),
    session: Session = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Create an account and log it in.

    Body: {email, password, name, contractorId} as JSON or form.

    Returns:
      - JSON {message, user, tokens} when the caller accepts JSON
      - otherwise a redirect to the dashboard
    Both set the accessToken / refreshToken cookies.
    """
    if not str(payload.get("contractorId") or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Contractor ID is required",
        )
    try:
        data = SignupRequest.model_validate(payload)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A valid email, password and name are required",
        )

    user_agent, ip = _client_info(request)
    try:
        user, pair = auth.signup(session, data, user_agent=user_agent, ip=ip)
    except DuplicateEmail as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)

    return _authenticated_response(request, auth, user, pair, "Signup successful")


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request):
    """Login form; users with a live session go straight to the dashboard."""
    if request.session.get(SESSION_USER_KEY):
        return RedirectResponse(DASHBOARD_URL, status_code=status.HTTP_303_SEE_OTHER)
    return HTMLResponse(render_login_page())


@router.post("/login")
def login(
    request: Request,
    payload: dict[str, Any] = Depends(request_payload),
    session: Session = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Exchange email + password for a token pair.

    Any failure answers "Invalid email or password", whether the account
    exists or not.
    """
    try:
        data = LoginRequest.model_validate(payload)
    except ValidationError:
        data = LoginRequest()

    user_agent, ip = _client_info(request)
    try:
        user, pair = auth.login(session, data.email, data.password, user_agent=user_agent, ip=ip)
    except InvalidCredentials as exc:
        logger.info("Failed login attempt")
        if accepts_json(request):
            return JSONResponse(
                {"error": exc.message},
                status_code=status.HTTP_401_UNAUTHORIZED,
            )
        return HTMLResponse(
            render_login_page(exc.message, data.email),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    return _authenticated_response(request, auth, user, pair, "Login successful")


# -------- logout --------


@router.get("/logout")
def logout(
    request: Request,
    session: Session = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
):
    """Revoke the refresh cookie if possible, clear cookies and session, go home."""
    auth.logout(session, request.cookies.get(REFRESH_COOKIE))
    request.session.clear()
    response = RedirectResponse(HOME_URL, status_code=status.HTTP_303_SEE_OTHER)
    clear_auth_cookies(response)
    return response


@router.post("/logout-all")
def logout_all(
    request: Request,
    session: Session = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
):
    """Revoke every refresh token of the caller (all devices)."""
    session_user = request.session.get(SESSION_USER_KEY) or {}
    auth.logout_all(
        session,
        refresh_token=request.cookies.get(REFRESH_COOKIE),
        session_user_id=session_user.get("id") if isinstance(session_user, dict) else None,
    )
    return _signed_out_response(request, "Logged out from all devices")


# -------- token refresh --------


@router.post("/refresh-token")
def refresh_token(
    request: Request,
    payload: dict[str, Any] = Depends(request_payload),
    session: Session = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Rotate a refresh token (body `refreshToken`, else the cookie).

    Returns {message, tokens} and sets new cookies. The presented token
    stops working immediately.

    Raises:
        HTTPException(401): missing, invalid, expired or revoked token.
    """
    token = payload.get("refreshToken") or request.cookies.get(REFRESH_COOKIE)
    if not token or not isinstance(token, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required",
        )

    user_agent, ip = _client_info(request)
    try:
        _, pair = auth.refresh(session, token, user_agent=user_agent, ip=ip)
    except InvalidToken as exc:
        logger.info("Token refresh rejected: %s", exc.message)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    response = JSONResponse(
        {"message": "Tokens refreshed successfully", "tokens": pair.model_dump(by_alias=True)}
    )
    set_auth_cookies(response, pair, auth)
    return response


# -------- account --------


@router.post("/change-password")
def change_password(
    request: Request,
    payload: dict[str, Any] = Depends(request_payload),
    session: Session = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
    identity: Identity = Depends(require_auth),
):
    """
    Change the caller's password; every device has to log in again.

    Body: {currentPassword, newPassword (min 6 chars)}
    """
    try:
        data = ChangePasswordRequest.model_validate(payload)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="currentPassword and a newPassword of at least 6 characters are required",
        )
    try:
        auth.change_password(session, identity, data.current_password, data.new_password)
    except InvalidCredentials as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)

    return _signed_out_response(request, "Password changed", redirect_to=LOGIN_URL)


@router.post("/delete-account")
def delete_account(
    request: Request,
    session: Session = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
    identity: Identity = Depends(require_auth),
):
    """Delete the caller's account and every refresh token it holds."""
    auth.delete_account(session, identity)
    return _signed_out_response(request, "Account deleted")
