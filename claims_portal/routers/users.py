# claims_portal/routers/users.py
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from claims_portal.core.auth import require_admin, require_auth
from claims_portal.core.dependencies import get_credential_store
from claims_portal.database import get_session
from claims_portal.schemas.auth import Identity
from claims_portal.schemas.user import UserRead, UserStatusUpdate
from claims_portal.services.credential_store import CredentialStore

router = APIRouter(tags=["Users"])


# -------- Self profile --------


@router.get("/users/me", response_model=UserRead)
def read_me(
    session: Session = Depends(get_session),
    store: CredentialStore = Depends(get_credential_store),
    identity: Identity = Depends(require_auth),
):
    """
    Return the authenticated user's profile.

    Raises:
        HTTPException(404): the account was deleted after the token was issued.
    """
    user = store.get_user(session, identity.id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserRead.from_user(user)


# -------- Admin endpoints --------


@router.get(
    "/admin/users",
    response_model=list[UserRead],
    dependencies=[Depends(require_admin)],
)
def list_users(
    session: Session = Depends(get_session),
    store: CredentialStore = Depends(get_credential_store),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all accounts (admin only), newest first.

    Pagination via skip/limit.
    """
    return [UserRead.from_user(u) for u in store.list_users(session, skip, limit)]


@router.patch(
    "/admin/users/{user_id}/status",
    response_model=UserRead,
    dependencies=[Depends(require_admin)],
)
def change_status(
    user_id: uuid.UUID,
    payload: UserStatusUpdate,
    session: Session = Depends(get_session),
    store: CredentialStore = Depends(get_credential_store),
):
    """
    Activate, deactivate or suspend an account (admin only).

    Non-active accounts can no longer log in; their refresh tokens are
    revoked so existing devices drop out at the next refresh.
    """
    user = store.get_user(session, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    user = store.set_status(session, user, payload.status)
    if user.status != "active":
        store.remove_all_refresh_tokens(session, user)
    return UserRead.from_user(user)
