# claims_portal/core/dependencies.py
"""
FastAPI dependencies for the process-wide services.

The services are built once in the application lifespan
(`claims_portal.main`) and stored on `app.state`; handlers receive them
through these functions, which tests override via
`app.dependency_overrides`.
"""

from fastapi import HTTPException, Request, status

from claims_portal.core.tokens import TokenService
from claims_portal.services.auth_service import AuthService
from claims_portal.services.claim_service import ClaimService
from claims_portal.services.credential_store import CredentialStore


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_claim_service(request: Request) -> ClaimService:
    """
    Raises:
        HTTPException(503): ClickUp credentials are not configured.
    """
    service = getattr(request.app.state, "claim_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Claims service is not configured",
        )
    return service
