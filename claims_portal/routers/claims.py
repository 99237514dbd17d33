# claims_portal/routers/claims.py
from fastapi import APIRouter, Depends

from claims_portal.core.auth import require_auth
from claims_portal.core.dependencies import get_claim_service
from claims_portal.schemas.auth import Identity
from claims_portal.schemas.claim import ClaimSnapshot, DashboardRead
from claims_portal.services.claim_service import ClaimService

router = APIRouter(tags=["Claims"])


@router.get("/dashboard", response_model=DashboardRead)
def dashboard(
    identity: Identity = Depends(require_auth),
    service: ClaimService = Depends(get_claim_service),
):
    """
    Claims of the caller's contractor, with the distinct statuses among them.

    Auth:
      - Access token (header or cookie) or legacy session.
    """
    return service.dashboard(identity.contractor_id)


@router.get("/claims/{claim_id}", response_model=ClaimSnapshot)
def get_claim(
    claim_id: str,
    identity: Identity = Depends(require_auth),
    service: ClaimService = Depends(get_claim_service),
):
    """
    Normalized claim: custom fields, attachments and the 5 latest comments.

    Auth:
      - Access token (header or cookie) or legacy session.
    """
    return service.get_claim(claim_id)
