# claims_portal/services/claim_service.py
from claims_portal.core.exceptions import ClaimsServiceError
from claims_portal.schemas.claim import ClaimSnapshot, ClaimSummary, DashboardRead
from claims_portal.services.claim_normalizer import ClaimNormalizer
from claims_portal.services.clickup_client import ClaimsClient


class ClaimService:
    """
    Read-only access to claims for the portal.

    Responsibilities:
      - fetch raw tasks through the claims client
      - hand every payload to the normalizer before it leaves the service
    Nothing is cached: each call reflects the current state in ClickUp.
    """

    def __init__(self, client: ClaimsClient, normalizer: ClaimNormalizer | None = None):
        self.client = client
        self.normalizer = normalizer or ClaimNormalizer()

    def get_claim(self, claim_id: str) -> ClaimSnapshot:
        """
        Snapshot of one claim with its 5 most recent comments.

        Raises:
            ClaimsServiceError: the task could not be fetched.
        """
        task = self.client.get_task(claim_id)
        if not task:
            raise ClaimsServiceError("Claim not found", status_code=404)
        comments = self.client.get_task_comments(claim_id)
        return self.normalizer.normalize(task, comments)

    def list_claims(self, contractor_id: str | None) -> list[ClaimSummary]:
        """Claims linked to a contractor task; none without a contractor id."""
        if not contractor_id:
            return []
        contractor_task = self.client.get_task(contractor_id)
        return self.normalizer.summarize_contractor_claims(contractor_task)

    def dashboard(self, contractor_id: str | None) -> DashboardRead:
        claims = self.list_claims(contractor_id)
        statuses = list(dict.fromkeys(c.status.status for c in claims))
        return DashboardRead(claims=claims, statuses=statuses)
