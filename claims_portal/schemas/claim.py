# claims_portal/schemas/claim.py
from typing import Any

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

NOT_SPECIFIED = "Not Specified"


class NormalizedField(SQLModel):
    """One custom field after coercion; value is a string or a number."""

    name: str
    value: Any
    type: str | None = None


class ClaimSnapshot(SQLModel):
    """
    Stable view of one ClickUp claim task.

    Recomputed from the raw task on every request and never stored.
    """

    id: str
    name: str = NOT_SPECIFIED
    status: Any = NOT_SPECIFIED
    description: str = ""
    custom_fields: list[NormalizedField] = Field(default_factory=list)
    attachments: list[Any] = Field(default_factory=list)
    comments: list[Any] = Field(default_factory=list)


class ClaimStatus(SQLModel):
    status: str = "unknown"
    color: str = "#999999"


class ClaimSummary(SQLModel):
    """A claim linked from a contractor task, as listed on the dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    claim_id: str = Field(alias="claimId")
    name: str = NOT_SPECIFIED
    status: ClaimStatus = Field(default_factory=ClaimStatus)


class DashboardRead(SQLModel):
    claims: list[ClaimSummary]
    statuses: list[str]
