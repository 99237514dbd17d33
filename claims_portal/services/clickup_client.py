# claims_portal/services/clickup_client.py
"""
ClickUp API v2 client used as the claims source.

Responsibilities:
  - fetch single tasks (claims and contractor tasks)
  - fetch task comments
  - map transport / HTTP failures to ClaimsServiceError

Tasks are addressed by custom task id, so every request carries
`custom_task_ids=true&team_id=<CLICKUP_TEAM_ID>`.
"""

import logging
from typing import Any, Protocol

import httpx

from claims_portal.core.config import Settings
from claims_portal.core.exceptions import ClaimsServiceError

logger = logging.getLogger(__name__)


class ClaimsClient(Protocol):
    """What the portal needs from the claims SaaS."""

    def get_task(self, task_id: str) -> dict[str, Any]: ...

    def get_task_comments(self, task_id: str) -> list[dict[str, Any]]: ...


class ClickUpClient:
    def __init__(
        self,
        api_key: str,
        team_id: str | None = None,
        *,
        base_url: str = "https://api.clickup.com/api/v2",
        timeout_s: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("api_key is required for ClickUpClient")
        self._team_id = team_id
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": api_key, "Content-Type": "application/json"},
            timeout=timeout_s,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClickUpClient":
        return cls(
            settings.CLICKUP_API_KEY or "",
            settings.CLICKUP_TEAM_ID,
            base_url=settings.CLICKUP_API_URL,
            timeout_s=settings.CLICKUP_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        self._client.close()

    def _params(self) -> dict[str, str]:
        params = {"custom_task_ids": "true"}
        if self._team_id:
            params["team_id"] = self._team_id
        return params

    def _get(self, path: str) -> Any:
        try:
            resp = self._client.get(path, params=self._params())
        except httpx.HTTPError as exc:
            logger.error("ClickUp request %s failed: %s", path, exc)
            raise ClaimsServiceError(f"ClickUp request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.error("ClickUp %s answered HTTP %s", path, resp.status_code)
            raise ClaimsServiceError(
                f"ClickUp answered HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise ClaimsServiceError("ClickUp returned a non-JSON body") from exc

    def get_task(self, task_id: str) -> dict[str, Any]:
        """
        Raises:
            ClaimsServiceError: network failure or HTTP error (status_code set).
        """
        data = self._get(f"/task/{task_id}")
        return data if isinstance(data, dict) else {}

    def get_task_comments(self, task_id: str) -> list[dict[str, Any]]:
        """Comments of a task, newest first; an empty list when they can't be fetched."""
        try:
            data = self._get(f"/task/{task_id}/comment")
        except ClaimsServiceError:
            logger.warning("Returning no comments for task %s", task_id)
            return []
        comments = data.get("comments") if isinstance(data, dict) else None
        return comments if isinstance(comments, list) else []
