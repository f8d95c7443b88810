"""
Issue tracker adapter (Jira Cloud and Jira Data Center).

Fetches only the minimal view of an issue (key, summary, status, updated
timestamp) through the shared ServiceHttpClient, which provides connection
pooling, correlation headers and retries on 429/502/503/504.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from loguru import logger

from kanbax_core.domain.integrations import IssueMinimal
from kanbax_core.runtime import ErrorCode, RetryPolicy, RunContext, ServiceHttpClient, TerminalError

MINIMAL_FIELDS = "summary,status,updated"

InstanceType = Literal["CLOUD", "DATA_CENTER"]


def parse_jira_timestamp(value: str | None) -> datetime:
    """Parse Jira's ``2024-03-01T10:15:30.000+0000``; missing values mean now."""
    if not value:
        return datetime.now(timezone.utc)
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%f%z")
    except ValueError:
        return datetime.fromisoformat(value)


class JiraIssueAdapter:
    """
    Implements IssueAdapter against the Jira REST API v2.

    Usage:
        adapter = JiraIssueAdapter("https://acme.atlassian.net", instance_type="CLOUD")
        issue = await adapter.get_issue_minimal("tenant-1", "KAN-42")
    """

    def __init__(
        self,
        base_url: str,
        instance_type: InstanceType = "CLOUD",
        api_token: str | None = None,
        http_client: ServiceHttpClient | None = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
    ):
        self.base_url = base_url.rstrip("/")
        self.instance_type = instance_type
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self.http_client = http_client or ServiceHttpClient(
            self.base_url,
            timeout=timeout,
            retry_policy=RetryPolicy(max_attempts=max_attempts),
            default_headers=headers,
        )

    def browse_url(self, issue_key: str) -> str:
        return f"{self.base_url}/browse/{issue_key}"

    async def get_issue_minimal(self, tenant_id: str, issue_key: str) -> IssueMinimal:
        """
        Fetch the minimal view of ``issue_key`` on behalf of ``tenant_id``.

        Raises:
            TerminalError: NOT_FOUND/UNAUTHORIZED/FORBIDDEN from Jira, or a
                response without the expected fields.
            RetryableError: Jira stayed unavailable through every attempt.
        """
        context = RunContext(request_id=str(uuid.uuid4()), tenant_id=tenant_id)
        logger.info(f"[{context.request_id}] Fetching {issue_key} from Jira {self.instance_type}")

        response = await self.http_client.get(
            f"/rest/api/2/issue/{issue_key}",
            context,
            params={"fields": MINIMAL_FIELDS},
        )
        return self._to_minimal(issue_key, response.json())

    def _to_minimal(self, issue_key: str, body: dict[str, Any]) -> IssueMinimal:
        fields = body.get("fields") or {}
        summary = fields.get("summary")
        if summary is None:
            raise TerminalError(
                code=ErrorCode.INVALID_INPUT,
                message_safe=f"Jira returned no summary for {issue_key}",
            )
        key = body.get("key") or issue_key
        status = (fields.get("status") or {}).get("name", "Unknown")
        return IssueMinimal(
            issue_key=key,
            summary=summary,
            status=status,
            url=self.browse_url(key),
            updated_at=parse_jira_timestamp(fields.get("updated")),
        )

    async def close(self) -> None:
        await self.http_client.close()
