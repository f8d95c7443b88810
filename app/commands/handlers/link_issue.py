"""
JIRA_LINK_TASK: link an external issue as a read-only task.

The deployment in the payload picks the adapter: ``cloud`` (default) or
``data_center``.
"""

from __future__ import annotations

from loguru import logger

from app.commands.pipeline import BaseCommandHandler
from app.commands.types import Command, CommandType, LinkIssuePayload, LoadedPolicy
from kanbax_core.domain.audit import AuditAction
from kanbax_core.domain.interfaces import IssueAdapter, TaskRepository
from kanbax_core.domain.policy import AuditLevel, PolicyContext, PolicyScope, allow_rule
from kanbax_core.domain.task import JiraSource, Task, TaskPriority, TaskStatus

# Rule action for the minimal issue fetch the link performs.
JIRA_FETCH_MINIMAL = "JIRA_FETCH_MINIMAL"


def instance_url_from(issue_url: str) -> str:
    """``https://x.atlassian.net/browse/KAN-1`` -> ``https://x.atlassian.net``."""
    return issue_url.split("/browse/")[0]


class LinkIssueHandler(BaseCommandHandler):
    command_type = CommandType.JIRA_LINK_TASK
    payload_model = LinkIssuePayload
    required_permissions = ("task.create", "jira.link")
    audit_action = AuditAction.TASK_CREATE

    def __init__(
        self,
        repository: TaskRepository,
        cloud_adapter: IssueAdapter,
        data_center_adapter: IssueAdapter,
    ):
        self.repository = repository
        self.cloud_adapter = cloud_adapter
        self.data_center_adapter = data_center_adapter

    def resource_id(self, command: Command) -> str:
        return self.parse(command).issue_key

    async def load_policy_context(self, command: Command) -> LoadedPolicy:
        payload: LinkIssuePayload = self.parse(command)
        context = PolicyContext(
            tenant_id=command.tenant_id,
            scope=PolicyScope.BOARD,
            scope_id=payload.board_id,
            rules=(
                allow_rule("jira-link-1", CommandType.JIRA_LINK_TASK.value),
                allow_rule("jira-fetch-1", JIRA_FETCH_MINIMAL),
            ),
            audit_level=AuditLevel.FULL,
        )
        return LoadedPolicy(context=context)

    async def handle(self, command: Command, loaded: LoadedPolicy) -> Task:
        payload: LinkIssuePayload = self.parse(command)
        cloud = payload.deployment == "cloud"
        adapter = self.cloud_adapter if cloud else self.data_center_adapter

        issue = await adapter.get_issue_minimal(command.tenant_id, payload.issue_key)
        logger.debug(f"[{command.request_id}] Fetched {issue.issue_key} ({issue.status}) from {payload.deployment}")

        task = Task(
            tenant_id=command.tenant_id,
            board_id=payload.board_id,
            title=f"[{issue.issue_key}] {issue.summary}",
            status=TaskStatus.TODO,
            priority=TaskPriority.MEDIUM,
            source=JiraSource(
                issue_key=issue.issue_key,
                instance_url=instance_url_from(issue.url),
                instance_type="CLOUD" if cloud else "DATA_CENTER",
                sync_mode="link",
            ),
            policy_context=loaded.context,
        )

        await self.repository.save(task)
        return task
