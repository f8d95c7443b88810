"""
Command pipeline factory.

Wires the pipeline to its collaborators. Long-lived collaborators are cached
so every caller shares one repository, audit trail and set of adapters.
"""

from __future__ import annotations

from functools import lru_cache

from app.audit.retention import RetentionService
from app.audit.sink import InMemoryAuditSink
from app.commands.handlers import (
    CreateTaskHandler,
    DeleteTaskHandler,
    IngestEmailHandler,
    LinkIssueHandler,
    UpdateTaskDetailsHandler,
    UpdateTaskStatusHandler,
)
from app.commands.pipeline import CommandHandler, CommandPipeline
from app.integrations.email_adapter import DefaultEmailIngestAdapter
from app.integrations.issue_adapter import JiraIssueAdapter
from app.persistence.task_repository import InMemoryTaskRepository
from app.policy.engine import RulePolicyEngine
from kanbax_core.config import settings
from kanbax_core.domain.interfaces import (
    AuditSink,
    EmailIngestAdapter,
    IssueAdapter,
    PolicyEngine,
    TaskRepository,
)


@lru_cache()
def get_policy_engine() -> PolicyEngine:
    """Get the policy engine instance."""
    return RulePolicyEngine()


@lru_cache()
def get_audit_sink() -> AuditSink:
    """Get the audit sink instance."""
    return InMemoryAuditSink()


@lru_cache()
def get_retention_service() -> RetentionService:
    """Get the retention service over the shared audit sink."""
    return RetentionService(get_audit_sink())


@lru_cache()
def get_task_repository() -> TaskRepository:
    """Get the task repository instance."""
    return InMemoryTaskRepository()


@lru_cache()
def get_email_adapter() -> EmailIngestAdapter:
    """Get the email metadata adapter instance."""
    return DefaultEmailIngestAdapter()


@lru_cache()
def get_cloud_issue_adapter() -> IssueAdapter:
    """Get the Jira Cloud adapter instance."""
    return JiraIssueAdapter(
        settings.JIRA_CLOUD_BASE_URL,
        instance_type="CLOUD",
        api_token=settings.JIRA_API_TOKEN or None,
        timeout=settings.JIRA_TIMEOUT_SECONDS,
        max_attempts=settings.JIRA_MAX_ATTEMPTS,
    )


@lru_cache()
def get_data_center_issue_adapter() -> IssueAdapter:
    """Get the Jira Data Center adapter instance."""
    return JiraIssueAdapter(
        settings.JIRA_DC_BASE_URL,
        instance_type="DATA_CENTER",
        api_token=settings.JIRA_API_TOKEN or None,
        timeout=settings.JIRA_TIMEOUT_SECONDS,
        max_attempts=settings.JIRA_MAX_ATTEMPTS,
    )


def build_handlers(
    repository: TaskRepository,
    email_adapter: EmailIngestAdapter,
    cloud_adapter: IssueAdapter,
    data_center_adapter: IssueAdapter,
) -> list[CommandHandler]:
    """One handler per CommandType."""
    return [
        CreateTaskHandler(repository),
        UpdateTaskStatusHandler(repository),
        UpdateTaskDetailsHandler(repository),
        DeleteTaskHandler(repository),
        IngestEmailHandler(repository, email_adapter),
        LinkIssueHandler(repository, cloud_adapter, data_center_adapter),
    ]


def build_pipeline(
    repository: TaskRepository | None = None,
    audit_sink: AuditSink | None = None,
    policy_engine: PolicyEngine | None = None,
    email_adapter: EmailIngestAdapter | None = None,
    cloud_adapter: IssueAdapter | None = None,
    data_center_adapter: IssueAdapter | None = None,
) -> CommandPipeline:
    """
    Build a pipeline, defaulting every collaborator to the shared instance.

    Tests pass their own collaborators; omitted ones come from the cached
    getters above.
    """
    return CommandPipeline(
        policy_engine=policy_engine if policy_engine is not None else get_policy_engine(),
        audit_sink=audit_sink if audit_sink is not None else get_audit_sink(),
        handlers=build_handlers(
            repository=repository if repository is not None else get_task_repository(),
            email_adapter=email_adapter if email_adapter is not None else get_email_adapter(),
            cloud_adapter=cloud_adapter if cloud_adapter is not None else get_cloud_issue_adapter(),
            data_center_adapter=(
                data_center_adapter if data_center_adapter is not None else get_data_center_issue_adapter()
            ),
        ),
    )


@lru_cache()
def get_command_pipeline() -> CommandPipeline:
    """Get the shared command pipeline instance."""
    return build_pipeline()
