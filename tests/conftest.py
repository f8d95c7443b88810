"""Shared fixtures for the kanbax test suite."""

from __future__ import annotations

import pytest

from app.audit.sink import InMemoryAuditSink
from app.commands.factory import build_pipeline
from app.commands.handlers.create_task import default_task_rules
from app.commands.types import Command
from app.policy.engine import RulePolicyEngine
from kanbax_core.domain.identity import Principal, PrincipalType, Role
from kanbax_core.domain.policy import PolicyContext, PolicyRule
from kanbax_core.domain.task import EmailSource, JiraSource, ManualSource, Task
from tests.app.commands.fakes import FakeEmailIngestAdapter, FakeIssueAdapter, SpyTaskRepository

TENANT = "tenant-1"

ALL_PERMISSIONS = (
    "task.create",
    "task.update-status",
    "task.update-details",
    "task.delete",
    "jira.link",
)


@pytest.fixture
def make_principal():
    """Build a principal holding ``permissions`` (every task permission by default)."""

    def _make(
        permissions: tuple[str, ...] = ALL_PERMISSIONS,
        principal_id: str = "user-1",
        tenant_id: str = TENANT,
    ) -> Principal:
        return Principal(
            id=principal_id,
            tenant_id=tenant_id,
            type=PrincipalType.USER,
            roles=(Role.of("member", *permissions),),
        )

    return _make


@pytest.fixture
def principal(make_principal):
    return make_principal()


@pytest.fixture
def make_command(principal):
    """Build a command for ``principal`` in TENANT unless overridden."""

    def _make(command_type, payload, actor: Principal | None = None, tenant_id: str | None = None) -> Command:
        actor = actor or principal
        return Command(
            type=command_type,
            principal=actor,
            tenant_id=tenant_id or actor.tenant_id,
            payload=payload,
            request_id="req-test",
        )

    return _make


@pytest.fixture
def make_task():
    """Build a stored-shape task; manual with the default rules unless overridden."""

    def _make(
        task_id: str = "task-1",
        tenant_id: str = TENANT,
        source=None,
        rules: tuple[PolicyRule, ...] | None = None,
        **fields,
    ) -> Task:
        context = PolicyContext(
            tenant_id=tenant_id,
            scope_id=fields.get("board_id", "board-1"),
            rules=default_task_rules() if rules is None else rules,
        )
        fields.setdefault("board_id", "board-1")
        fields.setdefault("title", "Existing task")
        return Task(
            id=task_id,
            tenant_id=tenant_id,
            source=source or ManualSource(created_by="user-1"),
            policy_context=context,
            **fields,
        )

    return _make


@pytest.fixture
def email_source():
    return EmailSource(
        message_id="hashed",
        sender="ops@example.com",
        received_at="2024-05-01T09:30:00Z",
    )


@pytest.fixture
def jira_source():
    return JiraSource(issue_key="KAN-7", instance_url="https://acme.atlassian.net")


@pytest.fixture
def repository():
    return SpyTaskRepository()


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink(echo=False)


@pytest.fixture
def policy_engine():
    return RulePolicyEngine()


@pytest.fixture
def email_adapter():
    return FakeEmailIngestAdapter()


@pytest.fixture
def cloud_adapter():
    return FakeIssueAdapter("https://acme.atlassian.net", summary="Cloud issue")


@pytest.fixture
def data_center_adapter():
    return FakeIssueAdapter("https://jira.acme.internal", summary="DC issue")


@pytest.fixture
def pipeline(repository, audit_sink, policy_engine, email_adapter, cloud_adapter, data_center_adapter):
    return build_pipeline(
        repository=repository,
        audit_sink=audit_sink,
        policy_engine=policy_engine,
        email_adapter=email_adapter,
        cloud_adapter=cloud_adapter,
        data_center_adapter=data_center_adapter,
    )


@pytest.fixture
def manual_create_payload():
    return {"title": "Manual Task", "boardId": "board-1", "source": {"type": "MANUAL"}}

