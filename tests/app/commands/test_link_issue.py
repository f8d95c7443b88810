"""Tests for the JIRA_LINK_TASK handler."""

import pytest

from app.commands.handlers.link_issue import instance_url_from
from app.commands.types import CommandType
from kanbax_core.domain.audit import AuditAction
from kanbax_core.domain.exceptions import AuthorizationError, ValidationError
from kanbax_core.domain.task import SourceType, TaskStatus


class TestInstanceUrl:
    def test_strips_browse_path(self):
        assert instance_url_from("https://acme.atlassian.net/browse/KAN-1") == "https://acme.atlassian.net"

    def test_url_without_browse_is_kept(self):
        assert instance_url_from("https://jira.acme.internal") == "https://jira.acme.internal"


class TestLinkIssue:
    @pytest.mark.asyncio
    async def test_cloud_is_default(self, pipeline, cloud_adapter, data_center_adapter, make_command):
        task = await pipeline.execute(
            make_command(CommandType.JIRA_LINK_TASK, {"issueKey": "KAN-42", "boardId": "board-1"})
        )

        assert task.title == "[KAN-42] Cloud issue"
        assert task.status == TaskStatus.TODO
        assert task.source.type == SourceType.JIRA
        assert task.source.issue_key == "KAN-42"
        assert task.source.instance_url == "https://acme.atlassian.net"
        assert task.source.instance_type == "CLOUD"
        assert task.source.sync_mode == "link"
        assert cloud_adapter.requests == [("tenant-1", "KAN-42")]
        assert data_center_adapter.requests == []

    @pytest.mark.asyncio
    async def test_data_center_deployment(self, pipeline, cloud_adapter, data_center_adapter, make_command):
        payload = {"issueKey": "OPS-7", "boardId": "board-1", "deployment": "data_center"}

        task = await pipeline.execute(make_command(CommandType.JIRA_LINK_TASK, payload))

        assert task.title == "[OPS-7] DC issue"
        assert task.source.instance_type == "DATA_CENTER"
        assert task.source.instance_url == "https://jira.acme.internal"
        assert cloud_adapter.requests == []

    @pytest.mark.asyncio
    async def test_context_and_audit(self, pipeline, audit_sink, make_command):
        task = await pipeline.execute(
            make_command(CommandType.JIRA_LINK_TASK, {"issueKey": "KAN-42", "boardId": "board-1"})
        )

        assert [(r.id, r.action) for r in task.policy_context.rules] == [
            ("jira-link-1", "JIRA_LINK_TASK"),
            ("jira-fetch-1", "JIRA_FETCH_MINIMAL"),
        ]
        (event,) = await audit_sink.get_events()
        assert event.action == AuditAction.TASK_CREATE
        assert event.resource_id == "KAN-42"
        assert event.policy_decision.policy_id == "jira-link-1"

    @pytest.mark.asyncio
    async def test_unknown_deployment_is_rejected(self, pipeline, make_command):
        payload = {"issueKey": "KAN-42", "boardId": "board-1", "deployment": "server"}

        with pytest.raises(ValidationError):
            await pipeline.execute(make_command(CommandType.JIRA_LINK_TASK, payload))

    @pytest.mark.asyncio
    async def test_requires_jira_link_permission(self, pipeline, audit_sink, cloud_adapter, make_command, make_principal):
        creator = make_principal(("task.create",))

        with pytest.raises(AuthorizationError):
            await pipeline.execute(
                make_command(CommandType.JIRA_LINK_TASK, {"issueKey": "KAN-42", "boardId": "b"}, actor=creator)
            )

        assert cloud_adapter.requests == []
        (event,) = await audit_sink.get_events()
        assert event.policy_decision.policy_id == "RBAC"
