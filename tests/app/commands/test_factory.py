"""Tests for the command pipeline factory."""

from app.commands import factory
from app.commands.pipeline import CommandHandler, CommandPipeline
from app.commands.types import CommandType
from app.integrations.issue_adapter import JiraIssueAdapter
from app.policy.engine import RulePolicyEngine
from kanbax_core.config import settings
from tests.app.commands.fakes import FakeEmailIngestAdapter, FakeIssueAdapter


class TestGetters:
    def test_shared_instances_are_cached(self):
        assert factory.get_task_repository() is factory.get_task_repository()
        assert factory.get_audit_sink() is factory.get_audit_sink()
        assert factory.get_command_pipeline() is factory.get_command_pipeline()

    def test_retention_service_uses_shared_sink(self):
        assert factory.get_retention_service().audit_store is factory.get_audit_sink()

    def test_policy_engine(self):
        assert isinstance(factory.get_policy_engine(), RulePolicyEngine)

    def test_issue_adapters_follow_settings(self):
        cloud = factory.get_cloud_issue_adapter()
        data_center = factory.get_data_center_issue_adapter()

        assert isinstance(cloud, JiraIssueAdapter)
        assert cloud.instance_type == "CLOUD"
        assert cloud.base_url == settings.JIRA_CLOUD_BASE_URL.rstrip("/")
        assert data_center.instance_type == "DATA_CENTER"
        assert data_center.base_url == settings.JIRA_DC_BASE_URL.rstrip("/")


class TestBuildPipeline:
    def test_one_handler_per_command_type(self, repository):
        handlers = factory.build_handlers(
            repository=repository,
            email_adapter=FakeEmailIngestAdapter(),
            cloud_adapter=FakeIssueAdapter("https://a"),
            data_center_adapter=FakeIssueAdapter("https://b"),
        )

        assert {handler.command_type for handler in handlers} == set(CommandType)
        assert all(isinstance(handler, CommandHandler) for handler in handlers)

    def test_explicit_collaborators_win(self, repository, audit_sink, policy_engine):
        pipeline = factory.build_pipeline(repository=repository, audit_sink=audit_sink, policy_engine=policy_engine)

        assert isinstance(pipeline, CommandPipeline)
        assert pipeline.audit_sink is audit_sink
        assert pipeline.policy_engine is policy_engine
        assert pipeline.command_types == frozenset(CommandType)

    def test_omitted_collaborators_are_shared(self):
        pipeline = factory.build_pipeline()

        assert pipeline.audit_sink is factory.get_audit_sink()
        assert pipeline.policy_engine is factory.get_policy_engine()
