"""Unit tests for RetentionService."""

from datetime import datetime, timedelta, timezone

import pytest

from app.audit.retention import RetentionService
from app.audit.sink import InMemoryAuditSink
from kanbax_core.domain.audit import AuditAction, AuditEvent, PolicyDecisionRecord
from kanbax_core.domain.interfaces import AuditRetentionStore
from kanbax_core.domain.policy import Effect, PolicyContext

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def event_at(timestamp, tenant_id="tenant-1") -> AuditEvent:
    return AuditEvent(
        actor_id="user-1",
        actor_type="USER",
        tenant_id=tenant_id,
        action=AuditAction.TASK_CREATE,
        resource_id="task-1",
        resource_type="TASK",
        policy_decision=PolicyDecisionRecord(policy_id="rule-1", outcome=Effect.ALLOW),
        timestamp=timestamp,
    )


def context(retention_days=None) -> PolicyContext:
    return PolicyContext(tenant_id="tenant-1", scope_id="board-1", retention_days=retention_days)


async def seeded_sink() -> InMemoryAuditSink:
    sink = InMemoryAuditSink(echo=False)
    await sink.log(event_at(NOW - timedelta(days=90)))
    await sink.log(event_at(NOW - timedelta(days=60)))
    await sink.log(event_at(NOW - timedelta(days=90), tenant_id="tenant-2"))
    await sink.log(event_at(NOW - timedelta(days=1)))
    return sink


class TestRunRetention:
    def test_sink_is_a_retention_store(self):
        assert isinstance(InMemoryAuditSink(echo=False), AuditRetentionStore)

    @pytest.mark.asyncio
    async def test_purges_events_older_than_window(self):
        sink = await seeded_sink()

        result = await RetentionService(sink).run_retention("tenant-1", context(30), now=NOW)

        assert result.cutoff == NOW - timedelta(days=30)
        assert result.expired_audit_events == 2
        assert result.deleted_audit_events == 2
        assert result.dry_run is False
        remaining = await sink.get_events()
        assert [(e.tenant_id, e.timestamp) for e in remaining] == [
            ("tenant-2", NOW - timedelta(days=90)),
            ("tenant-1", NOW - timedelta(days=1)),
        ]
        assert await sink.verify_chain_integrity() == (True, [])

    @pytest.mark.asyncio
    async def test_dry_run_only_counts(self):
        sink = await seeded_sink()

        result = await RetentionService(sink).run_retention("tenant-1", context(30), dry_run=True, now=NOW)

        assert result.expired_audit_events == 2
        assert result.deleted_audit_events == 0
        assert result.dry_run is True
        assert len(await sink.get_events()) == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("retention_days", [None, 0])
    async def test_no_window_keeps_everything(self, retention_days):
        sink = await seeded_sink()

        result = await RetentionService(sink).run_retention("tenant-1", context(retention_days), now=NOW)

        assert result.cutoff is None
        assert result.deleted_audit_events == 0
        assert len(await sink.get_events()) == 4
