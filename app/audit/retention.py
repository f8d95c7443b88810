"""
Audit retention.

Purges a tenant's audit events older than the ``retention_days`` of its
policy context. Contexts without ``retention_days`` keep events forever.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from loguru import logger

from kanbax_core.domain.interfaces import AuditRetentionStore
from kanbax_core.domain.policy import PolicyContext


@dataclass(frozen=True)
class RetentionResult:
    """Outcome of one retention run.

    ``expired_audit_events`` counts what fell before the cutoff;
    ``deleted_audit_events`` is what was actually removed (0 on a dry run).
    """

    tenant_id: str
    cutoff: datetime | None
    expired_audit_events: int = 0
    deleted_audit_events: int = 0
    dry_run: bool = False


class RetentionService:
    """
    Applies a policy context's retention window to the audit trail.

    Usage:
        service = RetentionService(InMemoryAuditSink())
        result = await service.run_retention("tenant-1", context, dry_run=True)
    """

    def __init__(self, audit_store: AuditRetentionStore):
        self.audit_store = audit_store

    async def run_retention(
        self,
        tenant_id: str,
        policy: PolicyContext,
        dry_run: bool = False,
        now: datetime | None = None,
    ) -> RetentionResult:
        """
        Purge ``tenant_id``'s audit events older than ``policy.retention_days``.

        Args:
            tenant_id: Tenant whose events are purged; no other tenant is touched.
            policy: Context carrying ``retention_days``.
            dry_run: Only count the expired events.
            now: Reference time; defaults to the current UTC time.
        """
        if not policy.retention_days:
            return RetentionResult(tenant_id=tenant_id, cutoff=None, dry_run=dry_run)

        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=policy.retention_days)
        logger.info(f"Running retention for tenant {tenant_id}, cutoff {cutoff.isoformat()}, dry_run={dry_run}")

        expired = await self.audit_store.count_before(cutoff, tenant_id)
        if dry_run:
            logger.info(f"Retention dry run: would delete {expired} audit event(s) for tenant {tenant_id}")
            return RetentionResult(tenant_id=tenant_id, cutoff=cutoff, expired_audit_events=expired, dry_run=True)

        deleted = await self.audit_store.delete_before(cutoff, tenant_id)
        return RetentionResult(
            tenant_id=tenant_id,
            cutoff=cutoff,
            expired_audit_events=expired,
            deleted_audit_events=deleted,
        )
