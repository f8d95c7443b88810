"""
Service interfaces (Protocols) for kanbax.

The command pipeline depends only on these contracts, so storage, audit and
integration backends can be swapped (and faked in tests) without touching
handler code.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from kanbax_core.domain.audit import AuditEvent
from kanbax_core.domain.integrations import EmailMetadata, IssueMinimal
from kanbax_core.domain.policy import PolicyContext, PolicyDecision
from kanbax_core.domain.task import Task


@runtime_checkable
class TaskRepository(Protocol):
    """Tenant-scoped task storage.

    Every read takes the tenant id; a task stored under another tenant is
    indistinguishable from a missing one.
    """

    async def find_by_id(self, task_id: str, tenant_id: str) -> Task | None:
        ...

    async def find_all_by_board_id(self, board_id: str, tenant_id: str) -> list[Task]:
        ...

    async def find_all_by_tenant(self, tenant_id: str) -> list[Task]:
        ...

    async def save(self, task: Task) -> None:
        """
        Insert or replace a task.

        Raises:
            InvariantViolationError: If the task lacks an id, source or policy context.
        """
        ...

    async def delete(self, task_id: str, tenant_id: str) -> None:
        ...


@runtime_checkable
class AuditSink(Protocol):
    """Append-only store of audit events."""

    async def log(self, event: AuditEvent) -> AuditEvent:
        """Append an event. Implementations never reorder events and only drop them in a retention purge."""
        ...

    async def get_events(self) -> list[AuditEvent]:
        """All events in append order."""
        ...


@runtime_checkable
class AuditRetentionStore(Protocol):
    """Audit storage that supports tenant-scoped retention purges."""

    async def count_before(self, cutoff: datetime, tenant_id: str) -> int:
        ...

    async def delete_before(self, cutoff: datetime, tenant_id: str) -> int:
        """Remove the tenant's events older than ``cutoff``; returns how many."""
        ...


@runtime_checkable
class PolicyEngine(Protocol):
    """Evaluates a policy context for one action."""

    async def evaluate(
        self,
        principal_id: str,
        action: str,
        context: PolicyContext,
        resource: Any,
    ) -> PolicyDecision:
        ...


@runtime_checkable
class EmailIngestAdapter(Protocol):
    """Turns an inbound email payload into metadata, never reading the body."""

    async def extract_metadata(self, payload: dict[str, Any]) -> EmailMetadata:
        ...


@runtime_checkable
class IssueAdapter(Protocol):
    """Fetches the minimal view of an external issue."""

    async def get_issue_minimal(self, tenant_id: str, issue_key: str) -> IssueMinimal:
        ...
