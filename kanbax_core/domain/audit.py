"""
Audit domain models.

Every authorization decision the pipeline takes is recorded exactly once as
an AuditEvent. Sinks keep events append-only and wrap them in AuditRecords
that carry the tamper-evident hash chain.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from kanbax_core.domain.policy import Effect


class AuditAction(str, Enum):
    """Kinds of audited decisions."""

    TASK_CREATE = "TASK_CREATE"
    TASK_UPDATE = "TASK_UPDATE"
    TASK_DELETE = "TASK_DELETE"
    POLICY_EVALUATE = "POLICY_EVALUATE"
    ACCESS_DENIED = "ACCESS_DENIED"


class PolicyDecisionRecord(BaseModel):
    """The slice of a decision kept in the audit trail."""

    policy_id: str
    outcome: Effect
    reason: str | None = None

    model_config = {"frozen": True}


class AuditEvent(BaseModel):
    """
    One audited authorization decision.

    ``policy_id`` is ``RBAC`` for permission failures, ``TENANT`` for tenant
    boundary failures, otherwise the id of the rule that decided.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Who
    actor_id: str
    actor_type: str
    tenant_id: str

    # What
    action: AuditAction
    resource_id: str
    resource_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    policy_decision: PolicyDecisionRecord

    # Correlation (request_id, command_type)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def denied(self) -> bool:
        return self.policy_decision.outcome == Effect.DENY


class AuditRecord(BaseModel):
    """An AuditEvent as stored by a sink, with its position in the hash chain."""

    sequence_number: int
    event: AuditEvent
    previous_hash: str | None = None
    event_hash: str

    model_config = {"frozen": True}
