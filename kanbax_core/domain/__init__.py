"""
Domain layer for kanbax.

- identity: Principal, Role, Permission
- policy: PolicyContext, PolicyRule, PolicyDecision
- task: Task and its provenance variants
- audit: AuditEvent, AuditRecord
- interfaces: collaborator Protocols
- exceptions: command failure taxonomy
"""

from .audit import AuditAction, AuditEvent, AuditRecord, PolicyDecisionRecord
from .exceptions import (
    AuthorizationError,
    InvariantViolationError,
    KanbaxError,
    NotFoundError,
    PolicyDeniedError,
    StructuralGateError,
    TenantIsolationError,
    ValidationError,
    is_forbidden,
)
from .identity import Permission, Principal, PrincipalType, Role
from .policy import Effect, PolicyContext, PolicyDecision, PolicyRule, PolicyScope
from .task import SourceType, Task, TaskPriority, TaskStatus

__all__ = [
    "AuditAction",
    "AuditEvent",
    "AuditRecord",
    "PolicyDecisionRecord",
    "AuthorizationError",
    "InvariantViolationError",
    "KanbaxError",
    "NotFoundError",
    "PolicyDeniedError",
    "StructuralGateError",
    "TenantIsolationError",
    "ValidationError",
    "is_forbidden",
    "Permission",
    "Principal",
    "PrincipalType",
    "Role",
    "Effect",
    "PolicyContext",
    "PolicyDecision",
    "PolicyRule",
    "PolicyScope",
    "SourceType",
    "Task",
    "TaskPriority",
    "TaskStatus",
]
