"""
Policy domain models.

A PolicyContext is the authorization surface of one resource at one point in
time. Contexts are immutable: augmenting one yields a new value, so the rules
that existed at decision time can always be reconstructed.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Effect(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class PolicyScope(str, Enum):
    TENANT = "TENANT"
    PROJECT = "PROJECT"
    BOARD = "BOARD"


class AuditLevel(str, Enum):
    BASIC = "BASIC"
    FULL = "FULL"


# Convention for "locally authored, not externally synchronized" resources.
MANUAL_SOURCE_CONDITION = "resource.source.type=MANUAL"

# Rule action that matches every command type.
ANY_ACTION = "*"


class PolicyRule(BaseModel):
    """One (action, effect, optional condition) tuple.

    ``condition`` is a single-attribute equality of the form
    ``path.to.field=value``.
    """

    id: str
    action: str
    effect: Effect
    condition: str | None = None

    model_config = {"frozen": True}

    def applies_to(self, action: str) -> bool:
        return self.action == action or self.action == ANY_ACTION


class PolicyContext(BaseModel):
    """Rules applicable to a resource, scoped to a tenant."""

    tenant_id: str
    scope: PolicyScope = PolicyScope.BOARD
    scope_id: str
    rules: tuple[PolicyRule, ...] = ()
    audit_level: AuditLevel = AuditLevel.FULL
    retention_days: int | None = None

    model_config = {"frozen": True}

    def targets(self, action: str) -> bool:
        """True if some rule names ``action`` explicitly (wildcards excluded)."""
        return any(rule.action == action for rule in self.rules)

    def rules_for(self, action: str) -> tuple[PolicyRule, ...]:
        return tuple(rule for rule in self.rules if rule.action == action)

    def with_rules(self, *rules: PolicyRule) -> "PolicyContext":
        """Return a new context with ``rules`` appended."""
        return self.model_copy(update={"rules": self.rules + tuple(rules)})


class PolicyDecision(BaseModel):
    """The engine's verdict for one evaluation.

    Attributes:
        allowed: Final verdict.
        matched_rules: Every rule whose action and condition matched, in
            context order.
        candidate_rules: Every rule whose action matched, regardless of its
            condition, in context order.
        reason: Explanation when the decision is a denial.
    """

    allowed: bool
    matched_rules: tuple[PolicyRule, ...] = ()
    candidate_rules: tuple[PolicyRule, ...] = ()
    reason: str | None = None

    model_config = {"frozen": True}

    @property
    def policy_id(self) -> str:
        """Rule id recorded in the audit trail for this decision."""
        if self.matched_rules:
            return self.matched_rules[0].id
        if not self.allowed and self.candidate_rules:
            return self.candidate_rules[0].id
        return "unknown"


def manual_only_rule(rule_id: str, action: str) -> PolicyRule:
    """ALLOW ``action`` for MANUAL-sourced resources only."""
    return PolicyRule(id=rule_id, action=action, effect=Effect.ALLOW, condition=MANUAL_SOURCE_CONDITION)


def allow_rule(rule_id: str, action: str) -> PolicyRule:
    """Unconditional ALLOW for ``action``."""
    return PolicyRule(id=rule_id, action=action, effect=Effect.ALLOW)
