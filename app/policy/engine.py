"""
Rule-based policy engine.

Evaluates a PolicyContext for one action with deny-overrides-allow and a
closed-world default: no matching ALLOW rule means deny.

Conditions are single-attribute equalities (``path.to.field=value``)
resolved against the scope ``{"actor_id": ..., "resource": ...}``. A rule with
no condition (None or empty) is unconditional; a condition missing its path
or value never holds. Pydantic resources are viewed by their camelCase aliases.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from loguru import logger
from pydantic import BaseModel

from kanbax_core.domain.policy import Effect, PolicyContext, PolicyDecision, PolicyRule

DEFAULT_DENY_REASON = "No matching rule (default deny)"

_MISSING = object()


def _stringify(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_mapping(resource: Any) -> Any:
    if isinstance(resource, BaseModel):
        return resource.model_dump(mode="json", by_alias=True)
    return resource


def resolve_path(scope: Any, path: str) -> Any:
    """
    Resolve a dotted path against nested mappings (or attributes).

    Returns:
        The value found, or the module-level ``_MISSING`` sentinel if any
        segment does not resolve.
    """
    current = scope
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return _MISSING
            current = current[part]
        elif current is not None and hasattr(current, part):
            current = getattr(current, part)
        else:
            return _MISSING
    return current


def condition_holds(condition: str, scope: dict[str, Any]) -> bool:
    """Evaluate ``path=value`` against ``scope``; malformed conditions never hold."""
    path, sep, expected = condition.partition("=")
    path = path.strip()
    expected = expected.strip()
    if not sep or not path or not expected:
        logger.warning(f"Ignoring malformed policy condition '{condition}'")
        return False

    actual = resolve_path(scope, path)
    if actual is _MISSING:
        return False
    return _stringify(actual) == expected


class RulePolicyEngine:
    """
    Stateless evaluator of PolicyContexts.

    Safe to share across concurrent commands; decisions are never cached.

    Usage:
        engine = RulePolicyEngine()
        decision = await engine.evaluate("user-1", "TASK_CREATE", context, payload)
    """

    async def evaluate(
        self,
        principal_id: str,
        action: str,
        context: PolicyContext,
        resource: Any = None,
    ) -> PolicyDecision:
        """
        Decide whether ``principal_id`` may perform ``action``.

        Args:
            principal_id: Acting principal.
            action: Command type (or any rule action string).
            context: Rules applicable to the resource.
            resource: Key/value view (or pydantic model) conditions inspect.

        Returns:
            PolicyDecision with matched and candidate rules in context order.
        """
        return self.decide(principal_id, _action_name(action), context, resource)

    def decide(
        self,
        principal_id: str,
        action: str,
        context: PolicyContext,
        resource: Any = None,
    ) -> PolicyDecision:
        """Synchronous core of :meth:`evaluate`."""
        scope = {"actor_id": principal_id, "resource": _as_mapping(resource)}

        candidates: list[PolicyRule] = []
        matched: list[PolicyRule] = []
        for rule in context.rules:
            if not rule.applies_to(action):
                continue
            candidates.append(rule)
            if not rule.condition or condition_holds(rule.condition, scope):
                matched.append(rule)

        denying = next((rule for rule in matched if rule.effect == Effect.DENY), None)
        if denying is not None:
            return PolicyDecision(
                allowed=False,
                matched_rules=tuple(matched),
                candidate_rules=tuple(candidates),
                reason=f"Explicitly denied by rule {denying.id}",
            )

        if any(rule.effect == Effect.ALLOW for rule in matched):
            return PolicyDecision(
                allowed=True,
                matched_rules=tuple(matched),
                candidate_rules=tuple(candidates),
            )

        return PolicyDecision(
            allowed=False,
            matched_rules=tuple(matched),
            candidate_rules=tuple(candidates),
            reason=DEFAULT_DENY_REASON,
        )


def _action_name(action: Any) -> str:
    return action.value if isinstance(action, Enum) else str(action)
