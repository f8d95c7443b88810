"""
Policy context normalization for tasks created under an older rule vocabulary.

Tasks embed the PolicyContext they were created with. Contexts minted before
the fine-grained update actions existed only carry a generic ``TASK_UPDATE``
rule, and some carry no rule at all for the action being requested. The
update and delete handlers run the context through
:func:`normalize_policy_context` before evaluation.

Normalization only ever appends rules; it never drops or rewrites one.
"""

from __future__ import annotations

from dataclasses import dataclass

from kanbax_core.domain.policy import PolicyContext, manual_only_rule


@dataclass(frozen=True)
class NormalizationPlan:
    """How one action is normalized."""

    action: str
    legacy_actions: tuple[str, ...]
    id_suffix: str
    fallback_rule_id: str


UPDATE_STATUS_PLAN = NormalizationPlan(
    action="TASK_UPDATE_STATUS",
    legacy_actions=("TASK_UPDATE",),
    id_suffix="status",
    fallback_rule_id="rule-update-status-manual",
)

UPDATE_DETAILS_PLAN = NormalizationPlan(
    action="TASK_UPDATE_DETAILS",
    legacy_actions=("TASK_UPDATE",),
    id_suffix="details",
    fallback_rule_id="rule-update-details-manual",
)

DELETE_PLAN = NormalizationPlan(
    action="TASK_DELETE",
    legacy_actions=(),
    id_suffix="delete",
    fallback_rule_id="rule-delete-manual",
)


def normalize_policy_context(
    context: PolicyContext,
    action: str,
    legacy_actions: tuple[str, ...] = (),
    id_suffix: str = "",
    fallback_rule_id: str | None = None,
) -> PolicyContext:
    """
    Ensure ``context`` has at least one rule targeting ``action``.

    1. If no rule targets ``action``, clone every rule of the first legacy
       action that has any, as ``{rule.id}-{id_suffix}-{position}``.
    2. If still none does, append a MANUAL-only ALLOW rule with
       ``fallback_rule_id``.

    Args:
        context: The task's embedded context.
        action: Action about to be evaluated.
        legacy_actions: Older actions whose rules stand in for ``action``.
        id_suffix: Middle segment of cloned rule ids.
        fallback_rule_id: Id of the synthetic rule; defaults to ``rule-{action}-manual``.

    Returns:
        ``context`` itself when nothing needed adding, otherwise a new context.
    """
    if context.targets(action):
        return context

    for legacy_action in legacy_actions:
        legacy_rules = context.rules_for(legacy_action)
        if not legacy_rules:
            continue
        clones = [
            rule.model_copy(update={"id": f"{rule.id}-{id_suffix}-{position}", "action": action})
            for position, rule in enumerate(legacy_rules, start=1)
        ]
        return context.with_rules(*clones)

    rule_id = fallback_rule_id or f"rule-{action.lower()}-manual"
    return context.with_rules(manual_only_rule(rule_id, action))


def normalize_for(context: PolicyContext, plan: NormalizationPlan) -> PolicyContext:
    """Apply a predefined :class:`NormalizationPlan`."""
    return normalize_policy_context(
        context,
        plan.action,
        legacy_actions=plan.legacy_actions,
        id_suffix=plan.id_suffix,
        fallback_rule_id=plan.fallback_rule_id,
    )


__all__ = [
    "NormalizationPlan",
    "UPDATE_STATUS_PLAN",
    "UPDATE_DETAILS_PLAN",
    "DELETE_PLAN",
    "normalize_policy_context",
    "normalize_for",
]
