from .engine import RulePolicyEngine
from .normalization import normalize_policy_context

__all__ = ["RulePolicyEngine", "normalize_policy_context"]
