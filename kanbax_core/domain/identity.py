"""
Identity domain models.

- Permission / Role: RBAC building blocks
- Principal: the already-authenticated actor executing a command
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class PrincipalType(str, Enum):
    """Kinds of actors that can issue commands."""

    USER = "USER"
    SERVICE = "SERVICE"
    INTEGRATION = "INTEGRATION"
    SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class Permission:
    """A named capability, e.g. ``task.create``."""

    name: str
    description: str | None = None


@dataclass(frozen=True)
class Role:
    """A named bundle of permissions within one tenant."""

    name: str
    permissions: tuple[Permission, ...] = ()
    id: str | None = None

    @classmethod
    def of(cls, name: str, *permission_names: str) -> "Role":
        """Build a role from bare permission names."""
        return cls(name=name, permissions=tuple(Permission(p) for p in permission_names))


@dataclass(frozen=True)
class Principal:
    """Identity executing a command.

    Built per request by the boundary layer from a verified identity and the
    tenant membership; immutable for the duration of one command.
    """

    id: str
    tenant_id: str
    type: PrincipalType = PrincipalType.USER
    roles: tuple[Role, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def permissions(self) -> frozenset[str]:
        """Flattened permission names across all roles."""
        return frozenset(p.name for role in self.roles for p in role.permissions)

    def has_permissions(self, required: Iterable[str]) -> bool:
        """True if every required permission is held (vacuously true when empty)."""
        return self.permissions.issuperset(required)
