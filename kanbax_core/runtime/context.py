"""
Request-scoped context for outbound service calls.

RunContext carries the correlation id and tenant of the command being
executed, so integration adapters can tag every request they make on the
command's behalf.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from kanbax_core.domain.identity import Principal


class RunContext(BaseModel):
    """Correlation and tenant information for one command.

    Attributes:
        request_id: Correlation id, shared with the command and its audit events.
        tenant_id: Tenant on whose behalf the call is made.
        principal_id: Optional id of the acting principal.
    """

    request_id: str
    tenant_id: str
    principal_id: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_principal(cls, principal: "Principal", request_id: str) -> "RunContext":
        """Build a context for calls made on behalf of ``principal``."""
        return cls(
            request_id=request_id,
            tenant_id=principal.tenant_id,
            principal_id=principal.id,
        )

    def get_headers(self) -> dict[str, str]:
        """Headers that propagate this context to a downstream service."""
        headers = {
            "X-Request-Id": self.request_id,
            "X-Tenant-Id": self.tenant_id,
        }
        if self.principal_id:
            headers["X-Principal-Id"] = self.principal_id
        return headers
