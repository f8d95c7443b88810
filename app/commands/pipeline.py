"""
Command Pipeline

Runs every mutating command through a fixed protocol:

1. validate: handler parses the payload (not audited)
2. authorize: tenant boundary and RBAC permissions (audited on deny)
3. load policy context: handler loads the context and resource
4. evaluate: policy engine decides (audited on deny)
5. handle: handler applies the mutation (errors pass through)
6. audit success

Handlers are looked up in a closed registry keyed by CommandType. The
pipeline itself holds no per-command state, so one instance serves any
number of concurrent commands.
"""

from __future__ import annotations

from typing import Any, ClassVar, Mapping, Protocol, runtime_checkable

from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.commands.types import Command, CommandPayload, CommandType, LoadedPolicy
from kanbax_core.domain.audit import AuditAction, AuditEvent, PolicyDecisionRecord
from kanbax_core.domain.exceptions import (
    AuthorizationError,
    PolicyDeniedError,
    TenantIsolationError,
    ValidationError,
)
from kanbax_core.domain.interfaces import AuditSink, PolicyEngine
from kanbax_core.domain.policy import Effect

RBAC_POLICY_ID = "RBAC"
TENANT_POLICY_ID = "TENANT"


@runtime_checkable
class CommandHandler(Protocol):
    """Business logic plugged into the pipeline for one command type."""

    command_type: CommandType
    required_permissions: tuple[str, ...]
    resource_type: str
    audit_action: AuditAction

    def validate(self, command: Command) -> None:
        """Raise ValidationError if the payload is malformed."""
        ...

    async def load_policy_context(self, command: Command) -> LoadedPolicy:
        ...

    def policy_resource(self, command: Command, loaded: LoadedPolicy) -> Any:
        """Value the policy engine resolves ``resource.*`` conditions against."""
        ...

    async def handle(self, command: Command, loaded: LoadedPolicy) -> Any:
        ...

    def resource_id(self, command: Command) -> str:
        ...


class BaseCommandHandler:
    """
    Defaults shared by the concrete handlers.

    Subclasses set the class attributes and implement ``load_policy_context``,
    ``handle`` and ``resource_id``.
    """

    command_type: ClassVar[CommandType]
    payload_model: ClassVar[type[CommandPayload]]
    required_permissions: ClassVar[tuple[str, ...]] = ()
    resource_type: ClassVar[str] = "TASK"
    audit_action: ClassVar[AuditAction]

    def parse(self, command: Command) -> Any:
        """Parse ``command.payload`` into ``payload_model``."""
        try:
            return self.payload_model.model_validate(command.payload)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "payload"
            raise ValidationError(
                f"Invalid {self.command_type.value} payload: {field}: {first['msg']}",
                message_debug=str(e),
            ) from e

    def validate(self, command: Command) -> None:
        self.parse(command)

    def policy_resource(self, command: Command, loaded: LoadedPolicy) -> Any:
        return command.payload


class CommandPipeline:
    """
    Orchestrates validation, authorization, policy evaluation, handling and
    auditing for every command.

    Usage:
        pipeline = CommandPipeline(
            policy_engine=RulePolicyEngine(),
            audit_sink=InMemoryAuditSink(),
            handlers=[CreateTaskHandler(repository), ...],
        )
        task = await pipeline.execute(command)
    """

    def __init__(
        self,
        policy_engine: PolicyEngine,
        audit_sink: AuditSink,
        handlers: list[CommandHandler] | Mapping[CommandType, CommandHandler],
    ):
        self.policy_engine = policy_engine
        self.audit_sink = audit_sink
        if isinstance(handlers, Mapping):
            self._handlers = dict(handlers)
        else:
            self._handlers = {handler.command_type: handler for handler in handlers}

    @property
    def command_types(self) -> frozenset[CommandType]:
        return frozenset(self._handlers)

    def handler_for(self, command: Command) -> CommandHandler:
        """
        Resolve the handler registered for ``command.type``.

        Raises:
            ValidationError: If the type is unknown or has no handler.
        """
        try:
            command_type = CommandType(command.type)
        except ValueError:
            raise ValidationError(f"Unknown command type: {command.type}") from None

        handler = self._handlers.get(command_type)
        if handler is None:
            raise ValidationError(f"No handler registered for {command_type.value}")
        return handler

    async def execute(self, command: Command) -> Any:
        """
        Run ``command`` through all stages.

        Returns:
            Whatever the handler returns (the created or updated Task, or None
            for deletes).

        Raises:
            ValidationError: Malformed payload or unknown command type.
            AuthorizationError: Missing permissions (TenantIsolationError for
                a cross-tenant principal or policy context).
            PolicyDeniedError: The policy engine denied the command.
            NotFoundError, StructuralGateError, ...: Passed through from the handler.
        """
        request_id = command.request_id

        # 1. Validate
        handler = self.handler_for(command)
        handler.validate(command)
        logger.debug(f"[{request_id}] {handler.command_type.value} payload validated")

        # 2. Authorize
        await self._authorize(command, handler)

        # 3. Load policy context
        loaded = await handler.load_policy_context(command)
        if loaded.context.tenant_id != command.tenant_id:
            await self._record(
                command,
                handler,
                AuditAction.ACCESS_DENIED,
                policy_id=TENANT_POLICY_ID,
                outcome=Effect.DENY,
                reason="Policy context belongs to another tenant",
            )
            logger.warning(f"[{request_id}] Policy context tenant mismatch for {handler.command_type.value}")
            raise TenantIsolationError(
                f"Tenant isolation violated for {handler.command_type.value}",
                message_debug=f"context tenant {loaded.context.tenant_id}, command tenant {command.tenant_id}",
            )

        # 4. Evaluate
        decision = await self.policy_engine.evaluate(
            command.principal.id,
            handler.command_type.value,
            loaded.context,
            handler.policy_resource(command, loaded),
        )
        if not decision.allowed:
            await self._record(
                command,
                handler,
                AuditAction.ACCESS_DENIED,
                policy_id=decision.policy_id,
                outcome=Effect.DENY,
                reason=decision.reason,
            )
            logger.info(f"[{request_id}] Policy denied {handler.command_type.value}: {decision.reason}")
            raise PolicyDeniedError(f"Access Denied: {decision.reason}")

        # 5. Handle
        result = await handler.handle(command, loaded)

        # 6. Audit success
        await self._record(
            command,
            handler,
            handler.audit_action,
            policy_id=decision.policy_id,
            outcome=Effect.ALLOW,
        )
        logger.info(f"[{request_id}] {handler.command_type.value} completed for {command.principal.id}")
        return result

    async def _authorize(self, command: Command, handler: CommandHandler) -> None:
        principal = command.principal

        if principal.tenant_id != command.tenant_id:
            await self._record(
                command,
                handler,
                AuditAction.ACCESS_DENIED,
                policy_id=TENANT_POLICY_ID,
                outcome=Effect.DENY,
                reason="Principal does not belong to the command tenant",
            )
            logger.warning(f"[{command.request_id}] Principal {principal.id} outside tenant {command.tenant_id}")
            raise TenantIsolationError(
                f"Authorization Failed: principal is not a member of the tenant for {handler.command_type.value}"
            )

        if not principal.has_permissions(handler.required_permissions):
            await self._record(
                command,
                handler,
                AuditAction.ACCESS_DENIED,
                policy_id=RBAC_POLICY_ID,
                outcome=Effect.DENY,
                reason="Missing required permissions",
            )
            missing = sorted(set(handler.required_permissions) - principal.permissions)
            logger.info(f"[{command.request_id}] RBAC denied {principal.id}: missing {missing}")
            raise AuthorizationError(
                f"Authorization Failed: Missing required permissions for {handler.command_type.value}",
                message_debug=f"missing: {', '.join(missing)}",
            )

    async def _record(
        self,
        command: Command,
        handler: CommandHandler,
        action: AuditAction,
        policy_id: str,
        outcome: Effect,
        reason: str | None = None,
    ) -> AuditEvent:
        event = AuditEvent(
            actor_id=command.principal.id,
            actor_type=command.principal.type.value,
            tenant_id=command.tenant_id,
            action=action,
            resource_id=handler.resource_id(command),
            resource_type=handler.resource_type,
            payload=_payload_snapshot(command.payload),
            policy_decision=PolicyDecisionRecord(policy_id=policy_id, outcome=outcome, reason=reason),
            metadata={
                "tenant_id": command.tenant_id,
                "request_id": command.request_id,
                "command_type": handler.command_type.value,
            },
        )
        return await self.audit_sink.log(event)


def _payload_snapshot(payload: Any) -> dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    return dict(payload)
