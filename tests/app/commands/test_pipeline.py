"""Unit tests for CommandPipeline stage ordering and auditing."""

import pytest

from app.commands.pipeline import BaseCommandHandler, CommandHandler, CommandPipeline
from app.commands.types import Command, CommandPayload, CommandType, LoadedPolicy
from kanbax_core.domain.audit import AuditAction
from kanbax_core.domain.exceptions import (
    AuthorizationError,
    NotFoundError,
    PolicyDeniedError,
    TenantIsolationError,
    ValidationError,
    is_forbidden,
)
from kanbax_core.domain.policy import Effect, PolicyContext, PolicyDecision, PolicyRule
from tests.app.commands.fakes import StaticPolicyEngine

ALLOW = PolicyDecision(
    allowed=True,
    matched_rules=(PolicyRule(id="r-allow", action="TASK_CREATE", effect=Effect.ALLOW),),
)
DENY = PolicyDecision(allowed=False, reason="No matching rule (default deny)")


class NotePayload(CommandPayload):
    note: str


class RecordingHandler(BaseCommandHandler):
    """Minimal handler that records which stages ran."""

    command_type = CommandType.TASK_CREATE
    payload_model = NotePayload
    required_permissions = ("note.write",)
    audit_action = AuditAction.TASK_CREATE

    def __init__(self, context_tenant: str | None = None, fail_with: Exception | None = None):
        self.context_tenant = context_tenant
        self.fail_with = fail_with
        self.stages: list[str] = []

    def resource_id(self, command: Command) -> str:
        return "note"

    async def load_policy_context(self, command: Command) -> LoadedPolicy:
        self.stages.append("load")
        return LoadedPolicy(
            context=PolicyContext(tenant_id=self.context_tenant or command.tenant_id, scope_id="board-1")
        )

    async def handle(self, command: Command, loaded: LoadedPolicy) -> str:
        self.stages.append("handle")
        if self.fail_with is not None:
            raise self.fail_with
        return f"handled {command.payload['note']}"


@pytest.fixture
def writer(make_principal):
    return make_principal(("note.write",))


def note_command(principal, payload=None, tenant_id=None, command_type=CommandType.TASK_CREATE):
    return Command(
        type=command_type,
        principal=principal,
        tenant_id=tenant_id or principal.tenant_id,
        payload={"note": "hi"} if payload is None else payload,
        request_id="req-1",
    )


def make_pipeline(handler, audit_sink, decision=ALLOW):
    engine = StaticPolicyEngine(decision)
    return CommandPipeline(policy_engine=engine, audit_sink=audit_sink, handlers=[handler]), engine


class TestRegistry:
    """Handler dispatch."""

    def test_handlers_satisfy_protocol(self):
        assert isinstance(RecordingHandler(), CommandHandler)

    def test_accepts_mapping(self, audit_sink):
        handler = RecordingHandler()
        pipeline = CommandPipeline(StaticPolicyEngine(ALLOW), audit_sink, {CommandType.TASK_CREATE: handler})

        assert pipeline.command_types == frozenset({CommandType.TASK_CREATE})

    @pytest.mark.asyncio
    async def test_unknown_command_type_is_validation_error(self, writer, audit_sink):
        pipeline, _ = make_pipeline(RecordingHandler(), audit_sink)

        with pytest.raises(ValidationError, match="Unknown command type"):
            await pipeline.execute(note_command(writer, command_type="TASK_EXPLODE"))

        assert await audit_sink.get_events() == []

    @pytest.mark.asyncio
    async def test_unregistered_command_type_is_validation_error(self, writer, audit_sink):
        pipeline, _ = make_pipeline(RecordingHandler(), audit_sink)

        with pytest.raises(ValidationError, match="No handler registered"):
            await pipeline.execute(note_command(writer, command_type=CommandType.TASK_DELETE))

    @pytest.mark.asyncio
    async def test_string_command_type_is_accepted(self, writer, audit_sink):
        pipeline, _ = make_pipeline(RecordingHandler(), audit_sink)

        assert await pipeline.execute(note_command(writer, command_type="TASK_CREATE")) == "handled hi"


class TestValidateStage:
    """Validation failures are raised before anything else and not audited."""

    @pytest.mark.asyncio
    async def test_invalid_payload(self, writer, audit_sink):
        handler = RecordingHandler()
        pipeline, engine = make_pipeline(handler, audit_sink)

        with pytest.raises(ValidationError) as exc_info:
            await pipeline.execute(note_command(writer, payload={}))

        assert "note" in str(exc_info.value)
        assert handler.stages == []
        assert engine.calls == []
        assert await audit_sink.get_events() == []
        assert not is_forbidden(exc_info.value)


class TestAuthorizeStage:
    """RBAC and tenant membership."""

    @pytest.mark.asyncio
    async def test_missing_permission_is_audited_and_raised(self, make_principal, audit_sink):
        handler = RecordingHandler()
        pipeline, engine = make_pipeline(handler, audit_sink)
        reader = make_principal(("note.read",))

        with pytest.raises(AuthorizationError) as exc_info:
            await pipeline.execute(note_command(reader))

        assert "TASK_CREATE" in str(exc_info.value)
        assert is_forbidden(exc_info.value)
        assert handler.stages == []
        assert engine.calls == []

        (event,) = await audit_sink.get_events()
        assert event.action == AuditAction.ACCESS_DENIED
        assert event.policy_decision.policy_id == "RBAC"
        assert event.policy_decision.outcome == Effect.DENY
        assert event.policy_decision.reason == "Missing required permissions"
        assert event.resource_id == "note"
        assert event.metadata["request_id"] == "req-1"

    @pytest.mark.asyncio
    async def test_empty_required_permissions_authorizes(self, make_principal, audit_sink):
        handler = RecordingHandler()
        handler.required_permissions = ()
        pipeline, _ = make_pipeline(handler, audit_sink)

        result = await pipeline.execute(note_command(make_principal(())))

        assert result == "handled hi"

    @pytest.mark.asyncio
    async def test_principal_outside_command_tenant(self, writer, audit_sink):
        handler = RecordingHandler()
        pipeline, _ = make_pipeline(handler, audit_sink)

        with pytest.raises(TenantIsolationError) as exc_info:
            await pipeline.execute(note_command(writer, tenant_id="tenant-2"))

        assert isinstance(exc_info.value, AuthorizationError)
        assert handler.stages == []
        (event,) = await audit_sink.get_events()
        assert event.policy_decision.policy_id == "TENANT"
        assert event.tenant_id == "tenant-2"


class TestLoadStage:
    """Context tenant check after loading."""

    @pytest.mark.asyncio
    async def test_context_from_other_tenant_is_denied(self, writer, audit_sink):
        handler = RecordingHandler(context_tenant="tenant-2")
        pipeline, engine = make_pipeline(handler, audit_sink)

        with pytest.raises(TenantIsolationError):
            await pipeline.execute(note_command(writer))

        assert handler.stages == ["load"]
        assert engine.calls == []
        (event,) = await audit_sink.get_events()
        assert event.action == AuditAction.ACCESS_DENIED
        assert event.policy_decision.policy_id == "TENANT"


class TestEvaluateStage:
    """Policy decisions."""

    @pytest.mark.asyncio
    async def test_policy_denial_is_audited_and_raised(self, writer, audit_sink):
        handler = RecordingHandler()
        pipeline, _ = make_pipeline(handler, audit_sink, decision=DENY)

        with pytest.raises(PolicyDeniedError) as exc_info:
            await pipeline.execute(note_command(writer))

        assert str(exc_info.value) == "Access Denied: No matching rule (default deny)"
        assert handler.stages == ["load"]
        (event,) = await audit_sink.get_events()
        assert event.action == AuditAction.ACCESS_DENIED
        assert event.policy_decision.policy_id == "unknown"
        assert event.policy_decision.reason == "No matching rule (default deny)"

    @pytest.mark.asyncio
    async def test_engine_receives_command_and_default_resource(self, writer, audit_sink):
        handler = RecordingHandler()
        pipeline, engine = make_pipeline(handler, audit_sink)

        await pipeline.execute(note_command(writer))

        ((principal_id, action, context, resource),) = engine.calls
        assert principal_id == writer.id
        assert action == "TASK_CREATE"
        assert context.tenant_id == writer.tenant_id
        assert resource == {"note": "hi"}


class TestHandleAndSuccessAudit:
    """Successful commands record exactly one success event."""

    @pytest.mark.asyncio
    async def test_success_is_audited_once(self, writer, audit_sink):
        handler = RecordingHandler()
        pipeline, _ = make_pipeline(handler, audit_sink)

        result = await pipeline.execute(note_command(writer))

        assert result == "handled hi"
        assert handler.stages == ["load", "handle"]
        (event,) = await audit_sink.get_events()
        assert event.action == AuditAction.TASK_CREATE
        assert event.policy_decision.policy_id == "r-allow"
        assert event.policy_decision.outcome == Effect.ALLOW
        assert event.actor_id == writer.id
        assert event.actor_type == "USER"
        assert event.payload == {"note": "hi"}
        assert event.metadata["command_type"] == "TASK_CREATE"

    @pytest.mark.asyncio
    async def test_handler_errors_pass_through_unaudited(self, writer, audit_sink):
        error = NotFoundError("Task not found")
        pipeline, _ = make_pipeline(RecordingHandler(fail_with=error), audit_sink)

        with pytest.raises(NotFoundError) as exc_info:
            await pipeline.execute(note_command(writer))

        assert exc_info.value is error
        assert await audit_sink.get_events() == []

    @pytest.mark.asyncio
    async def test_pipeline_is_reusable(self, writer, audit_sink):
        pipeline, _ = make_pipeline(RecordingHandler(), audit_sink)

        results = [await pipeline.execute(note_command(writer, payload={"note": str(i)})) for i in range(3)]

        assert results == ["handled 0", "handled 1", "handled 2"]
        assert len(await audit_sink.get_events()) == 3
