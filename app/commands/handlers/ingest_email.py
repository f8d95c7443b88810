"""
EMAIL_INGEST_METADATA: turn an inbound email into a read-only task.

Only metadata is used; the adapter never reads a message body.
"""

from __future__ import annotations

from app.commands.pipeline import BaseCommandHandler
from app.commands.types import Command, CommandType, IngestEmailPayload, LoadedPolicy
from kanbax_core.domain.audit import AuditAction
from kanbax_core.domain.interfaces import EmailIngestAdapter, TaskRepository
from kanbax_core.domain.policy import AuditLevel, PolicyContext, PolicyScope, allow_rule
from kanbax_core.domain.task import EmailSource, Task, TaskPriority, TaskStatus


class IngestEmailHandler(BaseCommandHandler):
    command_type = CommandType.EMAIL_INGEST_METADATA
    payload_model = IngestEmailPayload
    required_permissions = ("task.create",)
    audit_action = AuditAction.TASK_CREATE

    def __init__(self, repository: TaskRepository, email_adapter: EmailIngestAdapter):
        self.repository = repository
        self.email_adapter = email_adapter

    def resource_id(self, command: Command) -> str:
        return self.parse(command).message_id

    async def load_policy_context(self, command: Command) -> LoadedPolicy:
        payload: IngestEmailPayload = self.parse(command)
        context = PolicyContext(
            tenant_id=command.tenant_id,
            scope=PolicyScope.BOARD,
            scope_id=payload.board_id,
            rules=(allow_rule("email-ingest-1", CommandType.EMAIL_INGEST_METADATA.value),),
            audit_level=AuditLevel.FULL,
        )
        return LoadedPolicy(context=context)

    async def handle(self, command: Command, loaded: LoadedPolicy) -> Task:
        payload: IngestEmailPayload = self.parse(command)
        metadata = await self.email_adapter.extract_metadata(command.payload)

        task = Task(
            tenant_id=command.tenant_id,
            board_id=payload.board_id,
            title=metadata.subject,
            status=TaskStatus.TODO,
            priority=TaskPriority.MEDIUM,
            source=EmailSource(
                message_id=metadata.message_id,
                sender=metadata.sender,
                received_at=metadata.received_at,
                content_mode="metadata",
            ),
            policy_context=loaded.context,
        )

        await self.repository.save(task)
        return task
