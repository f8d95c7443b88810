"""TASK_DELETE: hard-delete a manual task."""

from __future__ import annotations

from app.commands.handlers.mutation import TaskMutationHandler
from app.commands.types import Command, CommandType, DeleteTaskPayload, LoadedPolicy
from app.policy.normalization import DELETE_PLAN
from kanbax_core.domain.audit import AuditAction


class DeleteTaskHandler(TaskMutationHandler):
    command_type = CommandType.TASK_DELETE
    payload_model = DeleteTaskPayload
    required_permissions = ("task.delete",)
    audit_action = AuditAction.TASK_DELETE
    normalization = DELETE_PLAN

    async def handle(self, command: Command, loaded: LoadedPolicy) -> None:
        task = await self.load_manual_task(command)
        await self.repository.delete(task.id, command.tenant_id)
