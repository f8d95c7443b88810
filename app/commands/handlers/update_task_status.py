"""TASK_UPDATE_STATUS: move a manual task to a new status."""

from __future__ import annotations

from app.commands.handlers.mutation import TaskMutationHandler
from app.commands.types import Command, CommandType, LoadedPolicy, UpdateTaskStatusPayload
from app.policy.normalization import UPDATE_STATUS_PLAN
from kanbax_core.domain.audit import AuditAction
from kanbax_core.domain.task import ActivityType, Task, TaskActivity, utcnow


class UpdateTaskStatusHandler(TaskMutationHandler):
    command_type = CommandType.TASK_UPDATE_STATUS
    payload_model = UpdateTaskStatusPayload
    required_permissions = ("task.update-status",)
    audit_action = AuditAction.TASK_UPDATE
    normalization = UPDATE_STATUS_PLAN

    async def handle(self, command: Command, loaded: LoadedPolicy) -> Task:
        payload: UpdateTaskStatusPayload = self.parse(command)
        task = await self.load_manual_task(command)

        activity = TaskActivity(
            type=ActivityType.STATUS,
            message=f"Status changed to {payload.new_status.value}",
            actor_id=command.principal.id,
        )
        updated = task.model_copy(
            update={
                "status": payload.new_status,
                "activity_log": [*task.activity_log, activity],
                "updated_at": utcnow(),
                "version": task.version + 1,
            }
        )

        await self.repository.save(updated)
        return updated
