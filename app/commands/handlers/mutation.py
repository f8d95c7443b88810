"""
Shared behaviour of the handlers that mutate an existing task.

Update-status, update-details and delete all:
- load the task from the repository (tenant scoped)
- normalize its embedded policy context for their action
- evaluate conditions against the stored task rather than the payload
- refuse to touch tasks that were not authored locally
"""

from __future__ import annotations

from typing import Any, ClassVar

from loguru import logger

from app.commands.pipeline import BaseCommandHandler
from app.commands.types import Command, LoadedPolicy
from app.policy.normalization import NormalizationPlan, normalize_for
from kanbax_core.domain.exceptions import NotFoundError, StructuralGateError
from kanbax_core.domain.interfaces import TaskRepository
from kanbax_core.domain.task import Task


class TaskMutationHandler(BaseCommandHandler):
    normalization: ClassVar[NormalizationPlan]

    def __init__(self, repository: TaskRepository):
        self.repository = repository

    def resource_id(self, command: Command) -> str:
        return self.parse(command).task_id

    async def load_policy_context(self, command: Command) -> LoadedPolicy:
        task = await self._find_task(command, "Task not found or access denied")
        context = normalize_for(task.policy_context, self.normalization)
        if context is not task.policy_context:
            added = [rule.id for rule in context.rules[len(task.policy_context.rules):]]
            logger.debug(f"[{command.request_id}] Normalized policy context of task {task.id}: added {added}")
        return LoadedPolicy(context=context, resource=task)

    def policy_resource(self, command: Command, loaded: LoadedPolicy) -> Any:
        if loaded.resource is None:
            return command.payload
        return loaded.resource.as_policy_resource()

    async def load_manual_task(self, command: Command) -> Task:
        """
        Re-read the task and apply the MANUAL-only structural gate.

        Raises:
            NotFoundError: If the task disappeared since the load stage.
            StructuralGateError: If the task was ingested or linked.
        """
        task = await self._find_task(command, "Task not found")
        if not task.is_manual:
            raise StructuralGateError(
                "Only manual tasks can be modified",
                message_debug=f"task {task.id} has source {task.source.type}",
            )
        return task

    async def _find_task(self, command: Command, message: str) -> Task:
        task_id = self.parse(command).task_id
        task = await self.repository.find_by_id(task_id, command.tenant_id)
        if task is None:
            raise NotFoundError(message, message_debug=f"task {task_id} in tenant {command.tenant_id}")
        return task
