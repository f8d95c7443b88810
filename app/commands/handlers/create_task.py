"""
TASK_CREATE: author a task by hand.

The task's policy context is minted here and travels with the task for its
whole life; every rule in it is scoped to MANUAL-sourced tasks.
"""

from __future__ import annotations

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.commands.pipeline import BaseCommandHandler
from app.commands.types import Command, CommandType, CreateTaskPayload, LoadedPolicy
from kanbax_core.domain.audit import AuditAction
from kanbax_core.domain.exceptions import ValidationError
from kanbax_core.domain.interfaces import TaskRepository
from kanbax_core.domain.policy import AuditLevel, PolicyContext, PolicyScope, manual_only_rule
from kanbax_core.domain.task import (
    ActivityType,
    SourceType,
    Task,
    TaskActivity,
    TaskPriority,
    TaskSource,
    TaskStatus,
)

NEW_TASK_RESOURCE_ID = "new-task"

_source_adapter = TypeAdapter(TaskSource)


def default_task_rules():
    """ALLOW rules every new manual task starts with, in evaluation order."""
    return (
        manual_only_rule("rule-1", CommandType.TASK_CREATE.value),
        manual_only_rule("rule-2", CommandType.TASK_UPDATE_STATUS.value),
        manual_only_rule("rule-3", CommandType.TASK_UPDATE_DETAILS.value),
        manual_only_rule("rule-4", CommandType.TASK_DELETE.value),
    )


class CreateTaskHandler(BaseCommandHandler):
    command_type = CommandType.TASK_CREATE
    payload_model = CreateTaskPayload
    required_permissions = ("task.create",)
    audit_action = AuditAction.TASK_CREATE

    def __init__(self, repository: TaskRepository):
        self.repository = repository

    def resource_id(self, command: Command) -> str:
        return NEW_TASK_RESOURCE_ID

    async def load_policy_context(self, command: Command) -> LoadedPolicy:
        payload: CreateTaskPayload = self.parse(command)
        context = PolicyContext(
            tenant_id=command.tenant_id,
            scope=PolicyScope.BOARD,
            scope_id=payload.board_id,
            rules=default_task_rules(),
            audit_level=AuditLevel.FULL,
        )
        return LoadedPolicy(context=context)

    async def handle(self, command: Command, loaded: LoadedPolicy) -> Task:
        payload: CreateTaskPayload = self.parse(command)
        principal_id = command.principal.id

        if payload.kinds is not None:
            kinds = payload.kinds
        else:
            kinds = [payload.kind] if payload.kind else []

        task = Task(
            tenant_id=command.tenant_id,
            board_id=payload.board_id,
            title=payload.title,
            description=payload.description,
            kinds=kinds,
            status=payload.status or TaskStatus.BACKLOG,
            priority=payload.priority or TaskPriority.MEDIUM,
            due_date=payload.due_date,
            owner_id=payload.owner_id or principal_id,
            assignees=payload.assignees,
            attachments=payload.attachments,
            comments=payload.comments,
            checklist=payload.checklist,
            linked_task_ids=payload.linked_task_ids,
            activity_log=[
                TaskActivity(type=ActivityType.CREATE, message="Task created", actor_id=principal_id)
            ],
            is_favorite=payload.is_favorite,
            source=self._build_source(payload, principal_id),
            policy_context=loaded.context,
            version=1,
        )

        await self.repository.save(task)
        return task

    @staticmethod
    def _build_source(payload: CreateTaskPayload, principal_id: str) -> TaskSource:
        descriptor = dict(payload.source)
        manual = descriptor["type"] == SourceType.MANUAL.value
        if manual and "createdBy" not in descriptor and "created_by" not in descriptor:
            descriptor["createdBy"] = principal_id
        try:
            return _source_adapter.validate_python(descriptor)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {descriptor['type']} source descriptor",
                message_debug=str(e),
            ) from e
