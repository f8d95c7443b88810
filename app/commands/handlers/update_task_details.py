"""
TASK_UPDATE_DETAILS: partial update of a manual task.

Fields missing from the payload keep their current value. The activity log
gets one entry per kind of change (comment, checklist, attachments, links,
people), or a single generic "Details updated" entry when none applies.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from app.commands.handlers.mutation import TaskMutationHandler
from app.commands.types import Command, CommandType, LoadedPolicy, UpdateTaskDetailsPayload
from app.policy.normalization import UPDATE_DETAILS_PLAN
from kanbax_core.domain.audit import AuditAction
from kanbax_core.domain.task import ActivityType, Task, TaskActivity, TaskComment, utcnow


def describe_changes(payload: UpdateTaskDetailsPayload) -> list[tuple[ActivityType, str]]:
    """Activity entries (type, message) for the changes ``payload`` requests."""
    entries: list[tuple[ActivityType, str]] = []
    if payload.comment_text and payload.comment_text.strip():
        entries.append((ActivityType.COMMENT, "Comment added"))
    if payload.checklist is not None:
        entries.append((ActivityType.CHECKLIST, "Checklist updated"))
    if payload.attachments_to_add or payload.attachments_to_remove:
        entries.append((ActivityType.ATTACHMENT, "Attachments updated"))
    if payload.linked_task_ids is not None:
        entries.append((ActivityType.LINK, "Linked tasks updated"))
    if payload.was_sent("owner_id") or payload.was_sent("assignees"):
        entries.append((ActivityType.DETAILS, "People updated"))
    if not entries:
        entries.append((ActivityType.DETAILS, "Details updated"))
    return entries


class UpdateTaskDetailsHandler(TaskMutationHandler):
    command_type = CommandType.TASK_UPDATE_DETAILS
    payload_model = UpdateTaskDetailsPayload
    required_permissions = ("task.update-details",)
    audit_action = AuditAction.TASK_UPDATE
    normalization = UPDATE_DETAILS_PLAN

    async def handle(self, command: Command, loaded: LoadedPolicy) -> Task:
        payload: UpdateTaskDetailsPayload = self.parse(command)
        task = await self.load_manual_task(command)
        actor_id = command.principal.id

        comments = list(task.comments)
        comment_text = (payload.comment_text or "").strip()
        if comment_text:
            comments.append(TaskComment(text=comment_text, created_by=actor_id))

        activity = [
            TaskActivity(type=activity_type, message=message, actor_id=actor_id)
            for activity_type, message in describe_changes(payload)
        ]

        if payload.is_favorite is not None:
            await self._set_favorite(command, task, payload.is_favorite)

        changes: dict[str, Any] = {
            "title": payload.title,
            "description": payload.description if payload.description is not None else task.description,
            "kinds": self._merge_kinds(payload, task),
            "priority": payload.priority or task.priority,
            "due_date": payload.due_date if payload.was_sent("due_date") else task.due_date,
            "owner_id": payload.owner_id if payload.was_sent("owner_id") else task.owner_id,
            "assignees": payload.assignees if payload.assignees is not None else task.assignees,
            "attachments": self._merge_attachments(payload, task),
            "comments": comments,
            "checklist": payload.checklist if payload.checklist is not None else task.checklist,
            "linked_task_ids": (
                payload.linked_task_ids if payload.linked_task_ids is not None else task.linked_task_ids
            ),
            "activity_log": [*task.activity_log, *activity],
            "exclude_from_all": (
                payload.exclude_from_all if payload.exclude_from_all is not None else task.exclude_from_all
            ),
            "updated_at": utcnow(),
            "version": task.version + 1,
        }
        updated = task.model_copy(update=changes)

        await self.repository.save(updated)
        return updated

    @staticmethod
    def _merge_kinds(payload: UpdateTaskDetailsPayload, task: Task) -> list[str]:
        if payload.kinds is not None:
            return payload.kinds
        if payload.kind:
            return [payload.kind]
        return task.kinds

    @staticmethod
    def _merge_attachments(payload: UpdateTaskDetailsPayload, task: Task) -> list:
        removed = set(payload.attachments_to_remove)
        kept = [attachment for attachment in task.attachments if attachment.id not in removed]
        return kept + list(payload.attachments_to_add)

    async def _set_favorite(self, command: Command, task: Task, is_favorite: bool) -> None:
        # Favorites are per user; the task's own flag is left alone.
        set_favorite = getattr(self.repository, "set_favorite_for_user", None)
        if set_favorite is None:
            logger.debug(f"[{command.request_id}] Repository keeps no per-user favorites, ignoring flag")
            return
        await set_favorite(command.tenant_id, task.id, command.principal.id, is_favorite)
