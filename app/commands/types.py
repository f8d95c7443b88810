"""
Command model and typed payloads.

A Command is what the boundary layer hands to the pipeline: a command type,
the already-resolved principal, the tenant, and a raw payload dict. Each
handler parses the payload into one of the models below during validation.
Payload fields are snake_case; the camelCase spelling sent by clients is
accepted as an alias.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from kanbax_core.domain.identity import Principal
from kanbax_core.domain.policy import PolicyContext
from kanbax_core.domain.task import (
    SourceType,
    Task,
    TaskAttachment,
    TaskChecklistItem,
    TaskComment,
    TaskPriority,
    TaskStatus,
)


class CommandType(str, Enum):
    """The closed set of commands the pipeline accepts."""

    TASK_CREATE = "TASK_CREATE"
    TASK_UPDATE_STATUS = "TASK_UPDATE_STATUS"
    TASK_UPDATE_DETAILS = "TASK_UPDATE_DETAILS"
    TASK_DELETE = "TASK_DELETE"
    EMAIL_INGEST_METADATA = "EMAIL_INGEST_METADATA"
    JIRA_LINK_TASK = "JIRA_LINK_TASK"


@dataclass(frozen=True)
class Command:
    """
    A typed request to mutate state on behalf of a principal.

    ``tenant_id`` is set by the boundary layer from the principal's tenant
    membership; any tenant id inside ``payload`` is ignored.
    """

    type: CommandType | str
    principal: Principal
    tenant_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class LoadedPolicy:
    """Result of the load stage: the context to evaluate and the task it guards, if any."""

    context: PolicyContext
    resource: Task | None = None


# --- Payloads ---


class CommandPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CreateTaskPayload(CommandPayload):
    title: str = Field(min_length=1)
    board_id: str = Field(min_length=1)
    source: dict[str, Any]
    description: str | None = None
    kind: str | None = None
    kinds: list[str] | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    owner_id: str | None = None
    assignees: list[str] = Field(default_factory=list)
    attachments: list[TaskAttachment] = Field(default_factory=list)
    comments: list[TaskComment] = Field(default_factory=list)
    checklist: list[TaskChecklistItem] = Field(default_factory=list)
    linked_task_ids: list[str] = Field(default_factory=list)
    is_favorite: bool = False

    @field_validator("source")
    @classmethod
    def _source_has_known_type(cls, value: dict[str, Any]) -> dict[str, Any]:
        source_type = value.get("type")
        if source_type not in {member.value for member in SourceType}:
            raise ValueError(f"unknown source type: {source_type!r}")
        return value


class UpdateTaskStatusPayload(CommandPayload):
    task_id: str = Field(min_length=1)
    new_status: TaskStatus


class UpdateTaskDetailsPayload(CommandPayload):
    """
    Partial update of a task's details.

    Fields left out keep their current value. ``due_date`` and ``owner_id``
    sent explicitly as null clear the field.
    """

    task_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str | None = None
    kind: str | None = None
    kinds: list[str] | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    owner_id: str | None = None
    assignees: list[str] | None = None
    attachments_to_add: list[TaskAttachment] = Field(default_factory=list)
    attachments_to_remove: list[str] = Field(default_factory=list)
    comment_text: str | None = None
    checklist: list[TaskChecklistItem] | None = None
    linked_task_ids: list[str] | None = None
    is_favorite: bool | None = None
    exclude_from_all: bool | None = None

    def was_sent(self, name: str) -> bool:
        """True if ``name`` was present in the payload, even as null."""
        return name in self.model_fields_set


class DeleteTaskPayload(CommandPayload):
    task_id: str = Field(min_length=1)


class IngestEmailPayload(CommandPayload):
    message_id: str = Field(min_length=1)
    board_id: str = Field(min_length=1)
    subject: str = ""
    sender: str = ""
    received_at: datetime | None = None


class LinkIssuePayload(CommandPayload):
    issue_key: str = Field(min_length=1)
    board_id: str = Field(min_length=1)
    deployment: Literal["cloud", "data_center"] = "cloud"
