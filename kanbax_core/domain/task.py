"""
Task domain models.

A Task is the resource every command in the pipeline creates or mutates.
It carries its own PolicyContext from creation time and a ``source``
variant recording its provenance:

- ManualSource: authored locally, mutable through the pipeline
- EmailSource: created from inbound email metadata, read-only afterwards
- JiraSource: linked to an external issue, read-only afterwards
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kanbax_core.domain.policy import PolicyContext


def new_token() -> str:
    """Opaque identifier for tasks, comments and activity entries.

    No uniqueness check is made here; the repository is expected to reject
    or de-duplicate collisions.
    """
    return uuid.uuid4().hex[:13]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DomainModel(BaseModel):
    """Base for task models: snake_case fields, camelCase aliases accepted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskStatus(str, Enum):
    BACKLOG = "BACKLOG"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    BLOCKED = "BLOCKED"
    ARCHIVED = "ARCHIVED"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class SourceType(str, Enum):
    MANUAL = "MANUAL"
    EMAIL = "EMAIL"
    JIRA = "JIRA"


class ActivityType(str, Enum):
    CREATE = "CREATE"
    STATUS = "STATUS"
    DETAILS = "DETAILS"
    COMMENT = "COMMENT"
    CHECKLIST = "CHECKLIST"
    ATTACHMENT = "ATTACHMENT"
    LINK = "LINK"


# --- Provenance variants ---


class ManualSource(DomainModel):
    type: Literal["MANUAL"] = "MANUAL"
    created_by: str | None = None


class EmailSource(DomainModel):
    type: Literal["EMAIL"] = "EMAIL"
    message_id: str
    sender: str
    received_at: datetime
    content_mode: Literal["metadata", "full"] = "metadata"


class JiraSource(DomainModel):
    type: Literal["JIRA"] = "JIRA"
    issue_key: str
    instance_url: str
    instance_type: Literal["CLOUD", "DATA_CENTER"] = "CLOUD"
    sync_mode: Literal["link", "full"] = "link"


TaskSource = Annotated[Union[ManualSource, EmailSource, JiraSource], Field(discriminator="type")]


# --- Task parts ---


class TaskAttachment(DomainModel):
    id: str
    name: str
    size: int = 0
    type: str = "application/octet-stream"
    data_url: str = ""
    uploaded_at: datetime = Field(default_factory=utcnow)


class TaskComment(DomainModel):
    id: str = Field(default_factory=new_token)
    text: str
    created_at: datetime = Field(default_factory=utcnow)
    created_by: str


class TaskChecklistItem(DomainModel):
    id: str = Field(default_factory=new_token)
    text: str
    done: bool = False


class TaskActivity(DomainModel):
    id: str = Field(default_factory=new_token)
    type: ActivityType
    message: str
    timestamp: datetime = Field(default_factory=utcnow)
    actor_id: str


class Task(DomainModel):
    """A unit of work on a board, owned by exactly one tenant."""

    id: str = Field(default_factory=new_token)
    tenant_id: str
    board_id: str
    title: str
    description: str | None = None
    kinds: list[str] = Field(default_factory=list)
    status: TaskStatus = TaskStatus.BACKLOG
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    owner_id: str | None = None
    assignees: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    attachments: list[TaskAttachment] = Field(default_factory=list)
    comments: list[TaskComment] = Field(default_factory=list)
    checklist: list[TaskChecklistItem] = Field(default_factory=list)
    linked_task_ids: list[str] = Field(default_factory=list)
    activity_log: list[TaskActivity] = Field(default_factory=list)
    is_favorite: bool = False
    exclude_from_all: bool = False
    source: TaskSource
    policy_context: PolicyContext
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 1

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @property
    def is_manual(self) -> bool:
        return self.source.type == SourceType.MANUAL

    def as_policy_resource(self) -> dict[str, Any]:
        """camelCase key/value view used by policy conditions (``resource.boardId``...)."""
        return self.model_dump(mode="json", by_alias=True)
