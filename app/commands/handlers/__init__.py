from .create_task import CreateTaskHandler
from .delete_task import DeleteTaskHandler
from .ingest_email import IngestEmailHandler
from .link_issue import LinkIssueHandler
from .update_task_details import UpdateTaskDetailsHandler
from .update_task_status import UpdateTaskStatusHandler

__all__ = [
    "CreateTaskHandler",
    "DeleteTaskHandler",
    "IngestEmailHandler",
    "LinkIssueHandler",
    "UpdateTaskDetailsHandler",
    "UpdateTaskStatusHandler",
]
