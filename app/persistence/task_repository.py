"""
InMemoryTaskRepository: tenant-scoped task storage for tests and development.

Tasks are partitioned by tenant id; a lookup under the wrong tenant behaves
exactly like a lookup of a task that does not exist.

Note: Does not persist across restarts.
"""

from __future__ import annotations

from loguru import logger

from kanbax_core.domain.exceptions import InvariantViolationError
from kanbax_core.domain.task import Task


class InMemoryTaskRepository:
    """
    Implements TaskRepository, plus per-user favorites.

    Example:
    ```python
    repository = InMemoryTaskRepository()
    await repository.save(task)
    same = await repository.find_by_id(task.id, task.tenant_id)
    ```
    """

    def __init__(self):
        self._tasks: dict[str, dict[str, Task]] = {}
        self._favorites: dict[tuple[str, str], set[str]] = {}

    async def find_by_id(self, task_id: str, tenant_id: str) -> Task | None:
        return self._tasks.get(tenant_id, {}).get(task_id)

    async def find_all_by_board_id(self, board_id: str, tenant_id: str) -> list[Task]:
        return [task for task in self._tasks.get(tenant_id, {}).values() if task.board_id == board_id]

    async def find_all_by_tenant(self, tenant_id: str) -> list[Task]:
        return list(self._tasks.get(tenant_id, {}).values())

    async def save(self, task: Task) -> None:
        """
        Insert or replace ``task`` under its own tenant.

        Raises:
            InvariantViolationError: If the task lacks an id, a source or a
                policy context, or its context belongs to another tenant.
        """
        self._check_invariants(task)
        self._tasks.setdefault(task.tenant_id, {})[task.id] = task
        logger.debug(f"Saved task {task.id} v{task.version} for tenant={task.tenant_id}")

    async def delete(self, task_id: str, tenant_id: str) -> None:
        removed = self._tasks.get(tenant_id, {}).pop(task_id, None)
        if removed is not None:
            for (fav_tenant, _), task_ids in self._favorites.items():
                if fav_tenant == tenant_id:
                    task_ids.discard(task_id)
            logger.debug(f"Deleted task {task_id} for tenant={tenant_id}")

    async def set_favorite_for_user(self, tenant_id: str, task_id: str, user_id: str, is_favorite: bool) -> None:
        favorites = self._favorites.setdefault((tenant_id, user_id), set())
        if is_favorite:
            favorites.add(task_id)
        else:
            favorites.discard(task_id)

    async def favorites_for_user(self, tenant_id: str, user_id: str) -> set[str]:
        return set(self._favorites.get((tenant_id, user_id), set()))

    @staticmethod
    def _check_invariants(task: Task) -> None:
        task_id = getattr(task, "id", None)
        if not task_id:
            raise InvariantViolationError("Task is missing an id")
        if getattr(task, "source", None) is None:
            raise InvariantViolationError("Task is missing a source", message_debug=f"task {task_id}")
        context = getattr(task, "policy_context", None)
        if context is None:
            raise InvariantViolationError("Task is missing a policy context", message_debug=f"task {task_id}")
        if context.tenant_id != task.tenant_id:
            raise InvariantViolationError(
                "Task policy context belongs to another tenant",
                message_debug=f"task {task_id}: {context.tenant_id} != {task.tenant_id}",
            )
