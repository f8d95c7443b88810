from .task_repository import InMemoryTaskRepository

__all__ = ["InMemoryTaskRepository"]
