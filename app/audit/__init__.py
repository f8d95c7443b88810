from .retention import RetentionResult, RetentionService
from .sink import InMemoryAuditSink

__all__ = ["InMemoryAuditSink", "RetentionResult", "RetentionService"]
