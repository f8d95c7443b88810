from .pipeline import BaseCommandHandler, CommandHandler, CommandPipeline
from .types import Command, CommandType, LoadedPolicy

__all__ = [
    "BaseCommandHandler",
    "CommandHandler",
    "CommandPipeline",
    "Command",
    "CommandType",
    "LoadedPolicy",
]
