"""
Kanbax service entry point.

Configures logging and hands back the shared command pipeline.

Usage:
    from app.main import create_app

    pipeline = create_app()
    task = await pipeline.execute(command)
"""

from loguru import logger

from app.commands.factory import get_command_pipeline
from app.commands.pipeline import CommandPipeline
from kanbax_core.logging import setup_logging


def create_app(log_level: str | None = None) -> CommandPipeline:
    """Initialize logging and return the shared pipeline."""
    setup_logging(log_level)

    pipeline = get_command_pipeline()
    logger.info(f"Command pipeline ready with {len(pipeline.command_types)} command types")
    return pipeline
