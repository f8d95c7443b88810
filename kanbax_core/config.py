"""
Unified configuration for kanbax services.

Settings are loaded from the project's .env file and can be overridden by
actual environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine project root for .env file loading (allows running from any CWD)
PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Settings for the command pipeline and its integrations."""

    # Service identification
    SERVICE_NAME: str = "kanbax"
    LOG_LEVEL: str = "INFO"

    # Audit
    AUDIT_LOG_EVENTS: bool = True  # Echo each appended audit event to the log

    # Email ingest
    EMAIL_HASH_MESSAGE_IDS: bool = True

    # Jira
    JIRA_CLOUD_BASE_URL: str = "https://kanbax.atlassian.net"
    JIRA_DC_BASE_URL: str = "https://jira.internal.example"
    JIRA_API_TOKEN: str = ""
    JIRA_TIMEOUT_SECONDS: float = 10.0
    JIRA_MAX_ATTEMPTS: int = 3

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        extra="ignore",
    )


# Global settings instance
settings = Settings()  # type: ignore
