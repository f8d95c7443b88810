"""
Email metadata adapter.

Reads only envelope metadata from an inbound email payload. Message ids are
SHA-256 hashed (unless disabled in settings) before they are stored on the
created task's source. The ingest command's audit event still carries the
raw id as its resource id and in its payload snapshot.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from kanbax_core.domain.exceptions import ValidationError
from kanbax_core.domain.integrations import EmailMetadata


class InboundEmail(BaseModel):
    """Envelope fields of an inbound email; everything else (body included) is ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    message_id: str = Field(min_length=1)
    subject: str = ""
    sender: str = ""
    received_at: datetime | None = None


def sender_domain_of(sender: str) -> str:
    _, _, domain = sender.partition("@")
    return domain or "unknown"


def hash_message_id(message_id: str) -> str:
    return hashlib.sha256(message_id.encode()).hexdigest()


class DefaultEmailIngestAdapter:
    """Implements EmailIngestAdapter over already-parsed email payloads."""

    def __init__(self, hash_message_ids: bool | None = None):
        if hash_message_ids is None:
            from kanbax_core.config import settings

            hash_message_ids = settings.EMAIL_HASH_MESSAGE_IDS
        self.hash_message_ids = hash_message_ids

    async def extract_metadata(self, payload: dict[str, Any]) -> EmailMetadata:
        """
        Extract envelope metadata.

        Raises:
            ValidationError: If the payload has no message id.
        """
        try:
            email = InboundEmail.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError("Email payload is missing envelope metadata", message_debug=str(e)) from e

        message_id = hash_message_id(email.message_id) if self.hash_message_ids else email.message_id
        metadata = EmailMetadata(
            message_id=message_id,
            subject=email.subject,
            sender=email.sender,
            sender_domain=sender_domain_of(email.sender),
            received_at=email.received_at or datetime.now(timezone.utc),
        )
        logger.debug(f"Extracted email metadata from domain {metadata.sender_domain}")
        return metadata
