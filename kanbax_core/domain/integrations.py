"""
Metadata returned by the integration adapters.

Only metadata crosses the adapter boundary: no email bodies and no full
issue documents are ever handed to the command handlers.
"""

from datetime import datetime

from pydantic import BaseModel


class EmailMetadata(BaseModel):
    message_id: str
    subject: str
    sender: str
    sender_domain: str
    received_at: datetime


class IssueMinimal(BaseModel):
    issue_key: str
    summary: str
    status: str
    url: str
    updated_at: datetime
