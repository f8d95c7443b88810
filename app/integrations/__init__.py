from .email_adapter import DefaultEmailIngestAdapter
from .issue_adapter import JiraIssueAdapter

__all__ = ["DefaultEmailIngestAdapter", "JiraIssueAdapter"]
