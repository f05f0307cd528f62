"""
Email Package - Gmail integration for ApplyOps

This package handles:
- Gmail API access for a connected user (client.py)
- The sync pipeline that turns job emails into applications (scanner.py)

Usage:
    from applyops.email import GmailClient, EmailScanner

    result = scanner.sync(user_id)
"""

from .client import GmailClient, get_email_body, html_to_text, parse_message
from .scanner import (
    SEARCH_QUERY,
    EmailScanner,
    MessageOutcome,
    OutcomeKind,
    SyncResult,
    months_before,
)

__all__ = [
    "GmailClient",
    "get_email_body",
    "html_to_text",
    "parse_message",
    "SEARCH_QUERY",
    "EmailScanner",
    "MessageOutcome",
    "OutcomeKind",
    "SyncResult",
    "months_before",
]
