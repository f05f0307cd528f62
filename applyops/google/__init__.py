"""
Google Package - OAuth credentials and Calendar integration

Gmail access lives in applyops.email; this package owns the per-user
Google token lifecycle and interview scheduling.
"""

from .auth import (
    GMAIL_SCOPE,
    CALENDAR_SCOPE,
    OAUTH_SCOPES,
    GoogleCredentialProvider,
    build_oauth_flow,
    get_authorization_url,
    exchange_code,
    sign_state,
    read_state,
)
from .calendar_sync import CalendarSynchronizer

__all__ = [
    "GMAIL_SCOPE",
    "CALENDAR_SCOPE",
    "OAUTH_SCOPES",
    "GoogleCredentialProvider",
    "build_oauth_flow",
    "get_authorization_url",
    "exchange_code",
    "sign_state",
    "read_state",
    "CalendarSynchronizer",
]
