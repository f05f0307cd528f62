"""
Service container - wires the store, AI provider, Google integrations and
the Gmail sync pipeline from a Config.

One Services instance lives on the Flask app; tests build their own with
fakes swapped in.
"""

import logging
import threading
from typing import Callable, Optional

from applyops.ai import EmailClassifier, get_provider
from applyops.config import Config
from applyops.database import RecordStore
from applyops.email import EmailScanner, GmailClient
from applyops.google import (
    GMAIL_SCOPE,
    CalendarSynchronizer,
    GoogleCredentialProvider,
    build_oauth_flow,
)

logger = logging.getLogger(__name__)


class Services:
    """Lazily constructed application services."""

    def __init__(
        self,
        config: Config,
        store: Optional[RecordStore] = None,
        ai_provider=None,
        credentials: Optional[GoogleCredentialProvider] = None,
        calendar: Optional[CalendarSynchronizer] = None,
        mailbox_factory: Optional[Callable] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.config = config
        self.store = store or RecordStore(config.database_path).init()
        self._ai_provider = ai_provider
        self.credentials = credentials or GoogleCredentialProvider(
            self.store, config.google_client_id, config.google_client_secret
        )
        self.calendar = calendar or CalendarSynchronizer(
            self.credentials,
            timezone=config.calendar_timezone,
            calendar_id=config.calendar_id,
        )
        self.mailbox_factory = mailbox_factory or self._gmail_for_user
        self._sleep = sleep
        self._scanner = None
        # guards lazy construction of the AI provider and the scanner
        self._build_lock = threading.RLock()

    @property
    def ai_provider(self):
        """AI provider, created on first use so the API starts without an AI key."""
        with self._build_lock:
            if self._ai_provider is None:
                self._ai_provider = get_provider(self.config.to_dict())
            return self._ai_provider

    def _gmail_for_user(self, user_id: str) -> Optional[GmailClient]:
        creds = self.credentials.get_valid_credentials(user_id, GMAIL_SCOPE)
        if creds is None:
            return None
        return GmailClient.from_credentials(creds)

    @property
    def scanner(self) -> EmailScanner:
        with self._build_lock:
            if self._scanner is None:
                kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
                self._scanner = EmailScanner(
                    store=self.store,
                    classifier=EmailClassifier(self.ai_provider),
                    calendar=self.calendar,
                    mailbox_factory=self.mailbox_factory,
                    max_results=self.config.sync_max_results,
                    lookback_months=self.config.sync_lookback_months,
                    message_delay=self.config.sync_message_delay,
                    confidence_threshold=self.config.confidence_threshold,
                    operation_log_dir=self.config.operation_log_dir,
                    **kwargs,
                )
            return self._scanner

    def oauth_flow(self):
        return build_oauth_flow(
            self.config.google_client_id,
            self.config.google_client_secret,
            self.config.google_redirect_uri,
        )
