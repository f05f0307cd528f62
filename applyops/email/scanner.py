"""
Email Scanner - Gmail sync pipeline

For each candidate message in the user's mailbox:

1. skip it if its email log is already processed
2. fetch the message and record an email log
3. classify it and apply the confidence gate
4. match it to an existing application and reconcile the status
5. schedule an interview event when one is due (best effort)
6. persist the application change and mark the log processed together

Every message yields a MessageOutcome; failures are isolated to the message
that caused them. Only a missing Gmail connection or a concurrent sync for
the same user stops a run.
"""

import logging
import threading
import time
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from applyops.errors import MailboxNotConnectedError, SyncInProgressError
from applyops.logging_config import SyncRunLog
from applyops.models import MessageDetail, Verdict, utcnow
from applyops.tracking import DecisionKind, find_existing_application, reconcile

logger = logging.getLogger(__name__)

SEARCH_QUERY = (
    '("thank you for applying" OR "we received your application" OR interview '
    'OR offer OR unfortunately OR "moving forward" OR assessment) '
    "-label:SPAM -label:TRASH"
)

DEFAULT_MAX_RESULTS = 20
DEFAULT_LOOKBACK_MONTHS = 3
DEFAULT_MESSAGE_DELAY = 4.0
DEFAULT_CONFIDENCE_THRESHOLD = 0.7


class OutcomeKind(str, Enum):
    APPLIED = "applied"  # application created or updated
    IGNORED = "ignored"  # reconciled, but the status rule kept the application as is
    SKIPPED = "skipped"  # already processed
    SOFT_FAILED = "soft_failed"  # no usable verdict; retried next run
    FAILED = "failed"  # unexpected error; retried next run


@dataclass
class MessageOutcome:
    message_id: str
    kind: OutcomeKind
    detail: str = ""
    application_id: Optional[str] = None
    calendar_event_id: Optional[str] = None


@dataclass
class SyncResult:
    """Aggregate of one sync run."""

    count: int = 0
    scanned: int = 0
    tallies: Dict[str, int] = field(default_factory=lambda: {k.value: 0 for k in OutcomeKind})
    outcomes: List[MessageOutcome] = field(default_factory=list)

    def record(self, outcome: MessageOutcome) -> None:
        self.outcomes.append(outcome)
        self.scanned += 1
        self.tallies[outcome.kind.value] += 1
        if outcome.kind == OutcomeKind.APPLIED:
            self.count += 1

    @property
    def message(self) -> str:
        return f"Processed {self.count} updates from Gmail"

    def to_dict(self) -> dict:
        return {"count": self.count, "scanned": self.scanned, "tallies": dict(self.tallies)}


def months_before(day: date, months: int) -> date:
    """
    Same calendar day ``months`` earlier, clamped to the month's length.

    >>> months_before(date(2024, 5, 31), 3)
    datetime.date(2024, 2, 29)
    """
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


class EmailScanner:
    """Runs Gmail syncs for users; at most one run per user at a time."""

    def __init__(
        self,
        store,
        classifier,
        calendar,
        mailbox_factory: Callable,
        max_results: int = DEFAULT_MAX_RESULTS,
        lookback_months: int = DEFAULT_LOOKBACK_MONTHS,
        message_delay: float = DEFAULT_MESSAGE_DELAY,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        operation_log_dir: Optional[Path] = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            store: RecordStore
            classifier: EmailClassifier
            calendar: CalendarSynchronizer
            mailbox_factory: user_id -> mailbox client, or None when the user
                has no usable Gmail connection
            max_results: Messages listed per run
            lookback_months: How far back the Gmail query reaches
            message_delay: Seconds to wait before fetching each message
            confidence_threshold: Verdicts below this never touch applications
            operation_log_dir: Where per-run operation logs are written
            sleep: Sleep function (tests pass a no-op)
            now: Clock (tests)
        """
        self.store = store
        self.classifier = classifier
        self.calendar = calendar
        self.mailbox_factory = mailbox_factory
        self.max_results = max_results
        self.lookback_months = lookback_months
        self.message_delay = message_delay
        self.confidence_threshold = confidence_threshold
        self.operation_log_dir = operation_log_dir
        self.sleep = sleep
        self.now = now

        self._running = set()
        self._running_lock = threading.Lock()

    # ===== RUN LOCK =====

    def _acquire(self, user_id: str) -> None:
        with self._running_lock:
            if user_id in self._running:
                raise SyncInProgressError(user_id)
            self._running.add(user_id)

    def _release(self, user_id: str) -> None:
        with self._running_lock:
            self._running.discard(user_id)

    def is_running(self, user_id: str) -> bool:
        with self._running_lock:
            return user_id in self._running

    # ===== RUN =====

    def sync(self, user_id: str) -> SyncResult:
        """
        Run one Gmail sync for a user.

        Returns:
            SyncResult whose count is the number of applications created or
            updated

        Raises:
            SyncInProgressError: A sync for this user is already running
            MailboxNotConnectedError: The user has no usable Gmail credential
        """
        self._acquire(user_id)
        try:
            return self._sync(user_id)
        finally:
            self._release(user_id)

    def _sync(self, user_id: str) -> SyncResult:
        mailbox = self.mailbox_factory(user_id)
        if mailbox is None:
            raise MailboxNotConnectedError()

        self.store.ensure_user(user_id)
        run_log = SyncRunLog(user_id, log_dir=self.operation_log_dir)
        since = months_before(self.now().date(), self.lookback_months)
        message_ids = mailbox.list_candidate_messages(since, SEARCH_QUERY, self.max_results)
        run_log.info(f"Found {len(message_ids)} candidate messages")

        result = SyncResult()
        for message_id in message_ids:
            try:
                outcome = self._process_message(user_id, mailbox, message_id)
            except Exception as e:
                logger.exception(f"Failed to process email {message_id}: {e}")
                outcome = MessageOutcome(message_id, OutcomeKind.FAILED, detail=str(e))

            if outcome.kind == OutcomeKind.FAILED:
                run_log.error(outcome.detail, message_id=message_id)
            elif outcome.kind != OutcomeKind.SKIPPED:
                run_log.info(f"{outcome.kind.value}: {outcome.detail}", message_id=message_id)
            result.record(outcome)

        run_log.finish(result.message, **result.to_dict())
        logger.info(
            f"Gmail sync for {user_id} done in {run_log.summary()['duration_seconds']}s: "
            f"{result.tallies}"
        )
        return result

    # ===== PER MESSAGE =====

    def _process_message(self, user_id: str, mailbox, message_id: str) -> MessageOutcome:
        log = self.store.get_email_log(message_id)
        if log is not None and log.processed:
            return MessageOutcome(message_id, OutcomeKind.SKIPPED, detail="already processed")

        if self.message_delay > 0:
            self.sleep(self.message_delay)

        message = mailbox.get_message_detail(message_id)
        self.store.upsert_email_log(
            user_id, message_id, message.subject, message.sender, message.received_at
        )

        classification = self.classifier.evaluate(
            message.body_text, message.subject, message.sender
        )
        verdict = classification.verdict
        if verdict is None:
            return MessageOutcome(
                message_id, OutcomeKind.SOFT_FAILED, detail=classification.reason.value
            )

        if verdict.confidence < self.confidence_threshold:
            return MessageOutcome(
                message_id,
                OutcomeKind.SOFT_FAILED,
                detail=f"low confidence {verdict.confidence:.2f} for {verdict.company}",
            )

        return self._apply_verdict(user_id, message, verdict)

    def _apply_verdict(self, user_id: str, message: MessageDetail, verdict: Verdict) -> MessageOutcome:
        existing = find_existing_application(self.store, user_id, verdict.company)
        decision = reconcile(user_id, verdict, message, existing, now=self.now())

        event_id = None
        if decision.schedule_interview:
            event_id = self.calendar.ensure_interview_event(
                user_id, decision.application, decision.interview_at, notes=verdict.summary
            )
            if event_id is None:
                logger.warning(f"Interview for {decision.application.company} not scheduled")

        try:
            with self.store.transaction() as conn:
                if decision.kind == DecisionKind.CREATE:
                    decision.application.calendar_event_id = event_id
                    application = self.store.create_application(decision.application, conn=conn)
                elif decision.kind == DecisionKind.UPDATE:
                    changes = dict(decision.changes)
                    if event_id:
                        changes["calendar_event_id"] = event_id
                    application = self.store.update_application(
                        decision.application.id,
                        changes,
                        expected_version=decision.application.version,
                        conn=conn,
                    )
                else:
                    application = decision.application

                self.store.mark_email_processed(message.message_id, verdict.to_dict(), conn=conn)
        except Exception:
            # nothing points at the new event once the write fails
            if event_id:
                self.calendar.delete_interview_event(user_id, event_id)
            raise

        if decision.kind == DecisionKind.IGNORE:
            return MessageOutcome(
                message.message_id,
                OutcomeKind.IGNORED,
                detail=f"{verdict.company}: kept {application.status.value}",
                application_id=application.id,
            )

        return MessageOutcome(
            message.message_id,
            OutcomeKind.APPLIED,
            detail=f"{decision.kind.value} {application.company} ({application.status.value})",
            application_id=application.id,
            calendar_event_id=event_id,
        )
