"""
Status Reconciler - decides what one verdict does to the application set

The reconciler is pure: given a verdict, the message it came from and the
matched application (if any) it returns a Decision. Persisting the decision
and talking to the calendar is the scanner's job.

Rules:
- no existing application: create one
- existing application: update when the new status does not lower the
  priority, or when the email carries an interview date; otherwise ignore
- notes are only ever appended to
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from applyops.models import (
    Application,
    ApplicationStatus,
    MessageDetail,
    Verdict,
    status_priority,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "Unknown Role"
DEFAULT_PLATFORM = "Company Portal"

# sender domain -> platform (subdomains included)
SENDER_PLATFORMS = (
    ("linkedin.com", "LinkedIn"),
    ("naukri.com", "Naukri"),
    ("indeed.com", "Indeed"),
    ("amazon.jobs", "Amazon Careers"),
    ("google.com", "Google Careers"),
)

_SENDER_DOMAIN = re.compile(r"@([\w.-]+)")

GMAIL_MESSAGE_URL = "https://mail.google.com/mail/u/0/#inbox/{message_id}"


class DecisionKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    IGNORE = "ignore"


@dataclass
class Decision:
    """
    Outcome of reconciling one verdict.

    For CREATE, ``application`` is an unsaved draft. For UPDATE and IGNORE
    it is the matched application and ``changes`` holds the columns to
    write. ``schedule_interview`` asks the caller to create a calendar event.
    """

    kind: DecisionKind
    application: Application
    status: ApplicationStatus
    changes: Dict[str, Any] = field(default_factory=dict)
    interview_at: Optional[datetime] = None
    schedule_interview: bool = False


def platform_from_sender(sender: str) -> str:
    """
    Infer the job platform from the sender's domain.

    "LinkedIn <jobs-noreply@linkedin.com>" -> "LinkedIn"; unknown domains
    give "Company Portal".
    """
    match = _SENDER_DOMAIN.search(sender or "")
    domain = match.group(1).lower() if match else ""
    for known, platform in SENDER_PLATFORMS:
        if domain == known or domain.endswith("." + known):
            return platform
    return DEFAULT_PLATFORM


def gmail_message_url(message_id: str) -> str:
    return GMAIL_MESSAGE_URL.format(message_id=message_id)


def _note_date(now: datetime) -> str:
    return now.strftime("%Y-%m-%d")


def _needs_event(status: ApplicationStatus, interview_at: Optional[datetime], event_id) -> bool:
    return status == ApplicationStatus.INTERVIEWING and interview_at is not None and not event_id


def reconcile(
    user_id: str,
    verdict: Verdict,
    message: MessageDetail,
    existing: Optional[Application],
    now: Optional[datetime] = None,
) -> Decision:
    """
    Reconcile a verdict against the matched application.

    Args:
        user_id: Owner of the mailbox
        verdict: Classifier verdict (already past the confidence gate)
        message: The email the verdict was produced from
        existing: Matched application, or None
        now: Clock override (tests)

    Returns:
        Decision
    """
    now = now or utcnow()
    new_status = verdict.application_status

    if existing is None:
        draft = Application(
            user_id=user_id,
            company=verdict.company,
            role=verdict.role or DEFAULT_ROLE,
            status=new_status,
            platform=verdict.platform or platform_from_sender(message.sender),
            applied_at=message.received_at,
            interview_at=verdict.interview_date,
            salary=verdict.salary,
            location=verdict.location,
            url=gmail_message_url(message.message_id),
            email_id=message.message_id,
            notes=f"[{_note_date(now)}] Initial: {verdict.summary}" if verdict.summary else None,
        )
        return Decision(
            kind=DecisionKind.CREATE,
            application=draft,
            status=new_status,
            interview_at=verdict.interview_date,
            schedule_interview=_needs_event(new_status, verdict.interview_date, None),
        )

    is_upgrade = status_priority(new_status) >= status_priority(existing.status)
    has_date = verdict.interview_date is not None

    if not (is_upgrade or has_date):
        logger.info(
            f"Ignoring {new_status.value} for {existing.company}: "
            f"would downgrade {existing.status.value}"
        )
        return Decision(kind=DecisionKind.IGNORE, application=existing, status=existing.status)

    interview_at = verdict.interview_date or existing.interview_at
    changes: Dict[str, Any] = {"status": new_status, "interview_at": interview_at}

    if verdict.summary:
        note = f"[{_note_date(now)}] {verdict.round or 'Update'}: {verdict.summary}"
        changes["notes"] = f"{existing.notes}\n{note}" if existing.notes else note

    return Decision(
        kind=DecisionKind.UPDATE,
        application=existing,
        status=new_status,
        changes=changes,
        interview_at=interview_at,
        schedule_interview=_needs_event(
            new_status, verdict.interview_date, existing.calendar_event_id
        ),
    )
