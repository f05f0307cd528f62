"""
Domain models for ApplyOps.

Application, EmailLog and CoverLetter mirror the rows stored by
``applyops.database``; Verdict is the structured output of the email
classifier; MessageDetail is what the mailbox client hands to the scanner
for a single message.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ApplicationStatus(str, Enum):
    """Lifecycle status of a job application."""

    APPLIED = "APPLIED"
    VIEWED = "VIEWED"
    INTERVIEWING = "INTERVIEWING"
    OFFERED = "OFFERED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


# Rejected/withdrawn are terminal but never dominate: an automated update
# with any other status is treated as an upgrade over them.
STATUS_PRIORITY: Dict[ApplicationStatus, int] = {
    ApplicationStatus.REJECTED: 0,
    ApplicationStatus.WITHDRAWN: 0,
    ApplicationStatus.APPLIED: 1,
    ApplicationStatus.VIEWED: 2,
    ApplicationStatus.INTERVIEWING: 3,
    ApplicationStatus.OFFERED: 4,
}

# Classifier vocabulary -> stored status
VERDICT_STATUS_MAP: Dict[str, ApplicationStatus] = {
    "INTERVIEW": ApplicationStatus.INTERVIEWING,
    "OFFER": ApplicationStatus.OFFERED,
    "REJECTED": ApplicationStatus.REJECTED,
}

VERDICT_STATUSES = ("APPLIED", "INTERVIEW", "REJECTED", "OFFER")


def status_priority(status) -> int:
    """
    Return the reconciliation priority of a status.

    Args:
        status: ApplicationStatus or its string value

    Raises:
        ValueError: If the status is not a known ApplicationStatus
    """
    return STATUS_PRIORITY[ApplicationStatus(status)]


def map_verdict_status(raw_status: Optional[str]) -> ApplicationStatus:
    """Map a classifier status (APPLIED/INTERVIEW/REJECTED/OFFER) to a stored status."""
    return VERDICT_STATUS_MAP.get((raw_status or "").upper(), ApplicationStatus.APPLIED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Accepts datetimes, ISO strings (with or without a trailing ``Z``) and
    plain dates. Naive values are taken to be UTC.

    Returns:
        Aware datetime, or None for empty input

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported datetime value: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Verdict:
    """Structured classifier output for one email."""

    company: str
    role: str
    status: str
    confidence: float
    interview_date: Optional[datetime] = None
    round: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    platform: Optional[str] = None
    summary: Optional[str] = None

    @property
    def application_status(self) -> ApplicationStatus:
        return map_verdict_status(self.status)

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot stored in ``email_logs.parsed_data``."""
        return {
            "isJobEmail": True,
            "company": self.company,
            "role": self.role,
            "status": self.status,
            "confidence": self.confidence,
            "interviewDate": format_datetime(self.interview_date),
            "round": self.round,
            "location": self.location,
            "salary": self.salary,
            "platform": self.platform,
            "summary": self.summary,
        }


@dataclass
class MessageDetail:
    """The parts of a mailbox message the scanner works with."""

    message_id: str
    subject: str
    sender: str
    received_at: datetime
    body_text: str


@dataclass
class Application:
    user_id: str
    company: str
    role: str
    status: ApplicationStatus = ApplicationStatus.APPLIED
    platform: Optional[str] = None
    applied_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    interview_at: Optional[datetime] = None
    salary: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    notes: Optional[str] = None
    calendar_event_id: Optional[str] = None
    email_id: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    version: int = 0

    @classmethod
    def from_row(cls, row) -> "Application":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            company=row["company"],
            role=row["role"],
            status=ApplicationStatus(row["status"]),
            platform=row["platform"],
            applied_at=parse_datetime(row["applied_at"]),
            updated_at=parse_datetime(row["updated_at"]),
            interview_at=parse_datetime(row["interview_at"]),
            salary=row["salary"],
            location=row["location"],
            url=row["url"],
            notes=row["notes"],
            calendar_event_id=row["calendar_event_id"],
            email_id=row["email_id"],
            created_at=parse_datetime(row["created_at"]),
            version=row["version"],
        )

    def to_dict(self) -> Dict[str, Any]:
        """API representation (camelCase keys, lower-case status)."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "company": self.company,
            "role": self.role,
            "status": self.status.value.lower(),
            "platform": self.platform,
            "appliedAt": format_datetime(self.applied_at),
            "updatedAt": format_datetime(self.updated_at),
            "createdAt": format_datetime(self.created_at),
            "interviewAt": format_datetime(self.interview_at),
            "salary": self.salary,
            "location": self.location,
            "url": self.url,
            "notes": self.notes,
            "calendarEventId": self.calendar_event_id,
            "emailId": self.email_id,
            "version": self.version,
        }


@dataclass
class EmailLog:
    gmail_id: str
    user_id: str
    subject: str = ""
    sender: str = ""
    received_at: Optional[datetime] = None
    processed: bool = False
    parsed_data: Optional[Dict[str, Any]] = field(default=None)

    @classmethod
    def from_row(cls, row) -> "EmailLog":
        parsed = row["parsed_data"]
        return cls(
            gmail_id=row["gmail_id"],
            user_id=row["user_id"],
            subject=row["subject"] or "",
            sender=row["sender"] or "",
            received_at=parse_datetime(row["received_at"]),
            processed=bool(row["processed"]),
            parsed_data=json.loads(parsed) if parsed else None,
        )


COVER_LETTER_TONES = ("FORMAL", "CASUAL", "STARTUP", "CORPORATE")


@dataclass
class CoverLetter:
    user_id: str
    company: str
    role: str
    content: str
    tone: str = "FORMAL"
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "CoverLetter":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            company=row["company"],
            role=row["role"],
            tone=row["tone"],
            content=row["content"],
            created_at=parse_datetime(row["created_at"]),
            updated_at=parse_datetime(row["updated_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "company": self.company,
            "role": self.role,
            "tone": self.tone,
            "content": self.content,
            "createdAt": format_datetime(self.created_at),
            "updatedAt": format_datetime(self.updated_at),
        }
