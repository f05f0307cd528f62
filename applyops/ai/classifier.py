"""
Email Classifier - turns one email into a structured job-application verdict

A cheap keyword scan runs first so obviously irrelevant mail never costs an
AI call. The AI response is validated strictly; anything that does not look
like a verdict is treated as "not a job email". When the backend reports a
rate limit the classifier falls back to a subject-line heuristic whose
verdicts carry a confidence below the sync gate.

The classifier never raises: every failure degrades to "no verdict".
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from applyops.models import VERDICT_STATUSES, Verdict, parse_datetime

from .base import AIProvider, AIProviderError, AIRateLimitError
from .prompts import build_classify_email_prompt

logger = logging.getLogger(__name__)

JOB_KEYWORDS = (
    "application",
    "apply",
    "applied",
    "interview",
    "offer",
    "assessment",
    "unfortunately",
    "moving forward",
    "schedule",
    "round",
    "technical",
    "joining",
    "feedback",
)

_KEYWORD_PATTERN = re.compile("|".join(re.escape(k) for k in JOB_KEYWORDS), re.IGNORECASE)

_FALLBACK_SUBJECT_PATTERN = re.compile(
    r"application|applied|interview|offer|rejected|update|assessment|thank you",
    re.IGNORECASE,
)

DEFAULT_ROLE = "Unknown Role"
DEFAULT_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.5
FALLBACK_COMPANY = "Pending Company"
FALLBACK_ROLE = "Software Engineer"
FALLBACK_PLATFORM = "Gmail Import (Fallback)"


class ClassificationReason(str, Enum):
    OK = "ok"
    FALLBACK = "fallback"
    PREFILTERED = "prefiltered"
    NOT_JOB = "not_job"
    INVALID = "invalid"
    BACKEND_ERROR = "backend_error"


@dataclass
class Classification:
    """Verdict plus the reason it was (or was not) produced."""

    verdict: Optional[Verdict]
    reason: ClassificationReason


def passes_keyword_filter(subject: str, body: str) -> bool:
    """Return True if subject+body mention any job-related keyword."""
    return bool(_KEYWORD_PATTERN.search(f"{subject or ''} {body or ''}"))


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_verdict(data: Dict[str, Any]) -> Verdict:
    """
    Validate a classifier JSON object and build a Verdict.

    Missing role and confidence fall back to "Unknown Role" and 0.8; a
    missing status means APPLIED. An interview date that cannot be parsed
    is dropped rather than failing the whole verdict.

    Raises:
        ValueError: If company is missing, status is not one of
            APPLIED/INTERVIEW/REJECTED/OFFER, or confidence is not a number
            in [0, 1]
    """
    company = _optional_text(data.get("company"))
    if not company:
        raise ValueError("Verdict has no company")

    status = (_optional_text(data.get("status")) or "APPLIED").upper()
    if status not in VERDICT_STATUSES:
        raise ValueError(f"Unknown verdict status: {status}")

    confidence = data.get("confidence")
    if confidence is None:
        confidence = DEFAULT_CONFIDENCE
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise ValueError(f"Confidence is not a number: {confidence!r}")
    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"Confidence out of range: {confidence}")

    interview_date = None
    raw_date = data.get("interviewDate")
    if raw_date:
        try:
            interview_date = parse_datetime(str(raw_date))
        except ValueError:
            logger.warning(f"Ignoring unparseable interview date: {raw_date!r}")

    return Verdict(
        company=company,
        role=_optional_text(data.get("role")) or DEFAULT_ROLE,
        status=status,
        confidence=float(confidence),
        interview_date=interview_date,
        round=_optional_text(data.get("round")),
        location=_optional_text(data.get("location")),
        salary=_optional_text(data.get("salary")),
        platform=_optional_text(data.get("platform")),
        summary=_optional_text(data.get("summary")),
    )


def regex_fallback(subject: str, sender: str) -> Optional[Verdict]:
    """
    Subject-line heuristic used while the AI backend is rate limited.

    "Interview at Acme" from "Acme Recruiting <jobs@acme.com>" gives an
    INTERVIEW verdict for "Acme Recruiting" with confidence 0.5.
    """
    lower_subject = (subject or "").lower()
    if not _FALLBACK_SUBJECT_PATTERN.search(lower_subject):
        return None

    status = "APPLIED"
    if "interview" in lower_subject:
        status = "INTERVIEW"
    if "offer" in lower_subject:
        status = "OFFER"
    if "rejected" in lower_subject:
        status = "REJECTED"

    company = (sender or "").split("<")[0].replace('"', "").strip()
    if not company or company.lower() == "me":
        company = FALLBACK_COMPANY

    return Verdict(
        company=company,
        role=FALLBACK_ROLE,
        status=status,
        confidence=FALLBACK_CONFIDENCE,
        platform=FALLBACK_PLATFORM,
        summary=f"Fallback classification from subject: {subject[:120]}",
    )


class EmailClassifier:
    """Classifies emails with an AI provider."""

    def __init__(self, provider: AIProvider, use_regex_fallback: bool = True):
        self.provider = provider
        self.use_regex_fallback = use_regex_fallback

    def classify(self, body: str, subject: str, sender: str) -> Optional[Verdict]:
        """Return a Verdict for a job-related email, or None."""
        return self.evaluate(body, subject, sender).verdict

    def evaluate(self, body: str, subject: str, sender: str) -> Classification:
        """Classify and report why a verdict was or was not produced."""
        if not passes_keyword_filter(subject, body):
            return Classification(None, ClassificationReason.PREFILTERED)

        prompt = build_classify_email_prompt(subject, sender, body)

        try:
            data = self.provider.complete_json(prompt, max_tokens=500)
        except AIRateLimitError as e:
            if not self.use_regex_fallback:
                return Classification(None, ClassificationReason.BACKEND_ERROR)
            logger.warning(f"AI rate limited, using regex fallback: {e}")
            fallback = regex_fallback(subject, sender)
            if fallback is None:
                return Classification(None, ClassificationReason.BACKEND_ERROR)
            return Classification(fallback, ClassificationReason.FALLBACK)
        except ValueError as e:
            logger.warning(f"Malformed classifier output: {e}")
            return Classification(None, ClassificationReason.INVALID)
        except AIProviderError as e:
            logger.error(f"Email classification failed: {e}")
            return Classification(None, ClassificationReason.BACKEND_ERROR)
        except Exception as e:
            # Provider bugs must not escape the classifier either
            logger.exception(f"Unexpected classifier error: {e}")
            return Classification(None, ClassificationReason.BACKEND_ERROR)

        if not data.get("isJobEmail"):
            return Classification(None, ClassificationReason.NOT_JOB)

        try:
            verdict = parse_verdict(data)
        except ValueError as e:
            logger.warning(f"Rejected classifier verdict: {e}")
            return Classification(None, ClassificationReason.INVALID)

        return Classification(verdict, ClassificationReason.OK)
