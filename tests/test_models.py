"""
Tests for status priorities, verdict status mapping and datetime parsing.
"""

from datetime import datetime, timezone

import pytest

from applyops.models import (
    STATUS_PRIORITY,
    Application,
    ApplicationStatus,
    Verdict,
    map_verdict_status,
    parse_datetime,
    status_priority,
)


def test_priority_table_covers_every_status():
    """Every status has a priority; adding a status without one fails here."""
    assert set(STATUS_PRIORITY) == set(ApplicationStatus)


@pytest.mark.parametrize(
    "status, priority",
    [
        (ApplicationStatus.REJECTED, 0),
        (ApplicationStatus.WITHDRAWN, 0),
        (ApplicationStatus.APPLIED, 1),
        (ApplicationStatus.VIEWED, 2),
        (ApplicationStatus.INTERVIEWING, 3),
        (ApplicationStatus.OFFERED, 4),
    ],
)
def test_status_priority(status, priority):
    assert status_priority(status) == priority
    assert status_priority(status.value) == priority


def test_status_priority_rejects_unknown_status():
    with pytest.raises(ValueError):
        status_priority("GHOSTED")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("INTERVIEW", ApplicationStatus.INTERVIEWING),
        ("OFFER", ApplicationStatus.OFFERED),
        ("REJECTED", ApplicationStatus.REJECTED),
        ("APPLIED", ApplicationStatus.APPLIED),
        ("interview", ApplicationStatus.INTERVIEWING),
        ("SOMETHING", ApplicationStatus.APPLIED),
        (None, ApplicationStatus.APPLIED),
    ],
)
def test_map_verdict_status(raw, expected):
    assert map_verdict_status(raw) == expected


def test_parse_datetime_handles_trailing_z():
    assert parse_datetime("2024-07-01T10:00:00Z") == datetime(2024, 7, 1, 10, tzinfo=timezone.utc)


def test_parse_datetime_treats_naive_values_as_utc():
    parsed = parse_datetime("2024-07-01T10:00:00")
    assert parsed.tzinfo is not None
    assert parsed.utcoffset().total_seconds() == 0


def test_parse_datetime_keeps_offsets():
    parsed = parse_datetime("2024-07-01T15:30:00+05:30")
    assert parsed == datetime(2024, 7, 1, 10, tzinfo=timezone.utc)


def test_parse_datetime_empty_and_invalid():
    assert parse_datetime(None) is None
    assert parse_datetime("") is None
    with pytest.raises(ValueError):
        parse_datetime("next tuesday")


def test_application_to_dict_lowercases_status():
    app = Application(user_id="u", company="Acme", role="Dev", status=ApplicationStatus.OFFERED)
    data = app.to_dict()
    assert data["status"] == "offered"
    assert data["company"] == "Acme"
    assert data["interviewAt"] is None


def test_verdict_snapshot():
    verdict = Verdict(
        company="Acme",
        role="Dev",
        status="INTERVIEW",
        confidence=0.8,
        interview_date=datetime(2024, 7, 1, 10, tzinfo=timezone.utc),
    )
    assert verdict.application_status == ApplicationStatus.INTERVIEWING
    snapshot = verdict.to_dict()
    assert snapshot["isJobEmail"] is True
    assert snapshot["interviewDate"] == "2024-07-01T10:00:00+00:00"
