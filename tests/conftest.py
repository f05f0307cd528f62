"""
Pytest configuration and shared fixtures for ApplyOps tests.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from applyops.ai import AIProvider, EmailClassifier
from applyops.config import Config
from applyops.database import RecordStore
from applyops.email import EmailScanner
from applyops.google import CalendarSynchronizer
from applyops.models import MessageDetail

USER_ID = "user-1"
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeAIProvider(AIProvider):
    """
    AI provider that replays canned responses.

    Each entry in ``responses`` is a dict (returned as JSON), a string
    (returned as is) or an exception (raised). The last entry repeats.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.prompts = []

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model_name(self) -> str:
        return "fake-model"

    def complete(self, prompt: str, max_tokens: int = 1000) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            return json.dumps({"isJobEmail": False})

        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response

    @property
    def calls(self) -> int:
        return len(self.prompts)


class FakeMailbox:
    """In-memory stand-in for GmailClient."""

    def __init__(self, messages=None, failing=None):
        self.messages = {m.message_id: m for m in (messages or [])}
        self.failing = dict(failing or {})
        self.list_calls = []
        self.fetched = []

    def add(self, message: MessageDetail) -> None:
        self.messages[message.message_id] = message

    def list_candidate_messages(self, since, query, max_results=20):
        self.list_calls.append((since, query, max_results))
        ids = list(self.messages) + [i for i in self.failing if i not in self.messages]
        return ids[:max_results]

    def get_message_detail(self, message_id):
        self.fetched.append(message_id)
        if message_id in self.failing:
            raise self.failing[message_id]
        return self.messages[message_id]


def make_message(
    message_id="msg-1",
    subject="Interview invitation",
    sender="Acme Recruiting <jobs@acme.com>",
    body="We would like to schedule an interview with you.",
    received_at=None,
) -> MessageDetail:
    return MessageDetail(
        message_id=message_id,
        subject=subject,
        sender=sender,
        received_at=received_at or NOW - timedelta(days=1),
        body_text=body,
    )


def verdict_json(**overrides) -> dict:
    data = {
        "isJobEmail": True,
        "company": "Acme Corp",
        "role": "Backend Engineer",
        "status": "APPLIED",
        "round": None,
        "confidence": 0.9,
        "interviewDate": None,
        "location": None,
        "salary": None,
        "platform": None,
        "summary": "Application received",
    }
    data.update(overrides)
    return data


@pytest.fixture
def store(tmp_path):
    """Fresh sqlite RecordStore with one user."""
    record_store = RecordStore(tmp_path / "test.db").init()
    record_store.ensure_user(USER_ID)
    return record_store


@pytest.fixture
def ai_provider():
    return FakeAIProvider()


@pytest.fixture
def calendar():
    """Calendar synchronizer double; ensure_interview_event succeeds by default."""
    mock = Mock(spec=CalendarSynchronizer)
    mock.ensure_interview_event.return_value = "evt-1"
    mock.update_interview_event.return_value = True
    mock.delete_interview_event.return_value = True
    return mock


@pytest.fixture
def mailbox():
    return FakeMailbox()


@pytest.fixture
def sleep():
    return Mock()


@pytest.fixture
def scanner(store, ai_provider, calendar, mailbox, sleep):
    return EmailScanner(
        store=store,
        classifier=EmailClassifier(ai_provider),
        calendar=calendar,
        mailbox_factory=lambda user_id: mailbox,
        message_delay=0,
        sleep=sleep,
        now=lambda: NOW,
    )


@pytest.fixture
def test_config(tmp_path):
    """Config isolated from the environment and any local config.yaml."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text("{}\n")
    return Config(
        config_path=config_path,
        environ={},
        overrides={
            "database": {"path": str(tmp_path / "api.db")},
            "sync": {"message_delay_seconds": 0},
        },
    )
