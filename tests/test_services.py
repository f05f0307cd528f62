"""
Tests for the service container.
"""

import threading
import time
from unittest.mock import Mock, patch

import pytest

from applyops.errors import SyncInProgressError
from applyops.services import Services

from conftest import USER_ID, FakeAIProvider, FakeMailbox


@pytest.fixture
def services(test_config, calendar):
    mailbox = FakeMailbox()
    return Services(
        test_config,
        calendar=calendar,
        mailbox_factory=lambda user_id: mailbox,
        sleep=Mock(),
    )


def slow_provider(config):
    time.sleep(0.05)
    return FakeAIProvider()


def test_provider_is_created_once(services):
    with patch("applyops.services.get_provider", side_effect=slow_provider) as factory:
        assert services.ai_provider is services.ai_provider

    assert factory.call_count == 1


def test_concurrent_requests_share_one_scanner(services):
    start = threading.Barrier(4)
    seen = []

    def read_scanner():
        start.wait()
        seen.append(services.scanner)

    with patch("applyops.services.get_provider", side_effect=slow_provider) as factory:
        threads = [threading.Thread(target=read_scanner) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

    assert len(seen) == 4
    assert len({id(scanner) for scanner in seen}) == 1
    assert factory.call_count == 1


def test_run_lock_holds_across_requests(services):
    with patch("applyops.services.get_provider", side_effect=slow_provider):
        first = services.scanner

    first._acquire(USER_ID)
    try:
        with pytest.raises(SyncInProgressError):
            services.scanner.sync(USER_ID)
    finally:
        first._release(USER_ID)

    assert services.scanner.sync(USER_ID).count == 0
