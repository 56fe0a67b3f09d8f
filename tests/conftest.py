import pytest

from inboxsync.application.use_cases.fetch_strategy import ReadinessPoll
from inboxsync.domain.entities import Account
from inboxsync.infrastructure.settings import Settings
from inboxsync.infrastructure.stores import SQLiteMailStore
from tests.factories import FakeClock


@pytest.fixture
def store(tmp_path):
    """Fresh SQLite mail store per test."""
    return SQLiteMailStore(tmp_path / "mail.db")


@pytest.fixture
def account(store):
    return store.upsert_account(
        Account(
            id="acct-1",
            token="token-abc123",
            provider="google",
            email_address="me@example.com",
            name="Me",
            grant_id="grant-1",
        )
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def instant_readiness(fake_clock):
    """Readiness poll that never really sleeps."""
    return ReadinessPoll(timeout=4.0, interval=2.0, clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        sqlite_db_path=str(tmp_path / "settings.db"),
        nylas_api_uri="https://api.test.nylas.com",
        readiness_timeout_seconds=1.5,
        readiness_interval_seconds=0.5,
        sync_default_limit=25,
        sync_high_limit=250,
        sync_recent_days=7,
    )
