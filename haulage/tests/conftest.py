import os

# Set testing mode before the app modules read their settings
os.environ["TESTING"] = "true"
os.environ["ENVIRONMENT"] = "testing"

import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from haulage.main import app
from haulage.db.memory import InMemoryGraphRepository
from haulage.db.session import get_repository
from haulage.services.follow_service import FollowService
from haulage.services.notification_service import NotificationManager, get_notification_manager
from haulage.utils.rate_limit import limiter

limiter.enabled = False

class FakeClock:
    """Deterministic clock; advance it by hand"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc))

@pytest.fixture
def repository() -> InMemoryGraphRepository:
    """Store with three drivers and no stats or edges yet"""
    return InMemoryGraphRepository({
        "users": {
            "alice": {"displayName": "Alice", "email": "alice@example.com"},
            "bob": {"displayName": "Bob", "email": "bob@example.com"},
            "carol": {"displayName": "Carol", "email": "carol@example.com"},
        }
    })

@pytest.fixture
def follow_service(repository, clock) -> FollowService:
    return FollowService(repository, clock=clock)

@pytest.fixture
def notification_manager(clock) -> NotificationManager:
    return NotificationManager(clock=clock, store={})

@pytest.fixture
def test_client(repository, notification_manager):
    """Client wired to the in-memory store and a fresh notification manager"""
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_notification_manager] = lambda: notification_manager

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
