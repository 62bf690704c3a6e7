"""Pytest configuration and shared fixtures.

Provides a temporary SQLite store, a controllable clock and a handful of
users so tests can drive discussions through their whole lifecycle without
touching wall-clock time.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from config.settings import DiscussionConfig
from discussion_engine.database import DatabaseManager
from discussion_engine.models import Discussion, UserIdentity
from discussion_engine.service import DiscussionService
from discussion_engine.types import DiscussionType, ParticipantRole

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# =============================================================================
# SHARED FIXTURES - Available to all test modules
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "debox-test.db"


@pytest.fixture
def db(db_path: Path) -> DatabaseManager:
    return DatabaseManager(db_path)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(db: DatabaseManager, clock: FakeClock) -> DiscussionService:
    return DiscussionService(db, DiscussionConfig(), clock=clock)


@pytest.fixture
def creator() -> UserIdentity:
    return UserIdentity(id="u-creator", display_name="host")


@pytest.fixture
def alice() -> UserIdentity:
    return UserIdentity(id="u-alice", display_name="alice")


@pytest.fixture
def bob() -> UserIdentity:
    return UserIdentity(id="u-bob", display_name="bob")


@pytest.fixture
def carol() -> UserIdentity:
    return UserIdentity(id="u-carol", display_name="carol")


@pytest.fixture
def dave() -> UserIdentity:
    return UserIdentity(id="u-dave", display_name="dave")


@pytest.fixture
def observer() -> UserIdentity:
    return UserIdentity(id="u-observer", display_name="watcher")


@pytest.fixture
def pros_cons(service: DiscussionService, creator: UserIdentity) -> Discussion:
    """A waiting pros-cons debate with five-minute phases."""
    return service.create_discussion(
        creator,
        title="Should homework be abolished?",
        description="Arguments for and against homework in primary schools.",
        type=DiscussionType.PROS_CONS,
        category="교육",
        phase_time_limit=5,
    )


@pytest.fixture
def started_pros_cons(
    service: DiscussionService,
    pros_cons: Discussion,
    creator: UserIdentity,
    alice: UserIdentity,
    bob: UserIdentity,
    carol: UserIdentity,
    observer: UserIdentity,
) -> Discussion:
    """Pros-cons debate in opening_pros.

    alice leads pros, bob leads cons, carol is a second pros debater and
    ``observer`` is watching.
    """
    service.join(pros_cons.id, alice, ParticipantRole.PROS)
    service.join(pros_cons.id, bob, ParticipantRole.CONS)
    service.join(pros_cons.id, carol, ParticipantRole.PROS)
    service.observe(pros_cons.id, observer)
    return service.start(pros_cons.id, creator)


@pytest.fixture
def free_discussion(service: DiscussionService, creator: UserIdentity) -> Discussion:
    """A waiting free discussion with a ten-minute overall limit."""
    return service.create_discussion(
        creator,
        title="Favourite city for remote work",
        description="Share where you would live and why.",
        type=DiscussionType.FREE,
        category="사회",
        time_limit=10,
    )


# =============================================================================
# PYTEST CONFIGURATION HOOKS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
