from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from schedule_core.api.deps import get_scheduling_service
from schedule_core.core.db import init_db
from schedule_core.domain.scheduling.collaborators import (
    OpenAssigneeDirectory,
    StaticTimeZoneProvider,
)
from schedule_core.domain.scheduling.services.conflict_detector import ConflictDetector
from schedule_core.domain.scheduling.services.pattern_expander import PatternExpander
from schedule_core.domain.scheduling.services.scheduling_service import (
    EntryDraft,
    SchedulingService,
)
from schedule_core.domain.scheduling.value_objects.enums import Frequency
from schedule_core.domain.scheduling.value_objects.recurrence import build_pattern
from schedule_core.infrastructure.database.unit_of_work import unit_of_work_factory
from schedule_core.main import app
from schedule_core.tests.utils import BERLIN_TENANT, utc


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def uow_factory(engine: Engine):
    return unit_of_work_factory(lambda: Session(engine))


@pytest.fixture
def service(uow_factory) -> SchedulingService:
    return SchedulingService(
        uow_factory=uow_factory,
        expander=PatternExpander(max_occurrences=500, max_window_days=366),
        conflict_detector=ConflictDetector(),
        time_zones=StaticTimeZoneProvider("UTC", {BERLIN_TENANT: "Europe/Berlin"}),
        directory=OpenAssigneeDirectory(),
        conflict_horizon_days=31,
    )


@pytest.fixture
def client(service: SchedulingService) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_scheduling_service] = lambda: service
    # no context manager: the lifespan would create tables in the configured db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def weekly_draft() -> EntryDraft:
    """Weekly Monday 09:00-10:00 UTC series of five, starting 2024-01-01."""
    return EntryDraft(
        title="Weekly standup",
        scheduled_start=utc(2024, 1, 1, 9),
        scheduled_end=utc(2024, 1, 1, 10),
        assigned_user_ids=["user-1"],
        recurrence_pattern=build_pattern(
            Frequency.WEEKLY, utc(2024, 1, 1).date(), occurrence_count=5
        ),
    )
