import os

# Settings are cached at import time; point them at SQLite before the app loads.
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ["BOOTSTRAP_SCHEMA_ON_STARTUP"] = "false"
os.environ["NOTIFICATION_REALTIME_ENABLED"] = "false"

from datetime import date, time, timedelta  # noqa: E402
import uuid  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_db  # noqa: E402
from app.core.config import get_settings  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.store import SqlCoverageStore  # noqa: E402
from app.main import app  # noqa: E402
from app.models.lab_day import LabDay, LabDayRole, LabStation  # noqa: E402
from app.models.open_shift import OpenShift  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services.authorization import RoleAuthorizer  # noqa: E402
from app.services.coverage import CoverageCoordinator  # noqa: E402
from app.services.directory import SqlDirectory  # noqa: E402


class RecordingSink:
    def __init__(self) -> None:
        self.intents = []

    def emit(self, intent) -> None:
        self.intents.append(intent)

    def recipients(self, category=None) -> set[str]:
        return {item.recipient_id for item in self.intents if category is None or item.category == category}


class FailingSink:
    def __init__(self) -> None:
        self.attempts = 0

    def emit(self, intent) -> None:
        self.attempts += 1
        raise RuntimeError("notification store unavailable")


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    def _make(role: str = "instructor", *, name: str | None = None, is_director: bool = False, is_active: bool = True):
        user = User(
            name=name or f"{role.replace('_', ' ').title()} {uuid.uuid4().hex[:6]}",
            email=f"{uuid.uuid4().hex[:10]}@example.com",
            role=UserRole(role),
            is_director=is_director,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_shift(db):
    def _make(creator: User | None = None, **overrides) -> OpenShift:
        values = {
            "title": "Skills Lab Coverage",
            "date": date.today() + timedelta(days=7),
            "start_time": time(8, 0),
            "end_time": time(12, 0),
            "location": "Sim Lab A",
            "created_by_id": creator.id if creator else None,
            "min_instructors": 1,
            "max_instructors": 2,
            "is_cancelled": False,
        }
        values.update(overrides)
        shift = OpenShift(**values)
        db.add(shift)
        db.commit()
        db.refresh(shift)
        return shift

    return _make


@pytest.fixture()
def make_lab_day(db):
    def _make(*, roles: list[User] = (), stations: list[User] = (), title: str = "Airway Management") -> LabDay:
        lab_day = LabDay(date=date.today() + timedelta(days=10), title=title, cohort_label="Group 12")
        db.add(lab_day)
        db.flush()
        for instructor in roles:
            db.add(LabDayRole(lab_day_id=lab_day.id, instructor_id=instructor.id, role="lab_lead"))
        for instructor in stations:
            db.add(LabStation(lab_day_id=lab_day.id, instructor_id=instructor.id, title="Station 1"))
        db.commit()
        db.refresh(lab_day)
        return lab_day

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture()
def recording_sink():
    return RecordingSink()


@pytest.fixture()
def make_coordinator(db):
    def _make(notifier) -> CoverageCoordinator:
        settings = get_settings()
        return CoverageCoordinator(
            store=SqlCoverageStore(db),
            authorizer=RoleAuthorizer.from_settings(settings),
            directory=SqlDirectory(db),
            notifier=notifier,
            settings=settings,
        )

    return _make


@pytest.fixture()
def coordinator(make_coordinator, recording_sink):
    return make_coordinator(recording_sink)


@pytest.fixture()
def failing_sink():
    return FailingSink()
