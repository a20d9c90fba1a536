from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coursebuddy.api import deps
from coursebuddy.api.auth import get_current_user
from coursebuddy.api.main import app
from coursebuddy.api.rate_limit import limiter
from coursebuddy.models.course import CourseSection
from coursebuddy.models.database import Base, User
from coursebuddy.services.assistant import ScheduleAssistant
from coursebuddy.services.catalog_service import CatalogService
from coursebuddy.services.issue_reporter import IssueReporter
from coursebuddy.services.planner import PlannerRegistry
from coursebuddy.services.schedule_store import ScheduleStore


class FakeAnthropic:
    """Stands in for anthropic.Anthropic; replies are queued per test."""

    def __init__(self):
        self.replies = []
        self.calls = []
        self.messages = self

    def queue(self, *replies):
        self.replies.extend(replies)

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=reply)])


@pytest.fixture()
def make_section():
    def _make(course_code, section, days=(), time_start=None, time_end=None, status="Open", term="2025W"):
        return CourseSection(
            course_code=course_code,
            section=section,
            term=term,
            status=status,
            days=tuple(days),
            time_start=time_start,
            time_end=time_end,
        )
    return _make


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def catalog_service(session_factory):
    service = CatalogService(session_factory=session_factory)
    service.fetch_courses(refresh=True)  # built-in COMM sections
    return service


@pytest.fixture()
def store(session_factory):
    return ScheduleStore(session_factory=session_factory)


@pytest.fixture()
def user(session_factory):
    with session_factory() as session:
        db_user = User(
            auth_id="auth-student1",
            username="student1",
            email="student1@cwl.ubc.ca",
            full_name="student1",
        )
        session.add(db_user)
        session.commit()
        session.refresh(db_user)
        session.expunge(db_user)
    return db_user


@pytest.fixture()
def fake_anthropic():
    return FakeAnthropic()


@pytest.fixture()
def assistant(fake_anthropic):
    return ScheduleAssistant(client=fake_anthropic, model="test-model")


@pytest.fixture()
def sent_emails():
    return []


@pytest.fixture()
def reporter(sent_emails):
    def handler(request: httpx.Request) -> httpx.Response:
        sent_emails.append(request)
        return httpx.Response(200, json={"id": "email-1"})

    return IssueReporter(client=httpx.Client(transport=httpx.MockTransport(handler)))


@pytest.fixture()
def client(session_factory, catalog_service, store, user, assistant, reporter):
    limiter.reset()
    registry = PlannerRegistry()

    app.dependency_overrides[deps.get_db_session_factory] = lambda: session_factory
    app.dependency_overrides[deps.get_catalog_service] = lambda: catalog_service
    app.dependency_overrides[deps.get_schedule_store] = lambda: store
    app.dependency_overrides[deps.get_planner_registry] = lambda: registry
    app.dependency_overrides[deps.get_schedule_assistant] = lambda: assistant
    app.dependency_overrides[deps.get_reporter] = lambda: reporter
    app.dependency_overrides[get_current_user] = lambda: user

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.reset()
