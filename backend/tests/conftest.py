"""
Test configuration and fixtures.

Provides:
- In-memory SQLite session, recreated for each test
- TestClient with get_db bound to the test session
- Fake collaborators: case data sources, portal registry, audit sinks
- A published sample template (T1) and a registered portal
"""
import os
from typing import Any, Dict, Generator, List

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from formengine import models  # noqa: F401  registers every table on Base.metadata
from formengine.collaborators import (
    AuditEventPayload,
    AuditSink,
    CaseDataSource,
    PortalRegistry,
)
from formengine.database import Base, enable_sqlite_foreign_keys, get_db
from formengine.main import app
from formengine.models.mapping import Portal
from formengine.models.template import FormTemplate
from formengine.schemas.template import TemplateCreate, TemplateSection, TemplateField
from formengine.services.case_data import resolve_path
from formengine.services.template import TemplateService


ADMIN_HEADERS = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
AGENT_HEADERS = {"X-User-Id": "agent-1", "X-User-Role": "agent"}
CLIENT_HEADERS = {"X-User-Id": "client-1", "X-User-Role": "client"}

PORTAL_ID = "PORTAL_P"


# =============================================================================
# Fake collaborators
# =============================================================================

class DictCaseDataSource(CaseDataSource):
    """Case data held in memory, keyed by case id."""

    def __init__(self, cases: Dict[str, Dict[str, Any]] = None):
        self.cases = cases or {}
        self.calls: List[tuple] = []

    def resolve(self, case_id: str, source_path: str) -> Any:
        self.calls.append((case_id, source_path))
        return resolve_path(self.cases.get(case_id, {}), source_path)


class FailingCaseDataSource(CaseDataSource):
    """Case data source whose backing service is unreachable."""

    def resolve(self, case_id: str, source_path: str) -> Any:
        raise TimeoutError("case service did not answer within 5s")


class StaticPortalRegistry(PortalRegistry):
    def __init__(self, portal_ids=(PORTAL_ID,)):
        self.portal_ids = set(portal_ids)

    def portal_exists(self, portal_id: str) -> bool:
        return portal_id in self.portal_ids


class RecordingAuditSink(AuditSink):
    def __init__(self):
        self.events: List[AuditEventPayload] = []

    def emit(self, event: AuditEventPayload) -> None:
        self.events.append(event)

    @property
    def actions(self) -> List[str]:
        return [event.action for event in self.events]


class FailingAuditSink(AuditSink):
    def emit(self, event: AuditEventPayload) -> None:
        raise RuntimeError("audit store unavailable")


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a fresh in-memory database for each test.

    StaticPool keeps a single connection so the schema survives across
    sessions and the TestClient's worker thread.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """TestClient whose requests share the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def portals() -> StaticPortalRegistry:
    return StaticPortalRegistry()


@pytest.fixture
def case_source() -> DictCaseDataSource:
    return DictCaseDataSource()


# =============================================================================
# Domain Fixtures
# =============================================================================

def t1_definition(name: str = "Irish Visa Application") -> TemplateCreate:
    """T1: fullName and passportNumber required, notes optional."""
    return TemplateCreate(
        name=name,
        description="Short stay visa",
        sections=[
            TemplateSection(
                id="applicant",
                title="Applicant",
                fields=[
                    TemplateField(id="fullName", label="Full name", required=True),
                    TemplateField(
                        id="passportNumber",
                        label="Passport number",
                        required=True,
                        source_path="applicant.passport.number",
                    ),
                    TemplateField(id="notes", label="Notes"),
                ],
            ),
        ],
    )


@pytest.fixture
def make_template(db: Session):
    """Factory for T1 templates, published unless asked otherwise."""
    def factory(publish: bool = True, name: str = "Irish Visa Application") -> FormTemplate:
        template = TemplateService.create_template(db, t1_definition(name), "admin-1")
        if publish:
            template = TemplateService.publish_template(db, template.id, "admin-1")
        return template
    return factory


@pytest.fixture
def t1(make_template) -> FormTemplate:
    """Published T1 v1."""
    return make_template()


@pytest.fixture
def portal(db: Session) -> Portal:
    """The portal row behind SqlPortalRegistry."""
    db_portal = Portal(id=PORTAL_ID, name="Portal P")
    db.add(db_portal)
    db.commit()
    return db_portal
