"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test (schema from Base.metadata)
- Session bound to it; services may commit freely
- Factories for organizations, memberships, projects and incidents
"""
import os
import uuid
from typing import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

# Settings require DATABASE_URL at import time
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from safetyops.core.config import Settings
from safetyops.db.base import Base
from safetyops.db.enums import MembershipStatus
from safetyops.db.models import Organization, Project, ProjectMember, SafetyIncident
from safetyops.db.session import create_engine_with_settings
from safetyops.services import membership_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """In-memory database with every table created."""
    engine = create_engine_with_settings(
        Settings(ENV="test", DATABASE_URL="sqlite+pysqlite:///:memory:")
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture(scope="function")
def make_org(db: Session):
    """Create an organization."""
    def _make(name: str = "Test Organization", status: str = "active") -> Organization:
        org = Organization(
            id=uuid.uuid4(),
            name=name,
            slug=f"test-org-{uuid.uuid4().hex[:8]}",
            status=status,
            created_by="seed",
        )
        db.add(org)
        db.commit()
        return org

    return _make


@pytest.fixture(scope="function")
def add_member(db: Session):
    """Add a user to an organization."""
    def _add(
        org: Organization,
        user_id: str,
        role: str = "member",
        status: MembershipStatus = MembershipStatus.ACTIVE,
    ):
        member = membership_service.add_member(db, org.id, user_id, role=role, status=status)
        db.commit()
        return member

    return _add


@pytest.fixture(scope="function")
def make_project(db: Session):
    """Create a project with team members."""
    def _make(org: Organization | None = None, members: tuple[str, ...] = ()) -> Project:
        project = Project(
            id=uuid.uuid4(),
            reference=f"PROJ-{uuid.uuid4().hex[:8]}",
            name="Glasvezel Utrecht",
            organization_id=org.id if org else None,
            owner_id="owner-1",
        )
        db.add(project)
        db.flush()
        for user_id in members:
            db.add(ProjectMember(project_id=project.id, user_id=user_id, role="uitvoerder"))
        db.commit()
        return project

    return _make


@pytest.fixture(scope="function")
def make_incident(db: Session):
    """Create a safety incident."""
    def _make(
        org: Organization | None = None,
        project: Project | None = None,
        severity: str = "high",
        category: str = "graafschade",
        status: str = "open",
        discipline: str | None = "Gas",
    ) -> SafetyIncident:
        incident = SafetyIncident(
            id=uuid.uuid4(),
            reference=f"VM-{uuid.uuid4().hex[:8]}",
            title="Gasleiding geraakt bij graafwerk",
            description="Tijdens graafwerkzaamheden is een gasleiding beschadigd.",
            category=category,
            severity=severity,
            status=status,
            discipline=discipline,
            location="Utrecht, Biltstraat",
            organization_id=org.id if org else None,
            project_id=project.id if project else None,
            reported_by="reporter-1",
        )
        db.add(incident)
        db.commit()
        return incident

    return _make
