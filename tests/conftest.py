"""Shared fixtures: a throwaway SQLite database and data factories."""

import itertools
import os
import tempfile
from datetime import datetime

# Must be set before any insights module reads settings
_DB_DIR = tempfile.mkdtemp(prefix="insights-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/insights.db"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-the-insights-suite-0123456789"
os.environ.pop("SENDGRID_API_KEY", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from insights.api.main import app  # noqa: E402
from insights.auth.models import User, UserRole  # noqa: E402
from insights.auth.tokens import create_access_token  # noqa: E402
from insights.storage.db import db  # noqa: E402
from insights.storage.models import Application, ApplicationStatus, Opportunity  # noqa: E402
from insights.tracking.models import AttributionSource, VisitorEvent  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    db.drop_tables()
    db.create_tables()
    yield db


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user():
    counter = itertools.count(1)

    def _make(role=UserRole.STUDENT, name=None, email=None, created_at=None):
        n = next(counter)
        with db.session() as session:
            user = User(
                email=email or f"user{n}@example.com",
                name=name if name is not None else f"User {n}",
                role=role,
                created_at=created_at or datetime.utcnow(),
            )
            session.add(user)
            session.flush()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN, name="Admin", email="admin@example.com")


@pytest.fixture
def student(make_user):
    return make_user(role=UserRole.STUDENT, name="Sam Student", email="sam@example.com")


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def make_opportunity():
    def _make(title="Summer Internship", company="Acme", type="internship", is_active=True):
        with db.session() as session:
            opportunity = Opportunity(title=title, company=company, type=type, is_active=is_active)
            session.add(opportunity)
            session.flush()
        return opportunity

    return _make


@pytest.fixture
def make_application():
    def _make(user, opportunity=None, status=ApplicationStatus.SUBMITTED, created_at=None, **fields):
        created_at = created_at or datetime.utcnow()
        with db.session() as session:
            application = Application(
                user_id=user.id,
                opportunity_id=opportunity.id if opportunity else None,
                status=status,
                created_at=created_at,
                updated_at=created_at,
                **fields,
            )
            session.add(application)
            session.flush()
        return application

    return _make


@pytest.fixture
def make_visit():
    def _make(user=None, page="landing", created_at=None, code=None, source=None, time_spent=0.0):
        created_at = created_at or datetime.utcnow()
        with db.session() as session:
            event = VisitorEvent(
                user_id=user.id if user else None,
                page=page,
                is_authenticated=user is not None,
                attribution_code=code,
                attribution_source=(source or AttributionSource.REFERRAL) if code else None,
                time_spent=time_spent,
                created_at=created_at,
                updated_at=created_at,
            )
            session.add(event)
            session.flush()
        return event

    return _make


@pytest.fixture
def recorded_events():
    """Callable returning every stored visitor event, oldest first."""
    def _events() -> list[VisitorEvent]:
        with db.session() as session:
            return session.query(VisitorEvent).order_by(VisitorEvent.id).all()

    return _events
