import os
os.environ["TESTING"] = "1"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from lostfound.db.db import get_session
from lostfound.main import app
from lostfound.models.enums import Category, Role
from lostfound.services import directory
from lostfound.utils import mailer
from lostfound.utils.auth_helper import AuthContext, create_access_token
from lostfound.utils.form_validator import FoundItemCreate, LostReportCreate, UserCreate


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    monkeypatch.setenv("NOTIFICATION_MODE", "both")
    mailer.EMAIL_OUTBOX.clear()
    yield mailer.EMAIL_OUTBOX
    mailer.EMAIL_OUTBOX.clear()


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def days_ago(days: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


@pytest.fixture
def make_user(session):
    def _make_user(role: Role = Role.STUDENT, **overrides):
        fields = {
            "name": f"{role.value.title()} {uuid.uuid4().hex[:6]}",
            "email": f"{uuid.uuid4().hex[:10]}@campus.edu",
            "role": role,
        }
        if role == Role.STUDENT:
            fields.update(block="A", department="Physics")
        else:
            fields["is_approved"] = True
        fields.update(overrides)
        return directory.create_user(session, UserCreate(**fields))

    return _make_user


@pytest.fixture
def student(make_user):
    return make_user(Role.STUDENT)


@pytest.fixture
def staff(make_user):
    return make_user(Role.STAFF)


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN)


def ctx(user) -> AuthContext:
    return AuthContext.for_user(user)


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def lost_payload(**overrides) -> LostReportCreate:
    fields = {
        "item_name": "Blue Earbuds",
        "category": Category.ELECTRONICS,
        "description": "Lost my blue earbuds in a white case near the library",
        "date_lost": days_ago(1),
        "location_lost": "Library",
        "contact_phone": "9876543210",
    }
    fields.update(overrides)
    return LostReportCreate(**fields)


def found_payload(**overrides) -> FoundItemCreate:
    fields = {
        "item_name": "Blue Wireless Earbuds",
        "category": Category.ELECTRONICS,
        "description": "Pair of earbuds found on a table in the cafeteria",
        "date_found": days_ago(5),
        "location_found": "Cafeteria",
    }
    fields.update(overrides)
    return FoundItemCreate(**fields)
