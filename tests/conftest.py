import os

# Must be set before lapply.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("APP_BASE_URL", "https://app.example.com")

import pytest
from fastapi.testclient import TestClient

from lapply.auth import get_current_organization_user, get_current_user, require_admin
from lapply.database import Base, SessionLocal, engine, get_db
from lapply.domain.line_bot.router import get_line_client_factory
from lapply.main import app
from lapply.models import Organization, User
from tests.support import LineRecorder


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def line():
    return LineRecorder()


@pytest.fixture
def organization(db):
    org = Organization(
        id="org-1",
        name="Seminar Co",
        line_channel_access_token="token-1",
        liff_id="liff-1",
    )
    db.add(org)
    db.commit()
    return org


@pytest.fixture
def dashboard_user(db, organization):
    user = User(firebase_uid="uid-1", email="owner@example.com", organization_id=organization.id)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def client(db, dashboard_user, line):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: dashboard_user
    app.dependency_overrides[get_current_organization_user] = lambda: dashboard_user
    app.dependency_overrides[require_admin] = lambda: dashboard_user
    app.dependency_overrides[get_line_client_factory] = lambda: line.factory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
