"""
Shared fixtures: in-memory SQLite (StaticPool) and a FastAPI TestClient
whose get_db dependency points at the same engine.
"""

from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from edubro.core.config import app_config
from edubro.services.auth import hash_password
from edubro.services.bootstrap import initialize_database
from edubro.store import crud
from edubro.store.db import db_session_scope, get_db
from edubro.store.models import Base, User

TEST_PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def make_user(db: Session, role: str = "student", **fields) -> User:
    fields.setdefault("email", f"{role}-{len(crud.list_users(db))}@example.com")
    fields.setdefault("full_name", f"Test {role.title()}")
    fields.setdefault("password_hash", hash_password(TEST_PASSWORD))
    if role == "tutor":
        fields.setdefault("subjects", ["mathematics"])
        fields.setdefault("hourly_rate", 40.0)
        fields.setdefault("phone_number", "0501234567")
    return crud.create_user(db, role=role, **fields)


@pytest.fixture
def student(db) -> User:
    return make_user(db, "student", full_name="Dana Student")


@pytest.fixture
def tutor(db) -> User:
    return make_user(db, "tutor", full_name="Yossi Tutor")


@pytest.fixture
def client(session_factory) -> Iterator[TestClient]:
    from edubro.main import create_app

    assert initialize_database(session_factory)

    app = create_app()

    def override_get_db():
        with db_session_scope(session_factory) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(client: TestClient, email: str, password: str = TEST_PASSWORD) -> dict:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def admin_headers(client) -> dict:
    return auth_headers(client, app_config.seed.admin_email, app_config.seed.admin_password)
