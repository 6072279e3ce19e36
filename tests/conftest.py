"""
Pytest fixtures for the test suite.

Data-layer and service tests use an in-memory SQLite engine and a session that
rolls back after each test, so tests do not affect each other. API tests run
the real app through FastAPI's TestClient with `get_db` pointed at the same
in-memory engine.
"""
from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portale.db import filters as _filters  # noqa: F401  (register SQLAlchemy filters)
from portale.models.mixins import ApprovalStatus
from portale.models.security import Role, User
from portale.security.auth import create_access_token, hash_password
from portale.security.config import load_security_config
from portale.security.context import AuthzContext
from portale.security.scope import resolve_scope
from portale.settings import get_settings


TEST_DB_URL = "sqlite://"
SECURITY_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "security_config.yaml"
PASSWORD = "secret123"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test (one shared connection)."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from portale.db.base import Base
    from portale.models import (  # noqa: F401
        conto,
        dashboard,
        entities,
        messages,
        notifications,
        projects,
        security,
    )

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    Service code calls `commit()` and `rollback()`; joining with a SAVEPOINT
    makes a service-level rollback undo only that service call.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
        join_transaction_mode="create_savepoint",
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def make_user(db_session):
    """Factory: create an approved, active user in `db_session`."""

    counter = {"n": 0}

    def _make(role: Role, managed_by: User | None = None, **fields) -> User:
        counter["n"] += 1
        name = fields.pop("username", f"{role.value}_{counter['n']}")
        user = User(
            username=name,
            email=fields.pop("email", f"{name}@example.com"),
            password_hash=fields.pop("password_hash", "x"),
            role=role,
            managed_by_id=managed_by.id if managed_by else None,
            approval_status=fields.pop("approval_status", ApprovalStatus.APPROVED),
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db_session.add(user)
        db_session.flush()
        return user

    return _make


@pytest.fixture
def authz_for(db_session):
    """Build the AuthzContext the security dependency would attach for `user`."""

    def _authz(user: User, scope_by_owner: bool = False) -> AuthzContext:
        return AuthzContext(
            user_id=user.id,
            role=user.role,
            display_name=user.display_name,
            scope=resolve_scope(db_session, user.id, user.role),
            scope_by_owner=scope_by_owner,
        )

    return _authz


# ---- API --------------------------------------------------------------------------


@pytest.fixture
def session_factory(tables):
    return sessionmaker(bind=tables, autocommit=False, autoflush=False, class_=Session)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("PORTALE_UPLOAD_DIR", str(tmp_path / "uploads"))
    get_settings.cache_clear()
    yield tmp_path / "uploads"
    get_settings.cache_clear()


@pytest.fixture
def app(session_factory, upload_dir):
    from portale.db.session import attach_authz, get_db
    from portale.main import create_app

    app = create_app()
    # TestClient is used without its context manager, so lifespan does not run.
    app.state.security_config = load_security_config(SECURITY_CONFIG_PATH)

    def _get_test_db(request: Request):
        db = session_factory()
        try:
            attach_authz(db, request)
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def create_account(session_factory):
    """Factory: commit a user through the API session factory and return it detached."""

    def _create(
        role: Role,
        username: str,
        managed_by: User | None = None,
        approval_status: ApprovalStatus = ApprovalStatus.APPROVED,
        **fields,
    ) -> User:
        with session_factory() as db:
            user = User(
                username=username,
                email=f"{username}@example.com",
                password_hash=hash_password(PASSWORD),
                role=role,
                managed_by_id=managed_by.id if managed_by else None,
                approval_status=approval_status,
                is_active=True,
                **fields,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            db.expunge(user)
            return user

    return _create


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers
