from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from portale.settings import get_settings


_settings = get_settings()

engine = create_engine(
    _settings.resolved_db_url(),
    connect_args={"check_same_thread": False} if _settings.resolved_db_url().startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Main DB dependency.

    Route code queries owned models normally (`db.scalars(select(Company))`); the
    owner scope is added by the `do_orm_execute` hook in db/filters.py, which
    reads `Session.info["authz"]`. Routes that depend on that hook take
    `get_scoped_db` from security/dependencies.py, which binds the context once
    the caller is resolved.
    """

    db = SessionLocal()
    try:
        attach_authz(db, request)
        yield db
    finally:
        db.close()


def attach_authz(db: Session, request: Request) -> None:
    authz = getattr(getattr(request, "state", None), "authz", None)
    if authz is not None:
        db.info["authz"] = authz
