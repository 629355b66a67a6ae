from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from teamcal.db.base import Base
from teamcal.models import TimeEntry, User  # noqa: F401


@pytest.fixture()
def engine():
    engine = create_engine("sqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine):
    with Session(engine) as session:
        yield session
        session.rollback()


@pytest.fixture()
def user(db_session: Session) -> User:
    user = User(email="owner@example.com", full_name="Owner", company_code="ACME", timezone="UTC")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def colleague(db_session: Session) -> User:
    colleague = User(email="colleague@example.com", full_name="Colleague", company_code="ACME", timezone="UTC")
    db_session.add(colleague)
    db_session.commit()
    return colleague

