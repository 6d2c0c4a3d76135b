"""
Pytest fixtures for the dues ledger test suite.

Provides:
- A file-backed SQLite database per test (tmp_path), schema created from the models
- Sessions and a session factory bound to it
- Members to attach dues to
- A FastAPI TestClient whose get_db dependency uses the per-test database
"""
import os
import tempfile

# Settings are read at import time; point them somewhere harmless first.
_SCRATCH = tempfile.mkdtemp(prefix="dues-ledger-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_SCRATCH, 'app.db')}")
os.environ.setdefault("LOGS_DIR", os.path.join(_SCRATCH, "logs"))

import uuid
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.db.base import Base, build_engine, get_db
from app.main import app
from app.models.member import MemberProfile, MemberStatus


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _make_member(db, full_name, house_no, status=MemberStatus.ACTIVE):
    member = MemberProfile(full_name=full_name, house_no=house_no, status=status, joined_on=date(2024, 1, 1))
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


@pytest.fixture
def member(db):
    return _make_member(db, "Siti Rahmah", "A-01")


@pytest.fixture
def other_member(db):
    return _make_member(db, "ahmad fauzi", "B-07")


@pytest.fixture
def admin_id():
    return uuid.uuid4()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def member_headers(member):
    return {"X-Actor-Id": str(member.id)}


@pytest.fixture
def finance_headers(admin_id):
    return {"X-Actor-Id": str(admin_id), "X-Actor-Capabilities": f"member:read, {settings.FINANCE_CAPABILITY}"}
