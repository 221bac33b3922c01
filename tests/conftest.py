"""
Shared fixtures: a SQLite-backed key-value store and guest-group builders
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bigday.core.db import Base
from bigday.schemas.guest import GuestGroup
from bigday.services.kv_store import SqlKeyValueStore

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_kv.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def session_factory():
    """Create test database, dropped after each test"""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def kv(session_factory):
    """Fresh key-value store per test"""
    return SqlKeyValueStore(session_factory)

def build_group_doc(group_id="g1", token="TOK1", **overrides):
    doc = {
        "id": group_id,
        "token": token,
        "primaryGuest": {
            "name": "Ana",
            "surname": "García",
            "email": "ana@example.com",
            "attendanceStatus": "pending",
        },
        "companions": [
            {
                "id": "c1",
                "name": "Luis",
                "surname": "Pérez",
                "type": "partner",
                "attendanceStatus": "pending",
            }
        ],
        "attendanceStatus": "pending",
        "createdAt": "2026-01-01T10:00:00.000000Z",
        "updatedAt": "2026-01-01T10:00:00.000000Z",
    }
    doc.update(overrides)
    return doc

@pytest.fixture
def group_doc():
    """Factory for stored-shape (camelCase) group documents"""
    return build_group_doc

@pytest.fixture
def make_group():
    """Factory for validated GuestGroup instances"""
    def _make(group_id="g1", token="TOK1", **overrides):
        return GuestGroup.model_validate(build_group_doc(group_id, token, **overrides))
    return _make
