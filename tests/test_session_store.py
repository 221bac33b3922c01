"""
Tests for admin sessions
"""

import pytest

from bigday.core.errors import StorageUnavailable, Unauthorized
from bigday.services.kv_store import SqlKeyValueStore
from bigday.services.session_store import AdminSessionStore
from bigday.services.storage_keys import session_key

class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

def test_login_creates_session(kv):
    sessions = AdminSessionStore(kv, admin_key="s3cret", ttl_seconds=60)

    token = sessions.login("s3cret")

    assert len(token) == 64
    assert kv.get(session_key(token)) == "1"
    assert sessions.validate(token) is True

def test_login_rejects_wrong_key(kv):
    sessions = AdminSessionStore(kv, admin_key="s3cret")

    with pytest.raises(Unauthorized):
        sessions.login("wrong")
    with pytest.raises(Unauthorized):
        sessions.login("")

def test_login_without_configured_key(kv):
    sessions = AdminSessionStore(kv, admin_key=None)

    with pytest.raises(StorageUnavailable):
        sessions.login("anything")

def test_validate_unknown_or_missing_token(kv):
    sessions = AdminSessionStore(kv, admin_key="s3cret")

    assert sessions.validate(None) is False
    assert sessions.validate("") is False
    assert sessions.validate("deadbeef") is False

def test_sliding_expiry(session_factory):
    clock = FakeClock()
    sessions = AdminSessionStore(SqlKeyValueStore(session_factory, clock=clock), admin_key="k", ttl_seconds=100)
    token = sessions.login("k")

    for _ in range(3):
        clock.now += 90
        assert sessions.validate(token) is True

    clock.now += 101
    assert sessions.validate(token) is False

def test_logout(kv):
    sessions = AdminSessionStore(kv, admin_key="k")
    token = sessions.login("k")

    sessions.logout(token)

    assert sessions.validate(token) is False
    sessions.logout(None)
