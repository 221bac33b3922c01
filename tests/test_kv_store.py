"""
Tests for the key-value store adapters
"""

import pytest
from google.api_core.exceptions import ServiceUnavailable
from sqlalchemy.exc import OperationalError

from bigday.core.errors import StorageUnavailable
from bigday.services.kv_store import FirestoreKeyValueStore, SqlKeyValueStore


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeSnapshot:
    def __init__(self, data):
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, docs, doc_id, fail=False):
        self.docs = docs
        self.doc_id = doc_id
        self.fail = fail

    def _check(self):
        if self.fail:
            raise ServiceUnavailable("firestore down")

    def get(self):
        self._check()
        return FakeSnapshot(self.docs.get(self.doc_id))

    def set(self, data):
        self._check()
        self.docs[self.doc_id] = dict(data)

    def update(self, data):
        self._check()
        self.docs[self.doc_id].update(data)

    def delete(self):
        self._check()
        self.docs.pop(self.doc_id, None)


class FakeCollection:
    def __init__(self, docs, fail):
        self.docs = docs
        self.fail = fail

    def document(self, doc_id):
        return FakeDocument(self.docs, doc_id, self.fail)


class FakeFirestore:
    """In-memory stand-in for the Firestore client surface the adapter uses"""

    def __init__(self, fail=False):
        self.collections = {}
        self.fail = fail

    def collection(self, name):
        return FakeCollection(self.collections.setdefault(name, {}), self.fail)


def test_sql_set_get_delete(kv):
    """Values round-trip as JSON"""
    kv.set("invitados:grupos", [{"id": "g1", "nested": [[1, 2]]}])
    assert kv.get("invitados:grupos") == [{"id": "g1", "nested": [[1, 2]]}]

    kv.delete("invitados:grupos")
    assert kv.get("invitados:grupos") is None

def test_sql_missing_key(kv):
    assert kv.get("nope") is None
    assert kv.expire("nope", 60) is False
    kv.delete("nope")

def test_sql_ttl_and_sliding_expire(session_factory):
    clock = FakeClock()
    kv = SqlKeyValueStore(session_factory, clock=clock)

    kv.set("admin:session:abc", "1", ex=60)
    clock.now += 59
    assert kv.get("admin:session:abc") == "1"

    # sliding: push the deadline out again
    assert kv.expire("admin:session:abc", 60) is True
    clock.now += 59
    assert kv.get("admin:session:abc") == "1"

    clock.now += 2
    assert kv.get("admin:session:abc") is None
    assert kv.expire("admin:session:abc", 60) is False

def test_sql_set_without_ttl_clears_previous_ttl(session_factory):
    clock = FakeClock()
    kv = SqlKeyValueStore(session_factory, clock=clock)

    kv.set("k", 1, ex=10)
    kv.set("k", 2)
    clock.now += 1000
    assert kv.get("k") == 2

def test_sql_backend_failure_is_storage_unavailable():
    def broken_factory():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    kv = SqlKeyValueStore(broken_factory)
    with pytest.raises(StorageUnavailable):
        kv.get("k")
    with pytest.raises(StorageUnavailable):
        kv.set("k", 1)

def test_firestore_round_trip_and_ttl():
    client = FakeFirestore()
    clock = FakeClock()
    kv = FirestoreKeyValueStore(client, collection="kv", clock=clock)

    kv.set("invitados:grupo:g1", {"id": "g1", "companions": []})
    assert kv.get("invitados:grupo:g1") == {"id": "g1", "companions": []}
    # stored as JSON text, not as native Firestore values
    stored = client.collections["kv"]["invitados:grupo:g1"]
    assert isinstance(stored["value"], str)
    assert stored["expires_at"] is None

    kv.set("admin:session:xyz", "1", ex=30)
    assert kv.expire("admin:session:xyz", 30) is True
    clock.now += 31
    assert kv.get("admin:session:xyz") is None
    assert "admin:session:xyz" not in client.collections["kv"]

    kv.delete("invitados:grupo:g1")
    assert kv.get("invitados:grupo:g1") is None

def test_firestore_escapes_slashes_in_keys():
    client = FakeFirestore()
    kv = FirestoreKeyValueStore(client)

    kv.set("invitados:token:a/b", "g1")
    assert kv.get("invitados:token:a/b") == "g1"
    assert all("/" not in doc_id for doc_id in client.collections["kv"])

def test_firestore_failure_is_storage_unavailable():
    kv = FirestoreKeyValueStore(FakeFirestore(fail=True))
    with pytest.raises(StorageUnavailable):
        kv.get("k")
    with pytest.raises(StorageUnavailable):
        kv.expire("k", 10)
