"""
Key-value store adapters (SQLAlchemy vs Firebase Firestore).

Every call is an independent round-trip; there is no multi-key transaction.
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Optional
from urllib.parse import quote

from google.api_core.exceptions import GoogleAPIError
from sqlalchemy.exc import SQLAlchemyError

from bigday.core.errors import StorageUnavailable
from bigday.models import KVEntry

logger = logging.getLogger(__name__)


class KeyValueStore:
    """get/set/delete/expire over JSON-serializable values."""

    def get(self, key: str) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any, ex: Optional[int] = None) -> None:
        """Store ``value``; ``ex`` sets a TTL in seconds, otherwise any TTL is cleared."""
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def expire(self, key: str, ttl_seconds: int) -> bool:
        """Reset the TTL of an existing key. Returns False when the key is missing."""
        raise NotImplementedError


class SqlKeyValueStore(KeyValueStore):
    """Local backend: one row per key in ``kv_entries``."""

    def __init__(self, session_factory, clock: Callable[[], float] = time.time):
        self._session_factory = session_factory
        self._clock = clock

    @contextmanager
    def _session(self, op: str, key: str):
        try:
            with self._session_factory() as db:
                yield db
        except SQLAlchemyError as exc:
            logger.error(f"KV {op} failed for {key}: {exc}")
            raise StorageUnavailable() from exc

    def _is_expired(self, entry: KVEntry) -> bool:
        return entry.expires_at is not None and entry.expires_at <= self._clock()

    def get(self, key: str) -> Any:
        with self._session("get", key) as db:
            entry = db.get(KVEntry, key)
            if entry is None:
                return None
            if self._is_expired(entry):
                db.delete(entry)
                db.commit()
                return None
            return json.loads(entry.value)

    def set(self, key: str, value: Any, ex: Optional[int] = None) -> None:
        expires_at = self._clock() + ex if ex else None
        with self._session("set", key) as db:
            db.merge(KVEntry(key=key, value=json.dumps(value), expires_at=expires_at))
            db.commit()

    def delete(self, key: str) -> None:
        with self._session("delete", key) as db:
            entry = db.get(KVEntry, key)
            if entry is not None:
                db.delete(entry)
                db.commit()

    def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._session("expire", key) as db:
            entry = db.get(KVEntry, key)
            if entry is None or self._is_expired(entry):
                return False
            entry.expires_at = self._clock() + ttl_seconds
            db.commit()
            return True


class FirestoreKeyValueStore(KeyValueStore):
    """Remote backend: one document per key, value kept as JSON text.

    Firestore rejects nested arrays, so values are never stored natively.
    """

    def __init__(self, client, collection: str = "kv", clock: Callable[[], float] = time.time):
        self._client = client
        self._collection = collection
        self._clock = clock

    def _doc(self, key: str):
        # Document ids may not contain "/"
        return self._client.collection(self._collection).document(quote(key, safe=":@-_."))

    @contextmanager
    def _guard(self, op: str, key: str):
        try:
            yield
        except GoogleAPIError as exc:
            logger.error(f"Firestore KV {op} failed for {key}: {exc}")
            raise StorageUnavailable() from exc

    def _is_expired(self, data: dict) -> bool:
        expires_at = data.get("expires_at")
        return expires_at is not None and expires_at <= self._clock()

    def get(self, key: str) -> Any:
        with self._guard("get", key):
            snapshot = self._doc(key).get()
            if not snapshot.exists:
                return None
            data = snapshot.to_dict() or {}
            if self._is_expired(data):
                self._doc(key).delete()
                return None
            raw = data.get("value")
            return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any, ex: Optional[int] = None) -> None:
        with self._guard("set", key):
            self._doc(key).set({
                "value": json.dumps(value),
                "expires_at": self._clock() + ex if ex else None,
            })

    def delete(self, key: str) -> None:
        with self._guard("delete", key):
            self._doc(key).delete()

    def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._guard("expire", key):
            doc = self._doc(key)
            snapshot = doc.get()
            if not snapshot.exists or self._is_expired(snapshot.to_dict() or {}):
                return False
            doc.update({"expires_at": self._clock() + ttl_seconds})
            return True
