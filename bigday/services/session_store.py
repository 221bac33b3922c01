"""
Admin sessions: opaque bearer tokens whose existence in the KV store is the session
"""

import logging
from typing import Optional

from bigday.core.errors import StorageUnavailable, Unauthorized
from bigday.services.kv_store import KeyValueStore
from bigday.services.storage_keys import session_key
from bigday.utils.tokens import generate_session_token

logger = logging.getLogger(__name__)

SESSION_SENTINEL = "1"


class AdminSessionStore:
    """Single admin principal, sliding TTL, no payload beyond existence"""

    def __init__(self, kv: KeyValueStore, admin_key: Optional[str], ttl_seconds: int = 24 * 60 * 60):
        self.kv = kv
        self.admin_key = admin_key
        self.ttl_seconds = ttl_seconds

    def login(self, candidate_key: str) -> str:
        if not self.admin_key:
            logger.error("ADMIN_KEY is not configured")
            raise StorageUnavailable()
        if not candidate_key or candidate_key != self.admin_key:
            logger.info("Admin login rejected")
            raise Unauthorized()

        token = generate_session_token()
        self.kv.set(session_key(token), SESSION_SENTINEL, ex=self.ttl_seconds)
        logger.info("Admin session created")
        return token

    def validate(self, token: Optional[str]) -> bool:
        if not token:
            return False
        # expire() only succeeds on a live key, so it doubles as the existence check
        return self.kv.expire(session_key(token), self.ttl_seconds)

    def logout(self, token: Optional[str]) -> None:
        if token:
            self.kv.delete(session_key(token))
