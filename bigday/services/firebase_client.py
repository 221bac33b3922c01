"""
Firebase initialization and helpers
"""

from __future__ import annotations

import json
from typing import Any
import base64
import os

import firebase_admin
from firebase_admin import credentials, firestore

from bigday.core.config import Settings


def load_credentials_info(settings: Settings) -> dict[str, Any] | None:
    """Resolve service-account info from one of the supported settings."""
    if settings.FIREBASE_CREDENTIALS_JSON:
        return json.loads(settings.FIREBASE_CREDENTIALS_JSON)
    if settings.FIREBASE_CREDENTIALS_B64:
        decoded = base64.b64decode(settings.FIREBASE_CREDENTIALS_B64).decode("utf-8")
        return json.loads(decoded)
    if settings.FIREBASE_CREDENTIALS_FILE and os.path.exists(settings.FIREBASE_CREDENTIALS_FILE):
        with open(settings.FIREBASE_CREDENTIALS_FILE, "r", encoding="utf-8") as f:
            return json.load(f)
    return None


def create_firestore_client(settings: Settings):
    """Initialize the Firebase app (once per process) and return a Firestore client.

    Expects credentials via one of: FIREBASE_CREDENTIALS_JSON, FIREBASE_CREDENTIALS_B64, FIREBASE_CREDENTIALS_FILE.
    The caller owns the returned client and passes it down explicitly.
    """
    if not firebase_admin._apps:
        info = load_credentials_info(settings)
        if not info:
            raise RuntimeError("Firebase credentials not provided. Set FIREBASE_CREDENTIALS_FILE, FIREBASE_CREDENTIALS_JSON, or FIREBASE_CREDENTIALS_B64")

        cred = credentials.Certificate(info)
        firebase_admin.initialize_app(cred)

    return firestore.client()
