"""
Token helpers: normalization, generation and masking for responses/reports
"""

import secrets
import string
from datetime import datetime, timezone
from typing import Any

TOKEN_ALPHABET = string.ascii_lowercase + string.digits
MASKED_TOKEN = "tok_****"

def normalize_token(token: Any) -> str:
    """Trimmed, lowercased form used as the lookup key"""
    return str(token or "").strip().lower()

def generate_token(length: int = 8) -> str:
    """Guest-facing access token"""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))

def generate_id() -> str:
    return secrets.token_hex(8)

def generate_session_token() -> str:
    """256 random bits, hex encoded"""
    return secrets.token_hex(32)

def mask_token(token: Any) -> str:
    t = str(token or "")
    if not t:
        return ""
    if len(t) <= 8:
        return MASKED_TOKEN
    return f"{t[:4]}****{t[-4:]}"

def mask_email(email: Any) -> str:
    e = str(email or "")
    if not e:
        return ""
    at = e.find("@")
    if at <= 1:
        return "a***@redacted"
    return f"{e[0]}***{e[at:]}"

def iso_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with microsecond precision, e.g. 2026-01-24T20:30:00.000000Z"""
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def utc_now_iso() -> str:
    return iso_timestamp(utc_now())
