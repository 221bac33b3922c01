"""
Persisted key namespace. These strings are shared with existing stored data.
"""

LEGACY_GROUPS_KEY = "invitados:grupos"
GROUP_KEY_PREFIX = "invitados:grupo:"  # invitados:grupo:{id}
TOKEN_KEY_PREFIX = "invitados:token:"  # invitados:token:{normalized token} -> id
IDS_KEY = "invitados:ids"

CONFIG_BUSES_KEY = "invitados:config:buses"
CONFIG_TABLES_KEY = "invitados:config:mesas"
PHOTO_RACES_KEY = "invitados:carreras"

MIGRATION_VERSION_KEY = "invitados:migration:version"
MIGRATION_COMPLETED_AT_KEY = "invitados:migration:completedAt"

SESSION_KEY_PREFIX = "admin:session:"

SNAPSHOT_KEY_PREFIX = "backup:snapshot:"


def group_key(group_id: str) -> str:
    return f"{GROUP_KEY_PREFIX}{group_id}"


def token_key(normalized_token: str) -> str:
    return f"{TOKEN_KEY_PREFIX}{normalized_token}"


def session_key(session_token: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_token}"


def snapshot_key(timestamp_iso: str, reason: str | None = None) -> str:
    """``backup:snapshot:[reason:]2026-01-24T20-30-00-000Z``"""
    stamp = timestamp_iso.replace(":", "-").replace(".", "-")
    if reason:
        return f"{SNAPSHOT_KEY_PREFIX}{reason}:{stamp}"
    return f"{SNAPSHOT_KEY_PREFIX}{stamp}"
