"""
Tests for the legacy -> entity migration
"""

from datetime import datetime, timedelta, timezone

import pytest

from bigday.core.errors import ValidationFailed
from bigday.models import KVEntry
from bigday.services.backup_service import BackupService
from bigday.services.config_service import ConfigService
from bigday.services.guest_store import EntityIndexedStore, build_guest_store
from bigday.services.migration_service import MigrationService
from bigday.services.photo_race_service import PhotoRaceService
from bigday.services.storage_keys import (
    IDS_KEY,
    LEGACY_GROUPS_KEY,
    MIGRATION_COMPLETED_AT_KEY,
    MIGRATION_VERSION_KEY,
    group_key,
    token_key,
)

class TickingClock:
    def __init__(self):
        self.moment = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.moment += timedelta(seconds=1)
        return self.moment

@pytest.fixture
def migration(kv):
    store = build_guest_store(kv, "legacy")
    config = ConfigService(kv)
    backups = BackupService(kv, store, config, PhotoRaceService(kv, config), now=TickingClock())
    return MigrationService(EntityIndexedStore(kv), backups, clock=lambda: "2026-03-01T09:00:00.000000Z")

@pytest.fixture
def legacy_groups(kv, group_doc):
    groups = [
        group_doc("g1", "TOK1"),
        group_doc("g2", " Tok2 "),
        group_doc("g3", ""),
        {"id": "g4", "token": "TOK4", "primaryGuest": {"name": "Broken"}},
    ]
    kv.set(LEGACY_GROUPS_KEY, groups)
    return groups

def entity_state(session_factory):
    with session_factory() as db:
        return {
            entry.key: entry.value
            for entry in db.query(KVEntry).all()
            if entry.key.startswith(("invitados:grupo:", "invitados:token:")) or entry.key == IDS_KEY
        }

def test_dry_run_reports_without_writing(kv, migration, legacy_groups):
    result = migration.run("dry-run")

    assert result["mode"] == "dry-run"
    report = result["report"]
    assert report["totalLegacy"] == 4
    assert report["totalEntityIds"] == 0
    assert report["emptyTokenIds"] == ["g3"]
    assert report["invalidIds"] == ["g4"]
    assert report["willWrite"] == 2
    assert kv.get(IDS_KEY) is None
    assert kv.get(MIGRATION_VERSION_KEY) is None

def test_apply_copies_groups(kv, migration, legacy_groups):
    result = migration.run("apply")

    assert result["snapshotKey"].startswith("backup:snapshot:migration:")
    assert kv.get(result["snapshotKey"])["data"]["legacyGroups"] == legacy_groups
    assert kv.get(IDS_KEY) == ["g1", "g2"]
    assert kv.get(group_key("g1"))["token"] == "TOK1"
    assert kv.get(token_key("tok2")) == "g2"
    assert kv.get(group_key("g3")) is None
    assert kv.get(MIGRATION_VERSION_KEY) == 1
    assert kv.get(MIGRATION_COMPLETED_AT_KEY) == "2026-03-01T09:00:00.000000Z"
    assert migration.status() == {"version": 1, "completedAt": "2026-03-01T09:00:00.000000Z"}

def test_apply_leaves_legacy_untouched(kv, migration, legacy_groups):
    migration.run("apply")

    assert kv.get(LEGACY_GROUPS_KEY) == legacy_groups

def test_apply_is_idempotent(kv, session_factory, migration, legacy_groups):
    migration.run("apply")
    first = entity_state(session_factory)

    migration.run("apply")

    assert entity_state(session_factory) == first

def test_apply_keeps_existing_entity_ids(kv, migration, legacy_groups, make_group):
    EntityIndexedStore(kv).upsert(make_group("g0", "TOK0"))

    migration.run("apply")

    assert kv.get(IDS_KEY) == ["g0", "g1", "g2"]

def test_invalid_mode(migration):
    with pytest.raises(ValidationFailed):
        migration.run("yes")
