"""
Tests for backup export, import and snapshots
"""

import json
from datetime import datetime, timezone

import pytest

from bigday.core.errors import PayloadTooLarge, ValidationFailed
from bigday.models import KVEntry
from bigday.services.backup_service import BackupService, analyze_identities, backup_filename
from bigday.services.config_service import ConfigService
from bigday.services.guest_store import build_guest_store
from bigday.services.photo_race_service import PhotoRaceService
from bigday.services.storage_keys import CONFIG_TABLES_KEY, IDS_KEY, LEGACY_GROUPS_KEY, group_key

EXPORTED_AT = datetime(2026, 1, 24, 20, 30, tzinfo=timezone.utc)

def build_backups(kv, mode="legacy"):
    store = build_guest_store(kv, mode, shadow_writes=False)
    config = ConfigService(kv, clock=lambda: "2026-01-01T00:00:00.000000Z")
    races = PhotoRaceService(kv, config)
    return store, config, BackupService(kv, store, config, races, now=lambda: EXPORTED_AT)

def envelope(groups, tables=None):
    return {
        "meta": {"version": 1, "exportedAt": "2026-01-24T20:30:00.000000Z", "counts": {"groups": len(groups)}},
        "data": {"groups": groups, "config": {"tables": tables, "buses": None, "photoRaces": []}},
    }

def all_keys(session_factory):
    with session_factory() as db:
        return {entry.key: entry.value for entry in db.query(KVEntry).all()}

def test_backup_filename():
    assert backup_filename(EXPORTED_AT) == "big-day-backup-2026-01-24-2030.json"

def test_export(kv, make_group):
    store, config, backups = build_backups(kv)
    store.upsert(make_group("g1", "TOK1"))
    store.upsert(make_group("g2", "TOK2"))

    filename, payload = backups.export()

    assert filename == "big-day-backup-2026-01-24-2030.json"
    assert payload["meta"]["version"] == 1
    assert payload["meta"]["exportedAt"] == "2026-01-24T20:30:00.000000Z"
    assert payload["meta"]["counts"] == {"groups": 2}
    assert payload["meta"]["storageMode"] == "legacy"
    assert [g["id"] for g in payload["data"]["groups"]] == ["g1", "g2"]
    # exports carry real tokens so a restore is lossless
    assert payload["data"]["groups"][0]["token"] == "TOK1"
    assert payload["data"]["config"] == {"tables": None, "buses": None, "photoRaces": []}

def test_export_is_importable(kv, make_group):
    store, _, backups = build_backups(kv, "entity")
    store.upsert(make_group("g1", "TOK1"))
    _, payload = backups.export()

    result = backups.import_backup(json.loads(json.dumps(payload)), "dry-run")

    assert result["summary"]["totalGroups"] == 1

def test_dry_run_writes_nothing(kv, session_factory, group_doc):
    _, _, backups = build_backups(kv)
    before = all_keys(session_factory)

    result = backups.import_backup(envelope([group_doc("g1", "TOK1")]), "dry-run")

    assert result == {
        "mode": "dry-run",
        "summary": {
            "totalGroups": 1,
            "duplicateIds": [],
            "duplicateTokens": [],
            "emptyTokenIds": [],
            "warnings": [],
        },
    }
    assert all_keys(session_factory) == before

def test_duplicate_tokens_are_masked(kv, group_doc):
    _, _, backups = build_backups(kv)
    groups = [group_doc("g1", "samesametoken"), group_doc("g2", " SAMESAMETOKEN ")]

    summary = backups.import_backup(envelope(groups), "dry-run")["summary"]

    assert summary["duplicateTokens"] == ["same****oken"]
    assert "samesametoken" not in json.dumps(summary)

def test_analyze_identities():
    report = analyze_identities([("g1", "aaa"), ("g1", "bbb"), ("g2", "  "), ("g3", "AAA")])

    assert report == {"duplicateIds": ["g1"], "duplicateTokens": ["tok_****"], "emptyTokenIds": ["g2"]}

def test_apply_snapshots_then_overwrites(kv, make_group, group_doc):
    store, config, backups = build_backups(kv)
    store.upsert(make_group("old", "OLDTOKEN"))
    tables = {
        "id": "config-tables",
        "tables": [{"id": "t1", "name": "Roses", "capacity": 10}],
        "updatedAt": "2026-01-20T10:00:00.000000Z",
    }

    result = backups.import_backup(envelope([group_doc("g1", "TOK1")], tables=tables), "apply")

    assert result["mode"] == "apply"
    assert result["restored"] == {"totalGroups": 1}
    assert result["storageMode"] == "legacy"
    assert result["snapshotKey"] == "backup:snapshot:2026-01-24T20-30-00-000000Z"

    snapshot = kv.get(result["snapshotKey"])
    assert [g["id"] for g in snapshot["data"]["groups"]] == ["old"]
    assert snapshot["meta"]["reason"] == "import"

    assert [g.id for g in store.list_all()] == ["g1"]
    assert [g["id"] for g in kv.get(LEGACY_GROUPS_KEY)] == ["g1"]
    assert kv.get(CONFIG_TABLES_KEY)["tables"][0]["name"] == "Roses"
    assert config.get_table("t1").capacity == 10

def test_apply_in_entity_mode_resets_index(kv, make_group, group_doc):
    store, _, backups = build_backups(kv, "entity")
    store.upsert(make_group("old", "OLDTOKEN"))

    backups.import_backup(envelope([group_doc("g1", "TOK1")]), "apply")

    assert store.get_by_token("OLDTOKEN") is None
    assert store.get_by_token("tok1").id == "g1"
    assert [g.id for g in store.list_all()] == ["g1"]

def test_apply_in_entity_mode_keeps_groups_without_token(kv, group_doc):
    store, _, backups = build_backups(kv, "entity")
    groups = [group_doc("g1", "TOK1"), group_doc("g2", "   ")]

    assert backups.import_backup(envelope(groups), "dry-run")["summary"]["emptyTokenIds"] == ["g2"]
    result = backups.import_backup(envelope(groups), "apply")

    assert result["restored"] == {"totalGroups": 2}
    assert [g.id for g in store.list_all()] == ["g1", "g2"]
    assert store.get_by_id("g2").token == "   "
    assert store.get_by_token("tok1").id == "g1"
    assert kv.get(IDS_KEY) == ["g1", "g2"]

def test_snapshot_keeps_malformed_entity_records(kv, make_group, group_doc):
    store, _, backups = build_backups(kv, "entity")
    store.upsert(make_group("old", "OLDTOKEN"))
    broken = {"id": "broken", "token": "BROKEN"}
    kv.set(group_key("broken"), broken)
    kv.set(IDS_KEY, ["old", "broken"])

    result = backups.import_backup(envelope([group_doc("g1", "TOK1")]), "apply")

    snapshot = kv.get(result["snapshotKey"])
    assert [g["id"] for g in snapshot["data"]["groups"]] == ["old", "broken"]
    assert snapshot["data"]["groups"][1] == broken
    assert kv.get(group_key("broken")) is None

def test_snapshot_keeps_raw_legacy_entries(kv, group_doc):
    store, _, backups = build_backups(kv)
    legacy = [group_doc("old", "OLDTOKEN"), "junk", {"id": "broken"}]
    kv.set(LEGACY_GROUPS_KEY, legacy)

    result = backups.import_backup(envelope([group_doc("g1", "TOK1")]), "apply")

    assert kv.get(result["snapshotKey"])["data"]["groups"] == legacy

    assert [g.id for g in store.list_all()] == ["g1"]

def test_import_rejects_unknown_fields(kv, group_doc):
    _, _, backups = build_backups(kv)
    bad_group = group_doc("g1", "TOK1", surprise=True)

    with pytest.raises(ValidationFailed) as exc:
        backups.import_backup(envelope([bad_group]), "apply")

    assert exc.value.details["at"] == "data.groups.0.surprise"
    assert backups.store.list_all() == []

def test_import_rejects_wrong_version(kv):
    _, _, backups = build_backups(kv)
    payload = envelope([])
    payload["meta"]["version"] = 2

    with pytest.raises(ValidationFailed):
        backups.import_backup(payload, "dry-run")

def test_import_requires_tables_key(kv):
    _, _, backups = build_backups(kv)
    payload = envelope([])
    del payload["data"]["config"]["tables"]

    with pytest.raises(ValidationFailed):
        backups.import_backup(payload, "dry-run")

def test_invalid_mode(kv):
    _, _, backups = build_backups(kv)

    with pytest.raises(ValidationFailed):
        backups.import_backup(envelope([]), "force")

def test_parse_body():
    assert BackupService.parse_body(b'{"a": 1}', 100) == {"a": 1}
    with pytest.raises(PayloadTooLarge):
        BackupService.parse_body(b"x" * 101, 100)
    with pytest.raises(ValidationFailed):
        BackupService.parse_body(b"{not json", 100)
