"""
Whole-dataset backup: export, strict import (dry-run / apply) and snapshots
"""

import json
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Tuple

from pydantic import ValidationError

from bigday.core.errors import PayloadTooLarge, ValidationFailed
from bigday.schemas.backup import BackupEnvelope
from bigday.services.config_service import ConfigService
from bigday.services.guest_store import LEGACY_MODE, GuestRecordStore
from bigday.services.kv_store import KeyValueStore
from bigday.services.photo_race_service import PhotoRaceService
from bigday.services.storage_keys import (
    CONFIG_BUSES_KEY,
    CONFIG_TABLES_KEY,
    IDS_KEY,
    LEGACY_GROUPS_KEY,
    PHOTO_RACES_KEY,
    group_key,
    snapshot_key,
)
from bigday.utils.tokens import iso_timestamp, mask_token, normalize_token, utc_now

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1
DRY_RUN = "dry-run"
APPLY = "apply"
MODES = (DRY_RUN, APPLY)


def check_mode(mode: str) -> str:
    if mode not in MODES:
        raise ValidationFailed("Invalid mode, use dry-run or apply")
    return mode


def backup_filename(moment: datetime) -> str:
    """big-day-backup-2026-01-24-2030.json"""
    return f"big-day-backup-{moment:%Y-%m-%d-%H%M}.json"


def analyze_identities(pairs: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Duplicate ids, duplicate normalized tokens (masked) and ids with an empty token"""
    id_counts: Counter = Counter()
    token_counts: Counter = Counter()
    empty_token_ids: List[str] = []

    for group_id, token in pairs:
        if group_id:
            id_counts[group_id] += 1
        tok = normalize_token(token)
        if not tok:
            if group_id:
                empty_token_ids.append(group_id)
            continue
        token_counts[tok] += 1

    return {
        "duplicateIds": [i for i, c in id_counts.items() if c > 1],
        "duplicateTokens": [mask_token(t) for t, c in token_counts.items() if c > 1],
        "emptyTokenIds": empty_token_ids,
    }


class BackupService:
    def __init__(
        self,
        kv: KeyValueStore,
        store: GuestRecordStore,
        config: ConfigService,
        races: PhotoRaceService,
        now: Callable[[], datetime] = utc_now,
    ):
        self.kv = kv
        self.store = store
        self.config = config
        self.races = races
        self.now = now

    def export(self) -> Tuple[str, Dict[str, Any]]:
        """Return (filename, envelope) for the current dataset"""
        exported_at = self.now()
        groups = [g.to_document() for g in self.store.list_all()]
        tables = self.config.get_tables()
        buses = self.config.get_buses()

        payload = {
            "meta": {
                "version": BACKUP_VERSION,
                "exportedAt": iso_timestamp(exported_at),
                "counts": {"groups": len(groups)},
                "storageMode": self.store.mode,
            },
            "data": {
                "groups": groups,
                "config": {
                    "tables": tables.to_document() if tables else None,
                    "buses": buses.to_document() if buses else None,
                    "photoRaces": [r.to_document() for r in self.races.list_races()],
                },
            },
        }
        return backup_filename(exported_at), payload

    def _raw_groups(self, legacy_groups: Any) -> List[Any]:
        # stored documents as-is, malformed ones included, so a restore can recover them
        if self.store.mode == LEGACY_MODE:
            return legacy_groups if isinstance(legacy_groups, list) else []
        ids = self.kv.get(IDS_KEY)
        docs = [self.kv.get(group_key(str(i))) for i in ids] if isinstance(ids, list) else []
        return [doc for doc in docs if doc is not None]

    def snapshot(self, reason: str) -> str:
        """Store a raw point-in-time copy of groups + config; returns its key"""
        taken_at = iso_timestamp(self.now())
        key = snapshot_key(taken_at, None if reason == "import" else reason)
        legacy_groups = self.kv.get(LEGACY_GROUPS_KEY)
        races = self.kv.get(PHOTO_RACES_KEY)
        self.kv.set(key, {
            "meta": {
                "version": BACKUP_VERSION,
                "snapshotAt": taken_at,
                "reason": reason,
                "storageMode": self.store.mode,
            },
            "data": {
                "groups": self._raw_groups(legacy_groups),
                "legacyGroups": legacy_groups if isinstance(legacy_groups, list) else [],
                "config": {
                    "tables": self.kv.get(CONFIG_TABLES_KEY),
                    "buses": self.kv.get(CONFIG_BUSES_KEY),
                    "photoRaces": races if isinstance(races, list) else [],
                },
            },
        })
        logger.info(f"Snapshot written to {key}")
        return key

    @staticmethod
    def parse_body(body: bytes, max_size: int) -> Any:
        if len(body) > max_size:
            raise PayloadTooLarge()
        try:
            return json.loads(body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise ValidationFailed("Invalid JSON") from exc

    def import_backup(self, payload: Any, mode: str = DRY_RUN) -> Dict[str, Any]:
        check_mode(mode)
        try:
            envelope = BackupEnvelope.model_validate(payload)
        except ValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(part) for part in first["loc"])
            raise ValidationFailed("Invalid backup (schema)", details={"at": where, "error": first["msg"]}) from exc

        groups = envelope.data.groups
        summary = {
            "totalGroups": len(groups),
            **analyze_identities((g.id, g.token) for g in groups),
            "warnings": [],
        }
        if mode == DRY_RUN:
            return {"mode": mode, "summary": summary}

        key = self.snapshot("import")
        # sequential writes; a failure part-way leaves the snapshot as the way back
        self.store.replace_all(groups)
        config = envelope.data.config
        self.kv.set(CONFIG_TABLES_KEY, config.tables.to_document() if config.tables else None)
        self.kv.set(CONFIG_BUSES_KEY, config.buses.to_document() if config.buses else None)
        self.kv.set(PHOTO_RACES_KEY, [r.to_document() for r in config.photo_races])
        logger.info(f"Backup imported: {len(groups)} groups, snapshot {key}")

        return {
            "mode": mode,
            "snapshotKey": key,
            "restored": {"totalGroups": len(groups)},
            "summary": summary,
            "storageMode": self.store.mode,
        }
