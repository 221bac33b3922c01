"""
One-way migration of the legacy groups array into the entity layout.

Apply mode snapshots first, never touches the legacy key and rebuilds the
id-set as a set union, so running it again on the same data changes nothing.
"""

import logging
from typing import Any, Callable, Dict, List

from pydantic import ValidationError

from bigday.schemas.guest import GuestGroup
from bigday.services.backup_service import DRY_RUN, BackupService, analyze_identities, check_mode
from bigday.services.guest_store import EntityIndexedStore
from bigday.services.storage_keys import (
    MIGRATION_COMPLETED_AT_KEY,
    MIGRATION_VERSION_KEY,
    group_key,
    token_key,
)
from bigday.utils.tokens import normalize_token, utc_now_iso

logger = logging.getLogger(__name__)

MIGRATION_VERSION = 1


def _identity(raw: Any) -> tuple:
    if not isinstance(raw, dict):
        return "", ""
    return str(raw.get("id") or "").strip(), raw.get("token")


class MigrationService:
    def __init__(self, entity: EntityIndexedStore, backups: BackupService, clock: Callable[[], str] = utc_now_iso):
        self.entity = entity
        self.kv = entity.kv
        self.backups = backups
        self.clock = clock

    def _plan(self, legacy: List[Any]):
        """Split legacy records into migratable groups and invalid ids"""
        migratable: List[GuestGroup] = []
        invalid_ids: List[str] = []
        for raw in legacy:
            group_id, token = _identity(raw)
            if not group_id or not normalize_token(token):
                continue
            try:
                migratable.append(GuestGroup.model_validate(raw))
            except ValidationError:
                invalid_ids.append(group_id)
        return migratable, invalid_ids

    def report(self) -> Dict[str, Any]:
        legacy = self.entity.read_legacy_all()
        migratable, invalid_ids = self._plan(legacy)
        return {
            "totalLegacy": len(legacy),
            "totalEntityIds": len(self.entity.get_ids()),
            **analyze_identities(_identity(raw) for raw in legacy),
            "invalidIds": invalid_ids,
            "willWrite": len(migratable),
        }

    def run(self, mode: str = DRY_RUN) -> Dict[str, Any]:
        check_mode(mode)
        report = self.report()
        if mode == DRY_RUN:
            return {"mode": mode, "report": report}

        key = self.backups.snapshot("migration")
        migratable, _ = self._plan(self.entity.read_legacy_all())

        ids = self.entity.get_ids()
        for group in migratable:
            self.kv.set(group_key(group.id), group.to_document())
            self.kv.set(token_key(normalize_token(group.token)), group.id)
            ids.append(group.id)
        self.entity.set_ids(ids)

        self.kv.set(MIGRATION_VERSION_KEY, MIGRATION_VERSION)
        self.kv.set(MIGRATION_COMPLETED_AT_KEY, self.clock())
        logger.info(f"Migrated {len(migratable)} legacy groups, snapshot {key}")
        return {"mode": mode, "snapshotKey": key, "report": report}

    def status(self) -> Dict[str, Any]:
        return {
            "version": self.kv.get(MIGRATION_VERSION_KEY),
            "completedAt": self.kv.get(MIGRATION_COMPLETED_AT_KEY),
        }
