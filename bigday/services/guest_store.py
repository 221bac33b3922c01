"""
Guest-group repositories: one logical contract over two physical layouts.

* legacy: the whole list of groups lives under a single key and every
  operation reads, scans and rewrites it.
* entity: one key per group, a normalized-token -> id index and an id-set.

The layout is chosen once by ``build_guest_store`` and injected into callers.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from bigday.core.errors import StorageUnavailable
from bigday.schemas.guest import GuestGroup
from bigday.services.kv_store import KeyValueStore
from bigday.services.storage_keys import IDS_KEY, LEGACY_GROUPS_KEY, group_key, token_key
from bigday.utils.tokens import mask_token, normalize_token

logger = logging.getLogger(__name__)

LEGACY_MODE = "legacy"
ENTITY_MODE = "entity"
STORAGE_MODES = (LEGACY_MODE, ENTITY_MODE)


def parse_group(raw: Any) -> GuestGroup:
    try:
        return GuestGroup.model_validate(raw)
    except ValidationError as exc:
        logger.error(f"Stored guest group is malformed: {exc.error_count()} errors")
        raise StorageUnavailable("Stored guest group is malformed") from exc


def _parse_many(raws: List[Any]) -> List[GuestGroup]:
    groups = []
    for raw in raws:
        try:
            groups.append(GuestGroup.model_validate(raw))
        except ValidationError:
            group_id = raw.get("id") if isinstance(raw, dict) else None
            logger.warning(f"Skipping malformed guest group {group_id!r}")
    return groups


class GuestRecordStore:
    """Logical contract shared by both layouts"""

    mode: str = ""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get_by_token(self, token: str) -> Optional[GuestGroup]:
        raise NotImplementedError

    def get_by_id(self, group_id: str) -> Optional[GuestGroup]:
        raise NotImplementedError

    def list_all(self) -> List[GuestGroup]:
        raise NotImplementedError

    def upsert(self, group: GuestGroup) -> GuestGroup:
        raise NotImplementedError

    def delete_by_id(self, group_id: str) -> bool:
        raise NotImplementedError

    def replace_all(self, groups: List[GuestGroup]) -> None:
        """Make ``groups`` the complete dataset."""
        raise NotImplementedError

    def reorder(self, ids: List[str]) -> None:
        """Listed ids first, in the given order; the rest keep their relative order."""
        raise NotImplementedError

    def get_by_token_for_update(self, token: str) -> Optional[GuestGroup]:
        """Resolve the record a write is about to be based on."""
        return self.get_by_token(token)

    # Raw passthrough to the legacy key, used by migration and shadow writes
    def read_legacy_all(self) -> List[Any]:
        groups = self.kv.get(LEGACY_GROUPS_KEY)
        return groups if isinstance(groups, list) else []

    def write_legacy_all(self, groups: List[Any]) -> None:
        self.kv.set(LEGACY_GROUPS_KEY, groups)


def _ordered(current: List[str], wanted: List[str]) -> List[str]:
    present = set(current)
    head = [i for i in dict.fromkeys(wanted) if i in present]
    listed = set(head)
    return head + [i for i in current if i not in listed]


# -------- Legacy layout --------

class LegacyArrayStore(GuestRecordStore):
    mode = LEGACY_MODE

    def _find_raw(self, match: Callable[[Dict[str, Any]], bool]) -> Optional[Dict[str, Any]]:
        for raw in self.read_legacy_all():
            if isinstance(raw, dict) and match(raw):
                return raw
        return None

    def get_by_token(self, token: str) -> Optional[GuestGroup]:
        tok = normalize_token(token)
        if not tok:
            return None
        raw = self._find_raw(lambda g: normalize_token(g.get("token")) == tok)
        return parse_group(raw) if raw is not None else None

    def get_by_id(self, group_id: str) -> Optional[GuestGroup]:
        raw = self._find_raw(lambda g: str(g.get("id") or "") == group_id)
        return parse_group(raw) if raw is not None else None

    def list_all(self) -> List[GuestGroup]:
        return _parse_many(self.read_legacy_all())

    def upsert(self, group: GuestGroup) -> GuestGroup:
        groups = self.read_legacy_all()
        doc = group.to_document()
        for idx, raw in enumerate(groups):
            if isinstance(raw, dict) and str(raw.get("id") or "") == group.id:
                groups[idx] = doc
                break
        else:
            groups.append(doc)
        self.write_legacy_all(groups)
        return group

    def delete_by_id(self, group_id: str) -> bool:
        groups = self.read_legacy_all()
        remaining = [g for g in groups if not (isinstance(g, dict) and str(g.get("id") or "") == group_id)]
        if len(remaining) == len(groups):
            return False
        self.write_legacy_all(remaining)
        return True

    def replace_all(self, groups: List[GuestGroup]) -> None:
        self.write_legacy_all([g.to_document() for g in groups])

    def reorder(self, ids: List[str]) -> None:
        # moves positions, not records: duplicate ids and junk entries survive
        groups = self.read_legacy_all()
        first_at: Dict[str, int] = {}
        for idx, g in enumerate(groups):
            if isinstance(g, dict):
                first_at.setdefault(str(g.get("id") or ""), idx)
        head = [first_at[i] for i in dict.fromkeys(ids) if i in first_at]
        listed = set(head)
        order = head + [idx for idx in range(len(groups)) if idx not in listed]
        self.write_legacy_all([groups[idx] for idx in order])


# -------- Entity layout --------

class EntityIndexedStore(GuestRecordStore):
    mode = ENTITY_MODE

    def get_ids(self) -> List[str]:
        ids = self.kv.get(IDS_KEY)
        return [str(i) for i in ids] if isinstance(ids, list) else []

    def set_ids(self, ids: List[str]) -> None:
        # set semantics, first occurrence keeps its position
        self.kv.set(IDS_KEY, list(dict.fromkeys(i for i in ids if i)))

    def ensure_id(self, group_id: str) -> None:
        ids = self.get_ids()
        if group_id not in ids:
            self.set_ids(ids + [group_id])

    def get_by_id(self, group_id: str) -> Optional[GuestGroup]:
        raw = self.kv.get(group_key(group_id))
        return parse_group(raw) if raw is not None else None

    def get_by_token(self, token: str) -> Optional[GuestGroup]:
        tok = normalize_token(token)
        if not tok:
            return None
        group_id = self.kv.get(token_key(tok))
        if not group_id:
            return None
        group = self.get_by_id(str(group_id))
        # a stale index entry must not resolve to a group whose token changed
        if group is None or normalize_token(group.token) != tok:
            return None
        return group

    def list_all(self) -> List[GuestGroup]:
        raws = [self.kv.get(group_key(group_id)) for group_id in self.get_ids()]
        return _parse_many([r for r in raws if r is not None])

    def _drop_token_index(self, group: GuestGroup) -> None:
        tok = normalize_token(group.token)
        if tok and self.kv.get(token_key(tok)) == group.id:
            self.kv.delete(token_key(tok))

    def upsert(self, group: GuestGroup) -> GuestGroup:
        previous = self.get_by_id(group.id)
        if previous is not None and normalize_token(previous.token) != normalize_token(group.token):
            self._drop_token_index(previous)
        self.kv.set(group_key(group.id), group.to_document())
        tok = normalize_token(group.token)
        if tok:
            self.kv.set(token_key(tok), group.id)
        self.ensure_id(group.id)
        return group

    def delete_by_id(self, group_id: str) -> bool:
        current = self.get_by_id(group_id)
        if current is not None:
            # the stored record's token, not whatever the caller believes it is
            self._drop_token_index(current)
            self.kv.delete(group_key(group_id))
        ids = self.get_ids()
        if group_id in ids:
            self.set_ids([i for i in ids if i != group_id])
        return current is not None

    def replace_all(self, groups: List[GuestGroup]) -> None:
        new_ids = []
        for group in groups:
            self.kv.set(group_key(group.id), group.to_document())
            tok = normalize_token(group.token)
            if tok:
                self.kv.set(token_key(tok), group.id)
            new_ids.append(group.id)
        keep = set(new_ids)
        for stale_id in self.get_ids():
            if stale_id in keep:
                continue
            stale = self.kv.get(group_key(stale_id))
            if isinstance(stale, dict):
                tok = normalize_token(stale.get("token"))
                if tok and self.kv.get(token_key(tok)) == stale_id:
                    self.kv.delete(token_key(tok))
            self.kv.delete(group_key(stale_id))
        self.set_ids(new_ids)

    def reorder(self, ids: List[str]) -> None:
        self.set_ids(_ordered(self.get_ids(), ids))

    def get_by_token_for_update(self, token: str) -> Optional[GuestGroup]:
        group = self.get_by_token(token)
        if group is not None:
            return group
        # not migrated yet: the legacy record is authoritative on first contact
        tok = normalize_token(token)
        if not tok:
            return None
        for raw in self.read_legacy_all():
            if isinstance(raw, dict) and normalize_token(raw.get("token")) == tok:
                lifted = parse_group(raw)
                self.upsert(lifted)
                logger.info(f"Lifted group {lifted.id} ({mask_token(tok)}) from legacy storage")
                return lifted
        return None


class LegacyShadowWriteStore(GuestRecordStore):
    """Entity store that mirrors every write into the legacy array, best effort.

    Shadow failures are logged and never reach the caller. Drop this wrapper
    once no reader depends on the legacy key any more.
    """

    def __init__(self, primary: EntityIndexedStore, legacy: LegacyArrayStore):
        super().__init__(primary.kv)
        self.primary = primary
        self.legacy = legacy

    @property
    def mode(self) -> str:
        return self.primary.mode

    def _shadow(self, op: str, write: Callable[[], Any]) -> None:
        try:
            write()
        except Exception as exc:
            logger.warning(f"Legacy shadow {op} failed: {exc}")

    def get_by_token(self, token: str) -> Optional[GuestGroup]:
        return self.primary.get_by_token(token)

    def get_by_id(self, group_id: str) -> Optional[GuestGroup]:
        return self.primary.get_by_id(group_id)

    def list_all(self) -> List[GuestGroup]:
        return self.primary.list_all()

    def get_by_token_for_update(self, token: str) -> Optional[GuestGroup]:
        return self.primary.get_by_token_for_update(token)

    def upsert(self, group: GuestGroup) -> GuestGroup:
        result = self.primary.upsert(group)
        self._shadow("upsert", lambda: self.legacy.upsert(group))
        return result

    def delete_by_id(self, group_id: str) -> bool:
        deleted = self.primary.delete_by_id(group_id)
        self._shadow("delete", lambda: self.legacy.delete_by_id(group_id))
        return deleted

    def replace_all(self, groups: List[GuestGroup]) -> None:
        self.primary.replace_all(groups)
        self._shadow("replace", lambda: self.legacy.replace_all(groups))

    def reorder(self, ids: List[str]) -> None:
        self.primary.reorder(ids)
        self._shadow("reorder", lambda: self.legacy.reorder(ids))


def build_guest_store(kv: KeyValueStore, storage_mode: str, shadow_writes: bool = True) -> GuestRecordStore:
    """Select the layout once, at service construction"""
    mode = (storage_mode or LEGACY_MODE).lower()
    if mode == LEGACY_MODE:
        return LegacyArrayStore(kv)
    if mode == ENTITY_MODE:
        entity = EntityIndexedStore(kv)
        if shadow_writes:
            return LegacyShadowWriteStore(entity, LegacyArrayStore(kv))
        return entity
    raise ValueError(f"Unknown STORAGE_MODE {storage_mode!r}, expected one of {STORAGE_MODES}")
