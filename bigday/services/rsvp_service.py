"""
Guest RSVP updates with optimistic concurrency on ``updatedAt``
"""

import logging
from typing import Callable, Dict

from bigday.core.errors import Conflict, NotFound, ValidationFailed
from bigday.schemas.guest import AttendanceStatus, Companion, GuestGroup
from bigday.schemas.rsvp import RsvpPatch
from bigday.services.guest_store import GuestRecordStore
from bigday.utils.tokens import mask_email, mask_token, normalize_token, utc_now_iso

logger = logging.getLogger(__name__)


def sanitize_group(group: GuestGroup) -> Dict:
    """Response copy of a group: same shape, token and email masked"""
    doc = group.to_document()
    doc["token"] = mask_token(group.token)
    doc["primaryGuest"]["email"] = mask_email(group.primary_guest.email)
    return doc


def apply_rsvp_patch(group: GuestGroup, patch: RsvpPatch, now: str) -> GuestGroup:
    """Return a new group with ``patch`` applied; ``group`` is left untouched."""
    updated = group.model_copy(deep=True)

    if patch.bus_opt_in is not None:
        updated.bus_opt_in = patch.bus_opt_in
    if patch.bus_stop is not None:
        updated.bus_stop = patch.bus_stop
    if patch.primary_guest and patch.primary_guest.allergy_text is not None:
        updated.primary_guest.allergy_text = patch.primary_guest.allergy_text

    if patch.companions:
        positions = {c.id: i for i, c in enumerate(updated.companions)}
        for companion_patch in patch.companions:
            changes = companion_patch.model_dump(exclude_none=True, exclude={"id"})
            if companion_patch.id in positions:
                idx = positions[companion_patch.id]
                updated.companions[idx] = updated.companions[idx].model_copy(update=changes)
                continue
            if companion_patch.name is None or companion_patch.type is None:
                raise ValidationFailed("New companions need a name and a type")
            changes.setdefault("surname", "")
            changes.setdefault("attendance_status", AttendanceStatus.PENDING)
            updated.companions.append(Companion(id=companion_patch.id, **changes))
            positions[companion_patch.id] = len(updated.companions) - 1

    attendance = patch.requested_attendance()
    if attendance is not None:
        # group-level and primary guest never diverge
        updated.attendance_status = attendance
        updated.primary_guest.attendance_status = attendance
    elif patch.companions:
        updated.attendance_status = updated.derived_attendance()

    updated.updated_at = now
    return updated


class RsvpService:
    """Applies guest patches; retries once on a concurrent write, then reports a conflict"""

    MAX_ATTEMPTS = 2

    def __init__(self, store: GuestRecordStore, clock: Callable[[], str] = utc_now_iso):
        self.store = store
        self.clock = clock

    def get_group(self, token: str) -> Dict:
        group = self.store.get_by_token(token)
        if group is None:
            raise NotFound("Token not found")
        return sanitize_group(group)

    def submit(self, token: str, patch: RsvpPatch) -> Dict:
        tok = normalize_token(token)
        if not tok:
            raise ValidationFailed("Token required")

        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            current = self.store.get_by_token_for_update(tok)
            if current is None:
                raise NotFound("Token not found")

            base_version = current.updated_at
            updated = apply_rsvp_patch(current, patch, self.clock())

            latest = self.store.get_by_id(current.id)
            if latest is not None and latest.updated_at == base_version:
                self.store.upsert(updated)
                logger.info(f"RSVP saved for group {updated.id} (attempt {attempt})")
                return sanitize_group(updated)

            logger.info(f"RSVP for group {current.id} lost a race on attempt {attempt}")

        logger.warning(f"RSVP for {mask_token(tok)} gave up after {self.MAX_ATTEMPTS} conflicting attempts")
        raise Conflict()
