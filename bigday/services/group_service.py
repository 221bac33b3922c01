"""
Admin management of guest groups
"""

import logging
from typing import Callable, List, Optional

from bigday.core.errors import NotFound, ValidationFailed
from bigday.schemas.guest import GuestGroup, GuestGroupInput
from bigday.services.guest_store import GuestRecordStore
from bigday.utils.tokens import generate_id, generate_token, normalize_token, utc_now_iso

logger = logging.getLogger(__name__)


def _build_group(data: GuestGroupInput, group_id: str, token: str, created_at: str, updated_at: str) -> GuestGroup:
    group = GuestGroup(
        **data.model_dump(exclude={"id", "token"}),
        id=group_id,
        token=token,
        created_at=created_at,
        updated_at=updated_at,
    )
    # group status always follows its members
    group.attendance_status = group.derived_attendance()
    return group


class GroupAdminService:
    def __init__(self, store: GuestRecordStore, clock: Callable[[], str] = utc_now_iso):
        self.store = store
        self.clock = clock

    def list_groups(self) -> List[GuestGroup]:
        return self.store.list_all()

    def get_group(self, group_id: str) -> GuestGroup:
        group = self.store.get_by_id(group_id)
        if group is None:
            raise NotFound("Group not found")
        return group

    def _check_token_free(self, token: str, owner_id: Optional[str]) -> None:
        holder = self.store.get_by_token(token)
        if holder is not None and holder.id != owner_id:
            raise ValidationFailed("Token already used by another group")

    def _unique_token(self) -> str:
        # 36^8 tokens; a clash is rare enough that retrying is fine
        while True:
            token = generate_token()
            if self.store.get_by_token(token) is None:
                return token

    def create_group(self, data: GuestGroupInput) -> GuestGroup:
        group_id = data.id or generate_id()
        if self.store.get_by_id(group_id) is not None:
            raise ValidationFailed("Group id already exists")

        if data.token:
            self._check_token_free(data.token, None)
            token = data.token
        else:
            token = self._unique_token()

        now = self.clock()
        group = _build_group(data, group_id, token, now, now)
        self.store.upsert(group)
        logger.info(f"Created group {group.id}")
        return group

    def update_group(self, group_id: str, data: GuestGroupInput) -> GuestGroup:
        """Replace a group's content, keeping its id and creation time"""
        current = self.get_group(group_id)
        if data.id and data.id != group_id:
            raise ValidationFailed("Group id cannot be changed")

        token = data.token or current.token
        if normalize_token(token) != normalize_token(current.token):
            self._check_token_free(token, group_id)

        group = _build_group(data, group_id, token, current.created_at, self.clock())
        self.store.upsert(group)
        logger.info(f"Updated group {group.id}")
        return group

    def delete_group(self, group_id: str) -> None:
        if not self.store.delete_by_id(group_id):
            raise NotFound("Group not found")
        logger.info(f"Deleted group {group_id}")

    def reorder(self, ids: List[str]) -> List[GuestGroup]:
        self.store.reorder(ids)
        return self.store.list_all()
