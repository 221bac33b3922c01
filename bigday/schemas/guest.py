"""
Guest-group Pydantic schemas
"""

from enum import Enum
from typing import List, Optional
from pydantic import Field, model_validator

from .common import StrictSchema

class AttendanceStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"

class CompanionType(str, Enum):
    PARTNER = "partner"
    CHILD = "child"

class PrimaryGuest(StrictSchema):
    """The guest the invitation is addressed to"""
    name: str
    surname: str
    email: str = ""  # empty in some existing records
    attendance_status: AttendanceStatus = AttendanceStatus.PENDING
    allergy_text: Optional[str] = None
    bus_opt_in: Optional[bool] = None

class Companion(StrictSchema):
    """Partner or child travelling with the primary guest"""
    id: str = Field(min_length=1, max_length=100)
    name: str
    surname: str
    type: CompanionType
    age: Optional[int] = Field(default=None, ge=0, le=130)
    attendance_status: AttendanceStatus = AttendanceStatus.PENDING
    allergy_text: Optional[str] = None
    bus_opt_in: Optional[bool] = None

class GuestGroup(StrictSchema):
    """One invitation: primary guest plus companions sharing a token"""
    id: str = Field(min_length=1, max_length=200)
    token: str = Field(min_length=1, max_length=200)
    primary_guest: PrimaryGuest
    companions: List[Companion] = Field(default_factory=list)
    attendance_status: AttendanceStatus = AttendanceStatus.PENDING
    created_at: str = Field(min_length=1)
    updated_at: str = Field(min_length=1)
    notes: Optional[str] = None
    bus_opt_in: bool = False
    bus_stop: Optional[str] = None
    table: Optional[str] = None

    @model_validator(mode="after")
    def companion_ids_unique(self):
        ids = [c.id for c in self.companions]
        if len(ids) != len(set(ids)):
            raise ValueError("companion ids must be unique within a group")
        return self

    def member_statuses(self) -> List[AttendanceStatus]:
        return [self.primary_guest.attendance_status] + [c.attendance_status for c in self.companions]

    def derived_attendance(self) -> AttendanceStatus:
        """Confirmed if anyone is, declined only if everyone is, pending otherwise."""
        statuses = self.member_statuses()
        if AttendanceStatus.CONFIRMED in statuses:
            return AttendanceStatus.CONFIRMED
        if all(s == AttendanceStatus.DECLINED for s in statuses):
            return AttendanceStatus.DECLINED
        return AttendanceStatus.PENDING

class GuestGroupInput(StrictSchema):
    """Admin create/replace payload; id, token and timestamps are assigned server-side when absent"""
    id: Optional[str] = Field(default=None, min_length=1, max_length=200)
    token: Optional[str] = Field(default=None, min_length=1, max_length=200)
    primary_guest: PrimaryGuest
    companions: List[Companion] = Field(default_factory=list)
    attendance_status: AttendanceStatus = AttendanceStatus.PENDING
    notes: Optional[str] = None
    bus_opt_in: bool = False
    bus_stop: Optional[str] = None
    table: Optional[str] = None

class ReorderRequest(StrictSchema):
    ids: List[str]
