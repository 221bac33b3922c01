"""
RSVP patch schemas. Only the fields listed here can be changed by a guest.
"""

from typing import Annotated, List, Optional
from pydantic import Field, StringConstraints, model_validator

from .common import StrictSchema
from .guest import AttendanceStatus, CompanionType

ShortText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
BusStopText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
AllergyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]

class PrimaryGuestPatch(StrictSchema):
    attendance_status: Optional[AttendanceStatus] = None
    allergy_text: Optional[AllergyText] = None

class CompanionPatch(StrictSchema):
    id: str = Field(min_length=1, max_length=100)
    name: Optional[ShortText] = None
    surname: Optional[ShortText] = None
    type: Optional[CompanionType] = None
    age: Optional[int] = Field(default=None, ge=0, le=130)
    attendance_status: Optional[AttendanceStatus] = None
    allergy_text: Optional[AllergyText] = None

class RsvpPatch(StrictSchema):
    """Partial update a guest may submit with their token"""
    attendance_status: Optional[AttendanceStatus] = None
    bus_opt_in: Optional[bool] = None
    bus_stop: Optional[BusStopText] = None
    primary_guest: Optional[PrimaryGuestPatch] = None
    companions: Optional[List[CompanionPatch]] = None

    @model_validator(mode="after")
    def companion_patch_ids_unique(self):
        if self.companions:
            ids = [c.id for c in self.companions]
            if len(ids) != len(set(ids)):
                raise ValueError("each companion may appear once per patch")
        return self

    def requested_attendance(self) -> Optional[AttendanceStatus]:
        """Primary guest's value wins over the group-level one when both are sent."""
        if self.primary_guest and self.primary_guest.attendance_status is not None:
            return self.primary_guest.attendance_status
        return self.attendance_status
