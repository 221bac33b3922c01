"""
Tables, buses and photo-race Pydantic schemas
"""

from typing import List, Literal, Optional
from pydantic import Field, field_validator

from .common import StrictSchema

class TableConfig(StrictSchema):
    """A reception table"""
    id: str = Field(min_length=1)
    name: str
    capacity: int = Field(gt=0)
    location: Optional[str] = None
    captain_ref: Optional[str] = None  # "groupId:companionId" or "groupId:principal"
    token: Optional[str] = None  # QR-linked table page access

    @field_validator("captain_ref")
    @classmethod
    def captain_ref_format(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        group_id, sep, member = value.partition(":")
        if not sep or not group_id or not member:
            raise ValueError("captainRef must look like 'groupId:principal' or 'groupId:companionId'")
        return value

class TablesConfig(StrictSchema):
    id: Literal["config-tables"] = "config-tables"
    tables: List[TableConfig]
    updated_at: str = Field(min_length=1)

class BusConfig(StrictSchema):
    id: str = Field(min_length=1)
    number: int
    label: Optional[str] = None

class BusesConfig(StrictSchema):
    id: Literal["config-buses"] = "config-buses"
    buses: List[BusConfig]
    updated_at: str = Field(min_length=1)

class MissionPhoto(StrictSchema):
    """A photo submitted for one mission; id and url come from the file host"""
    id: str = Field(min_length=1)
    mission_id: int = Field(ge=1, le=20)
    url: str = Field(min_length=1)
    submitter_name: str
    uploaded_at: str = Field(min_length=1)
    validated: bool = False

class PhotoRace(StrictSchema):
    """Photo mission race of one table"""
    table_id: str = Field(min_length=1)
    missions: List[int]
    photos: List[MissionPhoto] = Field(default_factory=list)
    completed: bool = False
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    # seen on records written by older clients
    id: Optional[str] = None
    token: Optional[str] = None

    @field_validator("missions")
    @classmethod
    def missions_from_catalog(cls, value: List[int]) -> List[int]:
        if any(m < 1 or m > 20 for m in value):
            raise ValueError("mission ids range from 1 to 20")
        if len(set(value)) != len(value):
            raise ValueError("missions must be distinct")
        return value

class PhotoSubmission(StrictSchema):
    """Photo metadata returned by the file host, registered against a race"""
    photo_id: str = Field(min_length=1, max_length=200)
    mission_id: int = Field(ge=1, le=20)
    url: str = Field(min_length=1, max_length=2000)
    submitter_name: str = Field(min_length=1, max_length=200)

class PhotoValidation(StrictSchema):
    validated: bool = True

class TablesUpdate(StrictSchema):
    tables: List[TableConfig]

class BusesUpdate(StrictSchema):
    buses: List[BusConfig]

class RacesUpdate(StrictSchema):
    races: List[PhotoRace]
