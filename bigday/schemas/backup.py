"""
Backup envelope schema (version 1). Every level rejects unknown fields.
"""

from typing import List, Literal, Optional
from pydantic import Field

from .common import StrictSchema
from .config import BusesConfig, PhotoRace, TablesConfig
from .guest import GuestGroup

class BackupCounts(StrictSchema):
    groups: Optional[int] = None

class BackupMeta(StrictSchema):
    version: Literal[1]
    exported_at: str = Field(min_length=1)
    counts: Optional[BackupCounts] = None
    storage_mode: Optional[Literal["legacy", "entity"]] = None

class BackupConfig(StrictSchema):
    tables: Optional[TablesConfig]
    buses: Optional[BusesConfig]
    photo_races: List[PhotoRace]

class BackupData(StrictSchema):
    groups: List[GuestGroup]
    config: BackupConfig

class BackupEnvelope(StrictSchema):
    meta: BackupMeta
    data: BackupData
