"""
Pydantic schemas package
"""

from .common import *
from .guest import *
from .rsvp import *
from .config import *
from .backup import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "StrictSchema",
    "LoginRequest",
    "AttendanceStatus",
    "CompanionType",
    "PrimaryGuest",
    "Companion",
    "GuestGroup",
    "GuestGroupInput",
    "ReorderRequest",
    "PrimaryGuestPatch",
    "CompanionPatch",
    "RsvpPatch",
    "TableConfig",
    "TablesConfig",
    "BusConfig",
    "BusesConfig",
    "MissionPhoto",
    "PhotoRace",
    "PhotoSubmission",
    "PhotoValidation",
    "TablesUpdate",
    "BusesUpdate",
    "RacesUpdate",
    "BackupEnvelope",
]
