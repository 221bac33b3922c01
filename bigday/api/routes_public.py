"""
Public API routes - no authentication required
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from bigday.api.deps import get_services, rate_limited
from bigday.schemas.config import PhotoSubmission
from bigday.services.container import Services
from bigday.services.photo_race_service import MISSION_CATALOG
from bigday.utils.responses import success_response

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/config/tables")
def get_tables(services: Services = Depends(get_services)):
    config = services.config.get_tables()
    return success_response(
        message="Tables configuration",
        data=config.to_document() if config else None
    )

@router.get("/config/buses")
def get_buses(services: Services = Depends(get_services)):
    config = services.config.get_buses()
    return success_response(
        message="Buses configuration",
        data=config.to_document() if config else None
    )

@router.get("/missions")
async def list_missions():
    """The photo mission catalog"""
    return success_response(
        message="Mission catalog",
        data=[asdict(m) for m in MISSION_CATALOG]
    )

@router.get("/races")
def list_races(services: Services = Depends(get_services)):
    return success_response(
        message="Photo races",
        data=[r.to_document() for r in services.races.list_races()]
    )

@router.get("/races/{table_id}", dependencies=[Depends(rate_limited)])
def get_race(table_id: str, services: Services = Depends(get_services)):
    """Get a table's race, starting it on first access"""
    race = services.races.get_or_create_race(table_id)
    return success_response(
        message="Photo race",
        data=race.to_document()
    )

@router.post("/races/{table_id}/photos", dependencies=[Depends(rate_limited)])
def add_photo(
    table_id: str,
    submission: PhotoSubmission,
    services: Services = Depends(get_services)
):
    """Register an uploaded photo against one of the table's missions"""
    race = services.races.add_photo(table_id, submission)
    return success_response(
        message="Photo registered",
        data=race.to_document(),
        status_code=201
    )
