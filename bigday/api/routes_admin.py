"""
Admin API routes - requires an admin session cookie
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from bigday.api.deps import get_services, get_settings, rate_limited, require_admin
from bigday.core.config import Settings
from bigday.schemas.common import LoginRequest
from bigday.schemas.config import BusesUpdate, PhotoValidation, RacesUpdate, TablesUpdate
from bigday.schemas.guest import GuestGroupInput, ReorderRequest
from bigday.services.backup_service import DRY_RUN
from bigday.services.container import Services
from bigday.utils.responses import success_response
from bigday.utils.security import is_secure_request

router = APIRouter()
admin_only = [Depends(require_admin)]

# Session

@router.post("/login", dependencies=[Depends(rate_limited)])
def login(
    request: Request,
    credentials: LoginRequest,
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_settings)
):
    """Exchange the admin key for a session cookie"""
    token = services.sessions.login(credentials.key)
    response = success_response(message="Logged in")
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=is_secure_request(request) or settings.is_production,
        path="/",
    )
    return response

@router.post("/logout")
def logout(
    request: Request,
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_settings)
):
    services.sessions.logout(request.cookies.get(settings.SESSION_COOKIE_NAME))
    response = success_response(message="Logged out")
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")
    return response

@router.get("/session", dependencies=admin_only)
def session_check():
    return success_response(message="Session active", data={"authenticated": True})

# Guest groups

@router.get("/groups", dependencies=admin_only)
def list_groups(services: Services = Depends(get_services)):
    groups = services.groups.list_groups()
    return success_response(
        message=f"{len(groups)} groups",
        data=[g.to_document() for g in groups]
    )

@router.post("/groups", dependencies=admin_only)
def create_group(data: GuestGroupInput, services: Services = Depends(get_services)):
    group = services.groups.create_group(data)
    return success_response(
        message="Group created",
        data=group.to_document(),
        status_code=201
    )

@router.post("/groups/reorder", dependencies=admin_only)
def reorder_groups(data: ReorderRequest, services: Services = Depends(get_services)):
    groups = services.groups.reorder(data.ids)
    return success_response(
        message="Groups reordered",
        data=[g.id for g in groups]
    )

@router.get("/groups/{group_id}", dependencies=admin_only)
def get_group(group_id: str, services: Services = Depends(get_services)):
    return success_response(
        message="Group found",
        data=services.groups.get_group(group_id).to_document()
    )

@router.put("/groups/{group_id}", dependencies=admin_only)
def update_group(group_id: str, data: GuestGroupInput, services: Services = Depends(get_services)):
    group = services.groups.update_group(group_id, data)
    return success_response(
        message="Group updated",
        data=group.to_document()
    )

@router.delete("/groups/{group_id}", dependencies=admin_only)
def delete_group(group_id: str, services: Services = Depends(get_services)):
    services.groups.delete_group(group_id)
    return success_response(message="Group deleted")

# Configuration

@router.put("/config/tables", dependencies=admin_only)
def save_tables(data: TablesUpdate, services: Services = Depends(get_services)):
    config = services.config.save_tables(data.tables)
    return success_response(message="Tables saved", data=config.to_document())

@router.put("/config/buses", dependencies=admin_only)
def save_buses(data: BusesUpdate, services: Services = Depends(get_services)):
    config = services.config.save_buses(data.buses)
    return success_response(message="Buses saved", data=config.to_document())

@router.get("/tables/{table_id}/qr.png", dependencies=admin_only)
def get_table_qr(table_id: str, services: Services = Depends(get_services)):
    """QR code image for a table's photo page"""
    table = services.config.get_table(table_id)
    qr_bytes = services.qr.generate_table_qr(table)

    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=qr_table_{table_id}.png"}
    )

# Photo races

@router.put("/races", dependencies=admin_only)
def replace_races(data: RacesUpdate, services: Services = Depends(get_services)):
    services.races.replace_races(data.races)
    return success_response(message="Photo races saved", data=[r.to_document() for r in data.races])

@router.post("/races/{table_id}/photos/{photo_id}/validation", dependencies=admin_only)
def validate_photo(
    table_id: str,
    photo_id: str,
    data: PhotoValidation,
    services: Services = Depends(get_services)
):
    race = services.races.set_photo_validated(table_id, photo_id, data.validated)
    return success_response(message="Photo updated", data=race.to_document())

# Reports

@router.get("/stats", dependencies=admin_only)
def get_stats(services: Services = Depends(get_services)):
    return success_response(message="Guest statistics", data=services.reports.stats())

@router.get("/export/guests.xlsx", dependencies=admin_only)
def export_guest_list(services: Services = Depends(get_services)):
    """Download the guest list as Excel"""
    excel_bytes = services.reports.export_guest_list_xlsx()

    return Response(
        content=excel_bytes,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=guest_list.xlsx"}
    )

# Backup and migration

@router.get("/backup/export", dependencies=admin_only)
def export_backup(services: Services = Depends(get_services)):
    """Download the whole dataset as a re-importable JSON file"""
    filename, payload = services.backups.export()
    return JSONResponse(
        content=payload,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-store",
        }
    )

@router.post("/backup/import", dependencies=admin_only)
async def import_backup(
    request: Request,
    mode: str = Query(DRY_RUN),
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_settings)
):
    """Validate a backup, and with mode=apply overwrite the dataset with it"""
    payload = services.backups.parse_body(await request.body(), settings.MAX_IMPORT_SIZE)
    result = services.backups.import_backup(payload, mode)
    return success_response(
        message="Backup applied" if result.get("snapshotKey") else "Backup checked",
        data=result
    )

@router.post("/migrate", dependencies=admin_only)
def migrate(mode: str = Query(DRY_RUN), services: Services = Depends(get_services)):
    """Copy legacy groups into the entity layout"""
    result = services.migration.run(mode)
    return success_response(message="Migration report", data=result)

@router.get("/migrate/status", dependencies=admin_only)
def migration_status(services: Services = Depends(get_services)):
    return success_response(message="Migration status", data=services.migration.status())
