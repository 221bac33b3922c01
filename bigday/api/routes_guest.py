"""
Guest-facing API routes, authorized by the invitation token
"""

from fastapi import APIRouter, Depends

from bigday.api.deps import get_services, rate_limited
from bigday.schemas.rsvp import RsvpPatch
from bigday.services.container import Services
from bigday.utils.responses import success_response

router = APIRouter(dependencies=[Depends(rate_limited)])

@router.get("/groups/{token}")
def get_group(token: str, services: Services = Depends(get_services)):
    """Look up an invitation by its token"""
    group = services.rsvp.get_group(token)
    return success_response(
        message="Invitation found",
        data=group
    )

@router.patch("/groups/{token}/rsvp")
def submit_rsvp(
    token: str,
    patch: RsvpPatch,
    services: Services = Depends(get_services)
):
    """Apply a guest's RSVP to their group"""
    group = services.rsvp.submit(token, patch)
    return success_response(
        message="RSVP saved",
        data=group
    )
