"""
Request dependencies shared by the routers
"""

from fastapi import Depends, Request

from bigday.core.config import Settings
from bigday.core.errors import RateLimited, Unauthorized
from bigday.services.container import Services
from bigday.utils.security import get_client_ip, rate_limit_check


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_admin(
    request: Request,
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_settings),
) -> str:
    """Valid admin session cookie; each successful check slides the TTL"""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not services.sessions.validate(token):
        raise Unauthorized()
    return token


def rate_limited(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Per-IP request budget for the unauthenticated endpoints"""
    if not rate_limit_check(get_client_ip(request), settings.RATE_LIMIT_PER_MINUTE):
        raise RateLimited()
