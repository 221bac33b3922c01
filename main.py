"""
Big Day guest system - FastAPI Backend
Main application entry point
"""

import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from bigday.core.config import Settings, settings as default_settings
from bigday.core.errors import BigDayError
from bigday.api import routes_admin, routes_guest, routes_public
from bigday.services.container import Services, build_services
from bigday.utils.responses import app_error_response, error_response, success_response
from bigday.utils.tokens import mask_email, mask_token

# Configure logging
logging.basicConfig(level=default_settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """Build the application; tests pass their own settings and services"""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management"""
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(settings)
        logger.info(f"Application started ({settings.ENVIRONMENT})")
        yield
        logger.info("Application shutdown")

    app = FastAPI(
        title="Big Day Guest System",
        description="Invitations, RSVPs and admin tooling for a wedding",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.services = services

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BigDayError)
    async def handle_app_error(request: Request, exc: BigDayError):
        return app_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {"at": ".".join(str(part) for part in err["loc"]), "error": err["msg"]}
            for err in exc.errors()
        ]
        return error_response(
            message="Invalid payload",
            error_code="validation_failed",
            details=errors,
            status_code=400
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(
            message="Service unavailable",
            error_code="internal_error",
            details={"trace": traceback.format_exc()} if settings.debug_enabled else None,
            status_code=500
        )

    # Include routers
    app.include_router(routes_public.router, tags=["public"])
    app.include_router(routes_guest.router, prefix="/guest", tags=["guest"])
    app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])

    if settings.debug_enabled:
        @app.get("/debug", tags=["debug"])
        def debug_info(request: Request):
            """Backend configuration and a masked sample of the stored groups"""
            services: Services = request.app.state.services
            groups = services.guests.list_all()
            return success_response(
                message="Debug information",
                data={
                    "environment": settings.ENVIRONMENT,
                    "backend": services.backend,
                    "storageMode": services.guests.mode,
                    "legacyShadowWrites": settings.LEGACY_SHADOW_WRITES,
                    "adminKeyConfigured": bool(settings.ADMIN_KEY),
                    "migration": services.migration.status(),
                    "groupCount": len(groups),
                    "sample": [
                        {
                            "id": g.id,
                            "token": mask_token(g.token),
                            "email": mask_email(g.primary_guest.email),
                        }
                        for g in groups[:5]
                    ],
                }
            )

    return app

app = create_app()

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
