"""
FastAPI application factory and configuration.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.exceptions import ConflictError, NotFoundError, ValidationFailed
from ..services import ServiceContainer
from ..utils.event_log import set_log_path
from ..utils.logging import configure_logging, get_logger
from .handlers import (
    BookingsHandler,
    DoctorsHandler,
    FlowsHandler,
    HealthHandler,
    PatientsHandler,
    PrescriptionsHandler,
)
from .middleware import LoggingMiddleware, SecurityHeaders
from .webhooks import WhatsAppWebhook

logger = get_logger("hospital.api")


def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(ValidationFailed)
    async def validation_failed(request: Request, exc: ValidationFailed):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": exc.message, "missing": exc.missing},
        )

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"success": False, "error": str(exc)},
        )

    @app.exception_handler(ConflictError)
    async def conflict(request: Request, exc: ConflictError):
        content = {"success": False, "error": str(exc)}
        if exc.existing is not None:
            content["existing"] = exc.existing
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=content)

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Internal server error", "details": str(exc)},
        )


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    container = container or ServiceContainer()
    settings = container.settings
    configure_logging(settings.log_level)
    set_log_path(settings.event_log_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await container.close()

    app = FastAPI(
        title=settings.app_name,
        description="WhatsApp booking and check-in backend for hospital services",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeaders)
    app.add_middleware(LoggingMiddleware)

    _register_exception_handlers(app)

    health_handler = HealthHandler(settings, container.transport, container.store, container.catalog)
    whatsapp_webhook = WhatsAppWebhook(settings, container.webhook)
    patients_handler = PatientsHandler(container.patients)
    doctors_handler = DoctorsHandler(container.doctors)
    flows_handler = FlowsHandler(container.flows)
    bookings_handler = BookingsHandler(container.bookings, container.checkin)
    prescriptions_handler = PrescriptionsHandler(
        container.dispatcher, container.date_parser, settings.default_country_code
    )

    app.include_router(health_handler.router, prefix="/health", tags=["health"])
    app.include_router(whatsapp_webhook.router, prefix="/webhook", tags=["webhooks"])
    app.include_router(patients_handler.router, prefix="/api/patients", tags=["patients"])
    app.include_router(doctors_handler.router, prefix="/api/doctors", tags=["doctors"])
    app.include_router(flows_handler.router, prefix="/api/flows", tags=["flows"])
    app.include_router(bookings_handler.router, prefix="/api/bookings", tags=["bookings"])
    app.include_router(prescriptions_handler.router, prefix="/api/prescriptions", tags=["prescriptions"])

    return app
