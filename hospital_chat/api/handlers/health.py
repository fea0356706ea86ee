"""
Service health endpoints.

``/health`` describes the running service, ``/health/ready`` checks that the
document store answers queries and ``/health/live`` only proves the process
is serving requests.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...config import Settings
from ...services.catalog import TemplateCatalog
from ...services.store import Collections, DocumentStore
from ...utils.logging import get_logger

logger = get_logger("hospital.health")


class ServiceStatus(BaseModel):
    status: str
    version: str
    started_at: str
    uptime_seconds: float
    transport_configured: bool
    catalog_templates: int
    catalog_triggers: int


class HealthHandler:
    """Reports transport configuration, catalog size and store reachability."""

    def __init__(
        self,
        settings: Settings,
        transport=None,
        store: Optional[DocumentStore] = None,
        catalog: Optional[TemplateCatalog] = None,
    ):
        self.settings = settings
        self.transport = transport
        self.store = store
        self.catalog = catalog
        self.started_at = datetime.now(timezone.utc)
        self.router = APIRouter()
        self._setup_routes()

    def _transport_configured(self) -> bool:
        configured = getattr(self.transport, "is_configured", None)
        return bool(configured()) if callable(configured) else False

    async def _store_reachable(self) -> bool:
        if self.store is None:
            return False
        try:
            await self.store.collection(Collections.PATIENTS).limit(1).get()
        except Exception:
            logger.exception("Document store readiness query failed")
            return False
        return True

    def _setup_routes(self):

        @self.router.get("", response_model=ServiceStatus)
        async def service_status():
            now = datetime.now(timezone.utc)
            return ServiceStatus(
                status="healthy",
                version=self.settings.app_version,
                started_at=self.started_at.isoformat(),
                uptime_seconds=(now - self.started_at).total_seconds(),
                transport_configured=self._transport_configured(),
                catalog_templates=len(self.catalog.templates) if self.catalog else 0,
                catalog_triggers=len(self.catalog.triggers) if self.catalog else 0,
            )

        @self.router.get("/ready")
        async def readiness():
            """Ready once the store answers; WhatsApp credentials are reported, not required."""
            store_ok = await self._store_reachable()
            body = {
                "status": "ready" if store_ok else "unavailable",
                "store": store_ok,
                "transport": self._transport_configured(),
            }
            if not store_ok:
                return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
            return body

        @self.router.get("/live")
        async def liveness():
            return {"status": "alive"}
