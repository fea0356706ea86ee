"""
Service wiring.
"""

from typing import Optional

from ..config import DatabaseConfig, Settings, WhatsAppConfig, get_settings
from ..utils.date import DateParser
from .booking import BookingService
from .catalog import TemplateCatalog
from .conversation import CheckInService, ConversationService
from .dispatch import OutboundDispatcher
from .doctor import DoctorService
from .enrichment import TemplateEnricher
from .external import WhatsAppCloudClient
from .flow import FlowService
from .patient import PatientService
from .resolver import TriggerResolver
from .store import DocumentStore, create_store
from .webhook import FlowCompletionHandler, WebhookProcessor


class ServiceContainer:
    """Builds every service once and shares them across the API layer."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[DocumentStore] = None,
        transport=None,
        catalog: Optional[TemplateCatalog] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or create_store(DatabaseConfig.from_settings(self.settings))
        self.transport = transport or WhatsAppCloudClient(WhatsAppConfig.from_settings(self.settings))
        self.date_parser = DateParser(self.settings.timezone)

        self.catalog = catalog or TemplateCatalog(registration_flow_id=self.settings.registration_flow_id)
        self.patients = PatientService(self.store)
        self.doctors = DoctorService(self.store)
        self.bookings = BookingService(self.store, self.date_parser)
        self.flows = FlowService(self.store, self.doctors)

        self.dispatcher = OutboundDispatcher(self.transport, self.flows)
        self.resolver = TriggerResolver(self.catalog, self.doctors, self.bookings)
        self.enricher = TemplateEnricher(
            self.catalog,
            self.doctors,
            self.patients,
            self.store,
            row_title_limit=self.settings.row_title_limit,
        )
        self.checkin = CheckInService(self.bookings, self.patients, self.doctors, self.dispatcher)
        self.conversation = ConversationService(
            catalog=self.catalog,
            resolver=self.resolver,
            enricher=self.enricher,
            dispatcher=self.dispatcher,
            patients=self.patients,
            doctors=self.doctors,
            bookings=self.bookings,
            flows=self.flows,
            checkin=self.checkin,
            date_parser=self.date_parser,
            registration_flow_id=self.settings.registration_flow_id,
            checkin_window_hours=self.settings.checkin_window_hours,
            row_title_limit=self.settings.row_title_limit,
        )
        self.flow_completion = FlowCompletionHandler(
            self.flows, self.patients, self.doctors, self.bookings, self.dispatcher
        )
        self.webhook = WebhookProcessor(self.conversation, self.flow_completion, self.flows)

    async def close(self) -> None:
        await self.store.close()
