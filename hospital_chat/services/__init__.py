"""
Service layer for the hospital chat backend.
"""

from .booking import BookingService
from .catalog import TemplateCatalog
from .conversation import ConversationService, CheckInService
from .dispatch import OutboundDispatcher
from .doctor import DoctorService
from .enrichment import TemplateEnricher
from .external import WhatsAppCloudClient
from .flow import FlowService
from .patient import PatientService
from .resolver import TriggerResolver, Signal
from .webhook import WebhookProcessor, FlowCompletionHandler
from .container import ServiceContainer

__all__ = [
    "BookingService",
    "TemplateCatalog",
    "ConversationService",
    "CheckInService",
    "OutboundDispatcher",
    "DoctorService",
    "TemplateEnricher",
    "WhatsAppCloudClient",
    "FlowService",
    "PatientService",
    "TriggerResolver",
    "Signal",
    "WebhookProcessor",
    "FlowCompletionHandler",
    "ServiceContainer",
]
