"""
Custom exceptions for the hospital chat backend.
"""

from .common import HospitalChatError, ValidationFailed, NotFoundError, ConflictError, StoreError
from .patient import PatientNotFoundError, DoctorNotFoundError
from .booking import BookingNotFoundError, FlowNotFoundError
from .external import ExternalAPIError, WhatsAppAPIError, TransportNotConfigured
from .template import UnsupportedTemplateKind

__all__ = [
    "HospitalChatError",
    "ValidationFailed",
    "NotFoundError",
    "ConflictError",
    "StoreError",
    "PatientNotFoundError",
    "DoctorNotFoundError",
    "BookingNotFoundError",
    "FlowNotFoundError",
    "ExternalAPIError",
    "WhatsAppAPIError",
    "TransportNotConfigured",
    "UnsupportedTemplateKind",
]
