"""
Enums for the hospital chat backend.
"""

from .template import TemplateKind, PublicationStatus, TriggerKind, NextAction, TriggerPurpose
from .booking import BookingStatus, BookingPhase, Gender
from .flow import FlowTrackingStatus, MessageDirection, DeliveryStatus

__all__ = [
    "TemplateKind",
    "PublicationStatus",
    "TriggerKind",
    "NextAction",
    "TriggerPurpose",
    "BookingStatus",
    "BookingPhase",
    "Gender",
    "FlowTrackingStatus",
    "MessageDirection",
    "DeliveryStatus",
]
