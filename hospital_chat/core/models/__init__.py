"""
Core data models for the hospital chat backend.
"""

from .template import Template, TemplateContent, TemplateButton, ListSection, ListRow, Trigger
from .booking import PendingBooking, BookingContext
from .webhook import (
    WebhookEnvelope,
    Entry,
    Change,
    ChangeValue,
    InboundMessage,
    Interactive,
    ReplyChoice,
    FlowReply,
    TextBody,
    StatusUpdate,
)
from .delivery import SendResult, DeliveryOutcome

__all__ = [
    "Template",
    "TemplateContent",
    "TemplateButton",
    "ListSection",
    "ListRow",
    "Trigger",
    "PendingBooking",
    "BookingContext",
    "WebhookEnvelope",
    "Entry",
    "Change",
    "ChangeValue",
    "InboundMessage",
    "Interactive",
    "ReplyChoice",
    "FlowReply",
    "TextBody",
    "StatusUpdate",
    "SendResult",
    "DeliveryOutcome",
]
