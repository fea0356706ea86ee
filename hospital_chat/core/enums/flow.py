"""
Flow and message enums.
"""

from enum import Enum


class FlowTrackingStatus(str, Enum):
    """Status of an external form launch."""

    SENT = "sent"
    COMPLETED = "completed"


class MessageDirection(str, Enum):
    """Direction of a persisted message record."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class DeliveryStatus(str, Enum):
    """Outcome of an outbound delivery attempt."""

    SENT = "sent"
    FALLBACK = "fallback"
    FAILED = "failed"
    RECORDED = "recorded"
