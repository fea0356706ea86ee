"""
Outbound delivery models.
"""

from typing import Optional
from pydantic import BaseModel

from ..enums import DeliveryStatus


class SendResult(BaseModel):
    """Acknowledgement returned by the messaging transport."""

    message_id: Optional[str] = None
    timestamp: str


class DeliveryOutcome(BaseModel):
    """Result of a send attempt including any fallback taken."""

    status: DeliveryStatus
    result: Optional[SendResult] = None
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status in (DeliveryStatus.SENT, DeliveryStatus.FALLBACK)
