"""
Inbound WhatsApp Cloud webhook envelope models.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class TextBody(BaseModel):
    body: str = ""


class ReplyChoice(BaseModel):
    """Button or list-row reply chosen by the user."""

    id: str
    title: Optional[str] = None
    description: Optional[str] = None


class FlowReply(BaseModel):
    """Completed external form (``nfm_reply``)."""

    name: Optional[str] = None
    body: Optional[str] = None
    response_json: Any = None


class Interactive(BaseModel):
    type: Optional[str] = None
    button_reply: Optional[ReplyChoice] = None
    list_reply: Optional[ReplyChoice] = None
    nfm_reply: Optional[FlowReply] = None


class InboundMessage(BaseModel):
    """One inbound user message."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    sender: str = Field(alias="from")
    timestamp: Optional[str] = None
    type: str = "text"
    text: Optional[TextBody] = None
    interactive: Optional[Interactive] = None


class StatusUpdate(BaseModel):
    """Delivery/read receipt for an outbound message."""

    id: Optional[str] = None
    recipient_id: Optional[str] = None
    status: Optional[str] = None
    timestamp: Optional[str] = None


class ChangeValue(BaseModel):
    messaging_product: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    messages: List[InboundMessage] = Field(default_factory=list)
    statuses: List[StatusUpdate] = Field(default_factory=list)


class Change(BaseModel):
    field: str = ""
    value: ChangeValue = Field(default_factory=ChangeValue)


class Entry(BaseModel):
    id: Optional[str] = None
    changes: List[Change] = Field(default_factory=list)


class WebhookEnvelope(BaseModel):
    """Top-level webhook payload."""

    model_config = ConfigDict(populate_by_name=True)

    object_type: Optional[str] = Field(default=None, alias="object")
    entry: List[Entry] = Field(default_factory=list)
