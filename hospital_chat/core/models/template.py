"""
Message template and trigger models.
"""

from typing import Iterator, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from ..enums import TemplateKind, PublicationStatus, TriggerKind, NextAction, TriggerPurpose
from ...utils.date import now_iso


class TemplateButton(BaseModel):
    """Reply button of a button-menu template."""

    model_config = ConfigDict(extra="forbid")

    id: str
    label: str
    trigger_id: Optional[str] = None
    next_action: NextAction = NextAction.SEND_TEMPLATE
    target_template_id: Optional[str] = None


class ListRow(BaseModel):
    """Selectable row of a list-menu template."""

    model_config = ConfigDict(extra="forbid")

    id: str
    label: str
    description: str = ""
    trigger_id: Optional[str] = None
    next_action: NextAction = NextAction.SEND_TEMPLATE
    target_template_id: Optional[str] = None


class ListSection(BaseModel):
    """Titled group of list rows."""

    model_config = ConfigDict(extra="forbid")

    title: str
    rows: List[ListRow] = Field(default_factory=list)


class TemplateContent(BaseModel):
    """Renderable content of a template."""

    model_config = ConfigDict(extra="forbid")

    header: Optional[str] = None
    body: str
    footer: Optional[str] = None
    buttons: List[TemplateButton] = Field(default_factory=list)
    button_text: Optional[str] = None
    sections: List[ListSection] = Field(default_factory=list)


class Template(BaseModel):
    """Definition of one outbound message."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str = ""
    kind: TemplateKind
    status: PublicationStatus = PublicationStatus.PUBLISHED
    content: TemplateContent
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    @property
    def is_published(self) -> bool:
        return self.status == PublicationStatus.PUBLISHED

    def rows(self) -> Iterator[ListRow]:
        """Iterate over every row of every section."""
        for section in self.content.sections:
            yield from section.rows

    def clone(self) -> "Template":
        """Deep copy used before any per-send mutation."""
        return self.model_copy(deep=True)


class Trigger(BaseModel):
    """Rule mapping an inbound signal to a next action."""

    model_config = ConfigDict(extra="forbid")

    id: str
    kind: TriggerKind
    value: Union[str, List[str]]
    next_action: NextAction = NextAction.SEND_TEMPLATE
    target_template_id: Optional[str] = None
    external_flow_id: Optional[str] = None
    purpose: TriggerPurpose = TriggerPurpose.GENERAL
    label: Optional[str] = None
    doctor_id: Optional[str] = None
    patient_id: Optional[str] = None
    booking_id: Optional[str] = None
    created_at: str = Field(default_factory=now_iso)

    def keywords(self) -> List[str]:
        if isinstance(self.value, list):
            return [k.lower() for k in self.value]
        return [self.value.lower()]

    def matches_text(self, text: str) -> bool:
        """Substring match of normalized text against any keyword."""
        if self.kind != TriggerKind.KEYWORD_SET:
            return False
        return any(keyword in text for keyword in self.keywords())

    def matches(self, kind: TriggerKind, value: str) -> bool:
        """Exact match for button and list-row signals."""
        return self.kind == kind and self.value == value
