"""
Inbound signal value object.
"""

from dataclasses import dataclass
from typing import Optional

from ...core.enums import TriggerKind
from ...utils.text import normalize_inbound


@dataclass(frozen=True)
class Signal:
    """One inbound user signal: free text, button id or list-row id."""

    kind: TriggerKind
    value: str
    title: Optional[str] = None

    @classmethod
    def text(cls, raw: Optional[str]) -> "Signal":
        return cls(TriggerKind.KEYWORD_SET, normalize_inbound(raw))

    @classmethod
    def button(cls, button_id: str, title: Optional[str] = None) -> "Signal":
        return cls(TriggerKind.BUTTON_ID, button_id, title)

    @classmethod
    def list_row(cls, row_id: str, title: Optional[str] = None) -> "Signal":
        return cls(TriggerKind.LIST_ROW_ID, row_id, title)

    @property
    def is_text(self) -> bool:
        return self.kind == TriggerKind.KEYWORD_SET
