"""
Trigger resolution for inbound signals.
"""

from dataclasses import dataclass
from typing import Optional

from ...core.enums import TriggerKind, NextAction, TriggerPurpose
from ...core.models import Template, Trigger
from ...utils.logging import get_logger
from ..catalog import TemplateCatalog
from ..catalog.seed import SLOTS_TEMPLATE_ID, CONFIRM_TEMPLATE_ID, SLOT_BUTTON_PREFIX
from .signal import Signal

logger = get_logger("hospital.resolver")


@dataclass
class Resolution:
    """Matched trigger and the template it points at, if any."""

    trigger: Trigger
    next_template: Optional[Template] = None
    reinterpreted: bool = False


class TriggerResolver:
    """
    Find the single best trigger for a signal.

    Free text uses substring keyword matching in declaration order. Button and
    list-row ids use exact matching in evaluation order. Unmatched ids are
    reinterpreted as a doctor, slot or booking reference before giving up.
    """

    def __init__(self, catalog: TemplateCatalog, doctors=None, bookings=None):
        self.catalog = catalog
        self.doctors = doctors
        self.bookings = bookings

    async def resolve(self, signal: Signal) -> Optional[Resolution]:
        if signal.is_text:
            trigger = self._match_keywords(signal.value)
        else:
            trigger = self.catalog.find_trigger(signal.kind, signal.value)

        if trigger is not None:
            logger.debug("Signal %r matched trigger %s", signal.value, trigger.id)
            return Resolution(trigger, self.catalog.get_published(trigger.target_template_id))

        if signal.is_text:
            return None

        return await self._reinterpret(signal)

    def _match_keywords(self, text: str) -> Optional[Trigger]:
        if not text:
            return None
        for trigger in self.catalog.keyword_triggers():
            if trigger.matches_text(text):
                return trigger
        return None

    async def _reinterpret(self, signal: Signal) -> Optional[Resolution]:
        raw_id = signal.value

        doctor = await self._lookup(self.doctors, raw_id)
        if doctor is not None:
            logger.info("Reinterpreting %r as doctor selection", raw_id)
            trigger = Trigger(
                id=f"trigger_dr_{raw_id}",
                kind=signal.kind,
                value=raw_id,
                target_template_id=SLOTS_TEMPLATE_ID,
                purpose=TriggerPurpose.DOCTOR_SELECTION,
                label=doctor.get("name"),
                doctor_id=doctor["id"],
            )
            return Resolution(trigger, self.catalog.get_published(SLOTS_TEMPLATE_ID), reinterpreted=True)

        if raw_id.startswith(SLOT_BUTTON_PREFIX):
            logger.info("Reinterpreting %r as slot selection", raw_id)
            trigger = Trigger(
                id=f"trigger_{raw_id}",
                kind=signal.kind,
                value=raw_id,
                target_template_id=CONFIRM_TEMPLATE_ID,
                purpose=TriggerPurpose.SLOT_SELECTION,
                label=signal.title,
            )
            return Resolution(trigger, self.catalog.get_published(CONFIRM_TEMPLATE_ID), reinterpreted=True)

        booking = await self._lookup(self.bookings, raw_id)
        if booking is not None:
            logger.info("Reinterpreting %r as check-in selection", raw_id)
            trigger = Trigger(
                id=f"trigger_checkin_{raw_id}",
                kind=signal.kind,
                value=raw_id,
                next_action=NextAction.MARK_ARRIVED_SELECTED,
                purpose=TriggerPurpose.CHECKIN_SELECTION,
                booking_id=booking["id"],
            )
            return Resolution(trigger, None, reinterpreted=True)

        logger.info("No trigger for %s %r", signal.kind.value, raw_id)
        return None

    @staticmethod
    async def _lookup(service, entity_id: str) -> Optional[dict]:
        if service is None:
            return None
        try:
            return await service.get_by_id(entity_id)
        except Exception:
            logger.exception("Lookup of %r failed during trigger reinterpretation", entity_id)
            return None
