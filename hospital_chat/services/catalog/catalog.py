"""
In-memory template catalog and trigger table.
"""

from typing import Dict, List, Optional

from ...core.enums import TriggerKind
from ...core.models import Template, Trigger
from ...utils.ids import mint_template_id
from ...utils.date import now_iso
from ...utils.logging import get_logger
from .seed import seed_templates, seed_triggers, REGISTRATION_FLOW_ID

logger = get_logger("hospital.catalog")


class TemplateCatalog:
    """
    Process-wide collection of templates and the ordered trigger table.

    Triggers are evaluated in list order. New triggers go to the head so
    that per-transaction triggers shadow older ones with the same signal.
    Nothing is ever removed.
    """

    def __init__(
        self,
        templates: Optional[List[Template]] = None,
        triggers: Optional[List[Trigger]] = None,
        registration_flow_id: str = REGISTRATION_FLOW_ID,
    ):
        seeded = templates if templates is not None else seed_templates()
        self._templates: Dict[str, Template] = {t.id: t for t in seeded}
        self._triggers: List[Trigger] = list(
            triggers if triggers is not None else seed_triggers(registration_flow_id)
        )

    @property
    def triggers(self) -> List[Trigger]:
        """Snapshot of the trigger table in evaluation order."""
        return list(self._triggers)

    @property
    def templates(self) -> List[Template]:
        return list(self._templates.values())

    def get_template(self, template_id: Optional[str]) -> Optional[Template]:
        if not template_id:
            return None
        return self._templates.get(template_id)

    def get_published(self, template_id: Optional[str]) -> Optional[Template]:
        """Template by id, only if it is published."""
        template = self.get_template(template_id)
        if template is None or not template.is_published:
            return None
        return template

    def add_template(self, template: Template) -> Template:
        """Append a template under a freshly minted id."""
        stored = template.model_copy(
            update={"id": mint_template_id(), "created_at": now_iso(), "updated_at": now_iso()},
            deep=True,
        )
        self._templates[stored.id] = stored
        logger.debug("Added template %s (%s)", stored.id, stored.name)
        return stored

    def add_trigger(self, trigger: Trigger) -> Trigger:
        """Register a trigger at the head of the evaluation order."""
        self._triggers.insert(0, trigger)
        logger.debug("Registered trigger %s for %s=%r", trigger.id, trigger.kind.value, trigger.value)
        return trigger

    def keyword_triggers(self) -> List[Trigger]:
        return [t for t in self._triggers if t.kind == TriggerKind.KEYWORD_SET]

    def find_trigger(self, kind: TriggerKind, value: str) -> Optional[Trigger]:
        """First trigger in evaluation order matching kind and value exactly."""
        for trigger in self._triggers:
            if trigger.matches(kind, value):
                return trigger
        return None

    def has_trigger(self, kind: TriggerKind, value: str) -> bool:
        return self.find_trigger(kind, value) is not None
