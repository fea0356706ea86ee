"""
Dynamic template enrichment from live records.
"""

import re
from typing import Any, Dict, List, Optional

from ...core.enums import TemplateKind, TriggerKind, TriggerPurpose
from ...core.models import ListRow, ListSection, Template, TemplateButton, Trigger
from ...utils.logging import get_logger
from ...utils.text import truncate_title
from ..catalog import TemplateCatalog
from ..catalog.seed import (
    DOCTOR_LIST_TEMPLATE_ID,
    LAB_BOOKED_TEMPLATE_ID,
    LAB_LIST_TEMPLATE_ID,
    PATIENT_SELECT_TEMPLATE_ID,
    SLOTS_TEMPLATE_ID,
    CONFIRM_TEMPLATE_ID,
    SLOT_BUTTON_PREFIX,
    WELCOME_TEMPLATE_ID,
)
from ..store import Collections, DocumentStore

logger = get_logger("hospital.enrichment")

BUTTON_TITLE_LIMIT = 20
MAX_SCHEDULED_SLOTS = 2


def is_active(record: Dict[str, Any]) -> bool:
    """Records without an ``isActive`` field count as active."""
    return record.get("isActive", True) is not False


class TemplateEnricher:
    """
    Fills selection templates with rows built from live records.

    Every enrichment works on a clone. Rows that have no trigger yet get a
    list-row trigger registered in the catalog. Query failures are logged and
    the template keeps the rows it already had.
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        doctors,
        patients,
        store: Optional[DocumentStore] = None,
        row_title_limit: int = 24,
    ):
        self.catalog = catalog
        self.doctors = doctors
        self.patients = patients
        self.labs = store.collection(Collections.LABS) if store is not None else None
        self.row_title_limit = row_title_limit

    async def enrich(self, template: Template) -> Template:
        enriched = template.clone()
        if template.kind != TemplateKind.LIST_MENU:
            return enriched

        name = (template.name or "").lower()
        if template.id == DOCTOR_LIST_TEMPLATE_ID or "doctor" in name:
            await self._fill(enriched, self._doctor_rows, "Doctors")
        if template.id == LAB_LIST_TEMPLATE_ID or "lab" in name:
            await self._fill(enriched, self._lab_rows, "Lab Tests", replace_all=True)
        if template.id == PATIENT_SELECT_TEMPLATE_ID or "existing patient" in name:
            await self._fill(enriched, self._patient_rows, "Patients")
        return enriched

    async def _fill(self, template: Template, build_rows, default_title: str, replace_all: bool = False) -> None:
        try:
            rows = await build_rows()
        except Exception:
            logger.exception("Failed to load rows for template %s", template.id)
            return
        if not rows:
            logger.info("No live rows for template %s, keeping existing rows", template.id)
            return

        sections = template.content.sections
        if replace_all or not sections:
            template.content.sections = [ListSection(title=default_title, rows=rows)]
        else:
            sections[0].rows = rows

    async def _doctor_rows(self) -> List[ListRow]:
        rows = []
        for doctor in await self.doctors.all_records():
            if not is_active(doctor):
                continue
            name = doctor.get("name") or "Unknown"
            row = self._row(
                doctor["id"],
                name,
                doctor.get("specialization") or doctor.get("description") or "",
                f"trigger_dr_{doctor['id']}",
                SLOTS_TEMPLATE_ID,
            )
            self._register(row, TriggerPurpose.DOCTOR_SELECTION, label=name, doctor_id=doctor["id"])
            rows.append(row)
        return rows

    async def _lab_rows(self) -> List[ListRow]:
        if self.labs is None:
            return []
        rows = []
        for lab in await self.labs.all():
            if not is_active(lab):
                continue
            name = lab.get("name") or "Lab Test"
            row = self._row(lab["id"], name, lab.get("description") or "", f"trigger_lab_{lab['id']}",
                            LAB_BOOKED_TEMPLATE_ID)
            self._register(row, TriggerPurpose.LAB_SELECTION, label=name)
            rows.append(row)
        return rows

    async def _patient_rows(self) -> List[ListRow]:
        rows = []
        for patient in await self.patients.all_records():
            if not is_active(patient):
                continue
            name = patient.get("name") or "Unknown"
            row = self._row(patient["id"], name, patient.get("phoneNumber") or "",
                            f"trigger_patient_{patient['id']}", WELCOME_TEMPLATE_ID)
            self._register(row, TriggerPurpose.PATIENT_SELECTION, label=name, patient_id=patient["id"])
            rows.append(row)
        return rows

    def _row(self, row_id: str, title: str, description: str, trigger_id: str, target: str) -> ListRow:
        return ListRow(
            id=row_id,
            label=truncate_title(title, self.row_title_limit),
            description=truncate_title(description, 72),
            trigger_id=trigger_id,
            target_template_id=target,
        )

    def _register(self, row: ListRow, purpose: TriggerPurpose, **details) -> None:
        if self.catalog.has_trigger(TriggerKind.LIST_ROW_ID, row.id):
            return
        self.catalog.add_trigger(Trigger(
            id=row.trigger_id,
            kind=TriggerKind.LIST_ROW_ID,
            value=row.id,
            next_action=row.next_action,
            target_template_id=row.target_template_id,
            purpose=purpose,
            **details,
        ))

    def enrich_slots(self, template: Template, doctor: Dict[str, Any]) -> Template:
        """Rebuild slot buttons from a doctor's schedule entries.

        Keeps the template's back button so the three-button limit holds. A
        doctor without schedule entries leaves the seeded slots untouched.
        """
        enriched = template.clone()
        schedule = [entry for entry in doctor.get("schedule") or [] if isinstance(entry, dict)]
        if not schedule:
            return enriched

        slot_buttons = []
        for entry in schedule[:MAX_SCHEDULED_SLOTS]:
            label = slot_label(entry)
            if not label:
                continue
            button_id = f"{SLOT_BUTTON_PREFIX}{doctor['id']}_{_slug(label)}"
            button = TemplateButton(
                id=button_id,
                label=truncate_title(label, BUTTON_TITLE_LIMIT),
                trigger_id=f"trigger_{button_id}",
                target_template_id=CONFIRM_TEMPLATE_ID,
            )
            if not self.catalog.has_trigger(TriggerKind.BUTTON_ID, button_id):
                self.catalog.add_trigger(Trigger(
                    id=button.trigger_id,
                    kind=TriggerKind.BUTTON_ID,
                    value=button_id,
                    target_template_id=CONFIRM_TEMPLATE_ID,
                    purpose=TriggerPurpose.SLOT_SELECTION,
                    label=label,
                    doctor_id=doctor["id"],
                ))
            slot_buttons.append(button)

        if not slot_buttons:
            return enriched
        others = [b for b in enriched.content.buttons if not b.id.startswith(SLOT_BUTTON_PREFIX)]
        enriched.content.buttons = slot_buttons + others[:1]
        return enriched


def slot_label(entry: Dict[str, Any]) -> str:
    """``Mon 09:00`` style label for a schedule entry."""
    if entry.get("label"):
        return str(entry["label"])
    day = str(entry.get("day") or "")[:3]
    start = str(entry.get("startTime") or "")
    return " ".join(part for part in (day, start) if part)


def _slug(label: str) -> str:
    return re.sub(r"[^0-9a-z]+", "", label.lower()) or "slot"
