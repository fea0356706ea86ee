from unittest.mock import AsyncMock, Mock

import pytest

from hospital_chat.core.enums import TriggerKind, TriggerPurpose
from hospital_chat.services.catalog import seed
from hospital_chat.services.doctor import DoctorService
from hospital_chat.services.enrichment import TemplateEnricher, is_active, slot_label
from hospital_chat.services.patient import PatientService


@pytest.fixture
def doctors(store):
    return DoctorService(store)


@pytest.fixture
def patients(store):
    return PatientService(store)


@pytest.fixture
def enricher(catalog, doctors, patients, store):
    return TemplateEnricher(catalog, doctors, patients, store)


def row_titles(template):
    return [row.label for row in template.rows()]


def test_is_active_treats_missing_flag_as_active():
    assert is_active({})
    assert is_active({"isActive": True})
    assert not is_active({"isActive": False})


def test_slot_label():
    assert slot_label({"label": "Morning"}) == "Morning"
    assert slot_label({"day": "Wednesday", "startTime": "16:00"}) == "Wed 16:00"
    assert slot_label({}) == ""


@pytest.mark.asyncio
async def test_doctor_list_excludes_soft_deleted(enricher, catalog, doctors, store):
    active = await doctors.create({"name": "Dr. Rao", "specialization": "general"})
    removed = await doctors.create({"name": "Dr. Gone", "specialization": "general"})
    await doctors.delete(removed["id"])
    legacy_id = await store.collection("doctors").add({"name": "Dr. Legacy"})

    template = await enricher.enrich(catalog.get_template(seed.DOCTOR_LIST_TEMPLATE_ID))

    ids = [row.id for row in template.rows()]
    assert active["id"] in ids
    assert legacy_id in ids
    assert removed["id"] not in ids
    assert "Dr. Gone" not in row_titles(template)

    trigger = catalog.find_trigger(TriggerKind.LIST_ROW_ID, active["id"])
    assert trigger.purpose == TriggerPurpose.DOCTOR_SELECTION
    assert trigger.doctor_id == active["id"]
    assert trigger.target_template_id == seed.SLOTS_TEMPLATE_ID


@pytest.mark.asyncio
async def test_patient_list_excludes_soft_deleted(enricher, catalog, patients, store):
    kept = await patients.create({"name": "Asha", "phoneNumber": "9876543210"})
    gone = await patients.create({"name": "Ravi", "phoneNumber": "9876500000"})
    await patients.delete(gone["id"])
    legacy_id = await store.collection("patients").add({"name": "Old Record", "phoneNumber": "9000000000"})

    template = await enricher.enrich(catalog.get_template(seed.PATIENT_SELECT_TEMPLATE_ID))

    assert sorted(row.id for row in template.rows()) == sorted([kept["id"], legacy_id])
    row = next(r for r in template.rows() if r.id == kept["id"])
    assert row.description == "9876543210"
    assert catalog.find_trigger(TriggerKind.LIST_ROW_ID, kept["id"]).patient_id == kept["id"]


@pytest.mark.asyncio
async def test_row_titles_truncated_to_24(enricher, catalog, doctors):
    await doctors.create({"name": "Dr. Venkataraghavan Subramaniam", "specialization": "cardiology"})

    template = await enricher.enrich(catalog.get_template(seed.DOCTOR_LIST_TEMPLATE_ID))

    title = row_titles(template)[0]
    assert len(title) <= 24
    assert title.endswith("…")


@pytest.mark.asyncio
async def test_no_live_rows_keeps_seeded_rows(enricher, catalog):
    template = await enricher.enrich(catalog.get_template(seed.DOCTOR_LIST_TEMPLATE_ID))
    assert [row.id for row in template.rows()] == ["dr_sharma", "dr_patel"]


@pytest.mark.asyncio
async def test_query_failure_keeps_seeded_rows(catalog, patients, store):
    broken = Mock()
    broken.all_records = AsyncMock(side_effect=RuntimeError("store down"))
    enricher = TemplateEnricher(catalog, broken, patients, store)

    template = await enricher.enrich(catalog.get_template(seed.DOCTOR_LIST_TEMPLATE_ID))
    assert [row.id for row in template.rows()] == ["dr_sharma", "dr_patel"]


@pytest.mark.asyncio
async def test_lab_list_replaces_every_section(enricher, catalog, store):
    labs = store.collection("labs")
    lipid_id = await labs.add({"name": "Lipid Profile", "description": "Cholesterol panel - ₹600"})
    await labs.add({"name": "Retired Test", "isActive": False})

    template = await enricher.enrich(catalog.get_template(seed.LAB_LIST_TEMPLATE_ID))

    assert [section.title for section in template.content.sections] == ["Lab Tests"]
    assert [row.id for row in template.rows()] == [lipid_id]
    trigger = catalog.find_trigger(TriggerKind.LIST_ROW_ID, lipid_id)
    assert trigger.purpose == TriggerPurpose.LAB_SELECTION
    assert trigger.label == "Lipid Profile"


@pytest.mark.asyncio
async def test_enrichment_never_mutates_catalog_template(enricher, catalog, doctors):
    await doctors.create({"name": "Dr. Rao", "specialization": "general"})
    original = catalog.get_template(seed.DOCTOR_LIST_TEMPLATE_ID)

    await enricher.enrich(original)

    assert [row.id for row in original.rows()] == ["dr_sharma", "dr_patel"]


@pytest.mark.asyncio
async def test_existing_row_trigger_is_not_registered_twice(enricher, catalog, doctors):
    doctor = await doctors.create({"name": "Dr. Rao", "specialization": "general"})
    template = catalog.get_template(seed.DOCTOR_LIST_TEMPLATE_ID)

    await enricher.enrich(template)
    await enricher.enrich(template)

    matching = [t for t in catalog.triggers if t.kind == TriggerKind.LIST_ROW_ID and t.value == doctor["id"]]
    assert len(matching) == 1


@pytest.mark.asyncio
async def test_button_menus_pass_through(enricher, catalog):
    welcome = catalog.get_template(seed.WELCOME_TEMPLATE_ID)
    enriched = await enricher.enrich(welcome)
    assert enriched == welcome
    assert enriched is not welcome


def test_enrich_slots_without_schedule_keeps_seeded_buttons(enricher, catalog):
    slots = catalog.get_template(seed.SLOTS_TEMPLATE_ID)
    enriched = enricher.enrich_slots(slots, {"id": "d1", "name": "Dr. Rao"})
    assert [b.id for b in enriched.content.buttons] == ["btn_slot_930", "btn_slot_4pm", "btn_back_doctors"]


def test_enrich_slots_registers_slot_triggers(enricher, catalog):
    slots = catalog.get_template(seed.SLOTS_TEMPLATE_ID)
    doctor = {"id": "d1", "schedule": [
        {"day": "Friday", "startTime": "17:00"},
        {"label": "Saturday late evening clinic"},
        {"day": "Sunday", "startTime": "10:00"},
    ]}

    enriched = enricher.enrich_slots(slots, doctor)

    buttons = enriched.content.buttons
    assert [b.id for b in buttons] == ["btn_slot_d1_fri1700", "btn_slot_d1_saturdaylateeveningclinic", "btn_back_doctors"]
    assert all(len(b.label) <= 20 for b in buttons)
    trigger = catalog.find_trigger(TriggerKind.BUTTON_ID, "btn_slot_d1_fri1700")
    assert trigger.purpose == TriggerPurpose.SLOT_SELECTION
    assert trigger.doctor_id == "d1"
    assert trigger.label == "Fri 17:00"
