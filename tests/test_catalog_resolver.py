from unittest.mock import AsyncMock, Mock

import pytest

from hospital_chat.core.enums import NextAction, PublicationStatus, TriggerKind, TriggerPurpose
from hospital_chat.core.models import Trigger
from hospital_chat.services.booking import BookingService
from hospital_chat.services.catalog import TemplateCatalog, seed
from hospital_chat.services.doctor import DoctorService
from hospital_chat.services.resolver import Signal, TriggerResolver


def test_seeded_welcome_menu(catalog):
    welcome = catalog.get_published(seed.WELCOME_TEMPLATE_ID)
    assert welcome.content.header == "Welcome to Hospital Services! 🏥"
    assert [b.id for b in welcome.content.buttons] == [
        "btn_book_appointment", "btn_lab_tests", "btn_emergency", "btn_checkin",
    ]


def test_every_seeded_trigger_target_exists_or_is_an_action(catalog):
    for trigger in catalog.triggers:
        if trigger.next_action == NextAction.SEND_TEMPLATE:
            assert catalog.get_template(trigger.target_template_id) is not None, trigger.id


def test_add_template_mints_a_new_id(catalog):
    original = catalog.get_template(seed.PAYMENT_TEMPLATE_ID)
    added = catalog.add_template(original.clone())
    assert added.id != original.id
    assert added.id.startswith("msg_")
    assert catalog.get_template(added.id) is added
    assert catalog.get_template(seed.PAYMENT_TEMPLATE_ID) is original


def test_unpublished_template_is_not_served(catalog):
    draft = catalog.get_template(seed.EMERGENCY_TEMPLATE_ID).model_copy(
        update={"status": PublicationStatus.DRAFT}
    )
    stored = catalog.add_template(draft)
    assert catalog.get_template(stored.id) is not None
    assert catalog.get_published(stored.id) is None


def test_latest_trigger_for_a_button_wins(catalog):
    catalog.add_trigger(Trigger(id="t_old", kind=TriggerKind.BUTTON_ID, value="btn_x", target_template_id="a"))
    catalog.add_trigger(Trigger(id="t_new", kind=TriggerKind.BUTTON_ID, value="btn_x", target_template_id="b"))

    assert catalog.find_trigger(TriggerKind.BUTTON_ID, "btn_x").id == "t_new"
    assert [t.id for t in catalog.triggers].count("t_old") == 1


@pytest.mark.asyncio
async def test_resolver_prefers_most_recent_registration(catalog):
    resolver = TriggerResolver(catalog)
    catalog.add_trigger(Trigger(
        id="trigger_payment_done_1", kind=TriggerKind.BUTTON_ID,
        value="btn_payment_done", target_template_id=seed.CONFIRMED_TEMPLATE_ID,
    ))

    resolution = await resolver.resolve(Signal.button("btn_payment_done"))
    assert resolution.trigger.id == "trigger_payment_done_1"
    assert resolution.next_template.id == seed.CONFIRMED_TEMPLATE_ID


@pytest.mark.asyncio
async def test_seeded_payment_done_button_confirms_nothing(catalog):
    resolution = await TriggerResolver(catalog).resolve(Signal.button("btn_payment_done"))
    assert resolution.trigger.id == "trigger_payment_done"
    assert resolution.trigger.purpose == TriggerPurpose.GENERAL
    assert resolution.next_template.id == seed.WELCOME_TEMPLATE_ID


@pytest.mark.asyncio
async def test_keyword_matching(catalog):
    resolver = TriggerResolver(catalog)

    greeting = await resolver.resolve(Signal.text("Hello there"))
    assert greeting.trigger.id == "trigger_hi"
    assert greeting.trigger.purpose == TriggerPurpose.GREETING

    arrived = await resolver.resolve(Signal.text("I've arrived"))
    assert arrived.trigger.next_action == NextAction.MARK_ARRIVED

    for text in ("checkin", "Check in please", "CHECK-IN"):
        checkin = await resolver.resolve(Signal.text(text))
        assert checkin.trigger.id == "trigger_arrived", text
        assert checkin.trigger.next_action == NextAction.MARK_ARRIVED

    assert await resolver.resolve(Signal.text("qwerty")) is None
    assert await resolver.resolve(Signal.text("")) is None


@pytest.mark.asyncio
async def test_button_resolves_with_next_template(catalog):
    resolution = await TriggerResolver(catalog).resolve(Signal.button("btn_confirm_pay"))
    assert resolution.trigger.purpose == TriggerPurpose.CONFIRM_AND_PAY
    assert resolution.next_template.id == seed.PAYMENT_TEMPLATE_ID
    assert not resolution.reinterpreted


@pytest.mark.asyncio
async def test_unknown_row_id_reinterpreted_as_doctor(catalog, store):
    doctors = DoctorService(store)
    doctor = await doctors.create({"name": "Dr. Kavya Rao", "phoneNumber": "9000000001", "specialization": "general"})

    resolution = await TriggerResolver(catalog, doctors).resolve(Signal.list_row(doctor["id"]))
    assert resolution.reinterpreted
    assert resolution.trigger.purpose == TriggerPurpose.DOCTOR_SELECTION
    assert resolution.trigger.doctor_id == doctor["id"]
    assert resolution.trigger.label == "Dr. Kavya Rao"
    assert resolution.next_template.id == seed.SLOTS_TEMPLATE_ID


@pytest.mark.asyncio
async def test_unknown_slot_button_reinterpreted(catalog, store):
    resolver = TriggerResolver(catalog, DoctorService(store), BookingService(store))
    resolution = await resolver.resolve(Signal.button("btn_slot_fri_5pm", "Fri 5:00 PM"))
    assert resolution.trigger.purpose == TriggerPurpose.SLOT_SELECTION
    assert resolution.trigger.label == "Fri 5:00 PM"
    assert resolution.next_template.id == seed.CONFIRM_TEMPLATE_ID


@pytest.mark.asyncio
async def test_unknown_row_id_reinterpreted_as_booking(catalog, store):
    bookings = BookingService(store)
    booking = await bookings.create_booking("p1", "d1", "2025-01-15T09:30:00Z")

    resolver = TriggerResolver(catalog, DoctorService(store), bookings)
    resolution = await resolver.resolve(Signal.list_row(booking["id"]))
    assert resolution.trigger.next_action == NextAction.MARK_ARRIVED_SELECTED
    assert resolution.trigger.booking_id == booking["id"]
    assert resolution.next_template is None


@pytest.mark.asyncio
async def test_reinterpretation_survives_lookup_failure(catalog):
    doctors = Mock()
    doctors.get_by_id = AsyncMock(side_effect=RuntimeError("store down"))
    resolver = TriggerResolver(catalog, doctors)

    assert await resolver.resolve(Signal.list_row("nobody")) is None


def test_custom_registration_flow_id():
    catalog = TemplateCatalog(registration_flow_id="flow-123")
    by_id = {t.id: t for t in catalog.triggers}
    assert by_id["trigger_hi"].external_flow_id == "flow-123"
    assert by_id["trigger_new_patient"].external_flow_id == "flow-123"
