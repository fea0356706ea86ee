from unittest.mock import AsyncMock, Mock

import pytest

from hospital_chat.core.enums import DeliveryStatus, TemplateKind
from hospital_chat.core.exceptions import TransportNotConfigured, UnsupportedTemplateKind, WhatsAppAPIError
from hospital_chat.core.models import SendResult, Template, TemplateContent
from hospital_chat.services.catalog import seed
from hospital_chat.services.dispatch import (
    OutboundDispatcher,
    render_flow_payload,
    render_payload,
    template_to_text,
)
from hospital_chat.services.flow import FlowService

TO = "919876543210"
OK = SendResult(message_id="wamid.ok", timestamp="2025-01-15T09:00:00+00:00")


@pytest.fixture
def flows(store):
    return FlowService(store)


def test_button_menu_payload(catalog):
    payload = render_payload(catalog.get_template(seed.WELCOME_TEMPLATE_ID), TO)

    assert payload["messaging_product"] == "whatsapp"
    assert payload["to"] == TO
    assert payload["type"] == "interactive"
    interactive = payload["interactive"]
    assert interactive["type"] == "button"
    assert interactive["header"] == {"type": "text", "text": "Welcome to Hospital Services! 🏥"}
    assert interactive["footer"] == {"text": "Powered by Hospital Management System"}
    assert interactive["action"]["buttons"][0] == {
        "type": "reply",
        "reply": {"id": "btn_book_appointment", "title": "📅 Book Appointment"},
    }
    assert len(interactive["action"]["buttons"]) == 3


def test_list_menu_payload(catalog):
    payload = render_payload(catalog.get_template(seed.LAB_LIST_TEMPLATE_ID), TO)

    action = payload["interactive"]["action"]
    assert payload["interactive"]["type"] == "list"
    assert action["button"] == "Select Test"
    assert [s["title"] for s in action["sections"]] == ["Common Tests", "Specialized Tests"]
    assert action["sections"][1]["rows"] == [
        {"id": "test_cardiac", "title": "Cardiac Profile", "description": "Heart health assessment - ₹800"}
    ]


def test_plain_text_payload(catalog):
    payload = render_payload(catalog.get_template(seed.NEW_PATIENT_FORM_TEMPLATE_ID), TO)
    assert payload["type"] == "text"
    assert payload["text"]["body"].startswith("To register as a new patient")


def test_body_doctor_rewritten_to_match_header(catalog):
    slots = catalog.get_template(seed.SLOTS_TEMPLATE_ID).clone()
    slots.content.header = "Dr. Patel - Available Slots 📅"
    slots.content.body = "Slots for\nDr. Sharma\nthis week"

    payload = render_payload(slots, TO)
    assert payload["interactive"]["body"]["text"] == "Slots for\nDr. Patel\nthis week"


def test_unsupported_kind_raises():
    template = Template.model_construct(
        id="odd",
        name="odd",
        kind="carousel",
        content=TemplateContent(body="x"),
    )
    with pytest.raises(UnsupportedTemplateKind):
        render_payload(template, TO)


def test_flow_payload_carries_token():
    payload = render_flow_payload(TO, "flow-1", "flow_token_abc", "Please register")
    params = payload["interactive"]["action"]["parameters"]
    assert payload["interactive"]["type"] == "flow"
    assert params["flow_id"] == "flow-1"
    assert params["flow_token"] == "flow_token_abc"
    assert params["flow_action_payload"]["data"]["user_phone"] == TO


def test_template_to_text_lists_options(catalog):
    book = catalog.get_template(seed.BOOK_TEMPLATE_ID)
    text = template_to_text(book)
    assert text.startswith(book.content.header)
    assert f"1. {book.content.buttons[0].label}\n2. {book.content.buttons[1].label}" in text
    assert text.endswith("Select your preferred option")


@pytest.mark.asyncio
async def test_deliver_records_sent_message(catalog, flows):
    transport = Mock()
    transport.send_message = AsyncMock(return_value=OK)
    dispatcher = OutboundDispatcher(transport, flows)

    outcome = await dispatcher.deliver(catalog.get_template(seed.BOOK_TEMPLATE_ID), TO, patientId="p1")

    assert outcome.status == DeliveryStatus.SENT
    assert outcome.delivered
    record = (await flows.messages_for_user(TO))[0]
    assert record["status"] == "sent"
    assert record["messageType"] == "interactive"
    assert record["templateId"] == seed.BOOK_TEMPLATE_ID
    assert record["whatsappMessageId"] == "wamid.ok"
    assert record["patientId"] == "p1"
    assert record["direction"] == "outbound"


@pytest.mark.asyncio
async def test_rejected_template_falls_back_to_plain_text(catalog, flows):
    transport = Mock()
    transport.send_message = AsyncMock(side_effect=[WhatsAppAPIError("Invalid parameter", 400), OK])
    dispatcher = OutboundDispatcher(transport, flows)

    outcome = await dispatcher.deliver(catalog.get_template(seed.BOOK_TEMPLATE_ID), TO)

    assert outcome.status == DeliveryStatus.FALLBACK
    retry = transport.send_message.await_args_list[1].args[0]
    assert retry["type"] == "text"
    assert retry["text"]["body"] == template_to_text(catalog.get_template(seed.BOOK_TEMPLATE_ID))
    record = (await flows.messages_for_user(TO))[0]
    assert record["status"] == "fallback"


@pytest.mark.asyncio
async def test_total_failure_is_recorded(catalog, flows):
    transport = Mock()
    transport.send_message = AsyncMock(side_effect=WhatsAppAPIError("Service unavailable", 503))
    dispatcher = OutboundDispatcher(transport, flows)

    outcome = await dispatcher.deliver(catalog.get_template(seed.BOOK_TEMPLATE_ID), TO)

    assert outcome.status == DeliveryStatus.RECORDED
    assert not outcome.delivered
    assert transport.send_message.await_count == 2
    record = (await flows.messages_for_user(TO))[0]
    assert record["status"] == "failed"
    assert record["error"] == "Service unavailable"


@pytest.mark.asyncio
async def test_unconfigured_transport_skips_text_retry(catalog, flows):
    transport = Mock()
    transport.send_message = AsyncMock(side_effect=TransportNotConfigured("not configured"))
    dispatcher = OutboundDispatcher(transport, flows)

    outcome = await dispatcher.deliver(catalog.get_template(seed.BOOK_TEMPLATE_ID), TO)

    assert outcome.status == DeliveryStatus.RECORDED
    assert transport.send_message.await_count == 1


@pytest.mark.asyncio
async def test_failure_without_message_store_reports_failed(catalog):
    transport = Mock()
    transport.send_message = AsyncMock(side_effect=WhatsAppAPIError("down"))
    dispatcher = OutboundDispatcher(transport)

    outcome = await dispatcher.deliver(catalog.get_template(seed.BOOK_TEMPLATE_ID), TO)
    assert outcome.status == DeliveryStatus.FAILED


@pytest.mark.asyncio
async def test_text_without_recipient_is_only_recorded(flows):
    transport = Mock()
    transport.send_message = AsyncMock(return_value=OK)
    dispatcher = OutboundDispatcher(transport, flows)

    outcome = await dispatcher.deliver_text(None, "Patient has arrived", doctorId="d1")

    assert outcome.status == DeliveryStatus.RECORDED
    transport.send_message.assert_not_awaited()
    records = await flows.messages.where("doctorId", "d1").get()
    assert records[0]["content"] == "Patient has arrived"
    assert records[0]["status"] == "recorded"


@pytest.mark.asyncio
async def test_unsupported_template_falls_back_to_text(flows):
    transport = Mock()
    transport.send_message = AsyncMock(return_value=OK)
    dispatcher = OutboundDispatcher(transport, flows)
    template = Template.model_construct(
        id="odd",
        name="odd",
        kind="carousel",
        content=TemplateContent(body="Only text survives"),
    )

    outcome = await dispatcher.deliver(template, TO)

    assert outcome.status == DeliveryStatus.FALLBACK
    assert transport.send_message.await_args.args[0]["text"]["body"] == "Only text survives"


def test_template_kind_values():
    assert {kind.value for kind in TemplateKind} == {"plain_text", "button_menu", "list_menu"}
