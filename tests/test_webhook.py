import json
from unittest.mock import AsyncMock, Mock

import pytest

from hospital_chat.core.enums import TriggerKind
from hospital_chat.core.models import InboundMessage
from hospital_chat.services.resolver import Signal
from hospital_chat.services.webhook import (
    WebhookProcessor,
    find_flow_token,
    parse_form_data,
    signal_from_message,
)
from hospital_chat.services.webhook.flow_completion import THANK_YOU_TEXT, patient_fields_from_form

PHONE = "919876543210"


def envelope(*messages, statuses=()):
    return {
        "object": "whatsapp_business_account",
        "entry": [{
            "id": "waba-1",
            "changes": [{
                "field": "messages",
                "value": {
                    "messaging_product": "whatsapp",
                    "metadata": {"phone_number_id": "555"},
                    "messages": list(messages),
                    "statuses": list(statuses),
                },
            }],
        }],
    }


def text_message(body, message_id="wamid.1", sender=PHONE):
    return {"from": sender, "id": message_id, "type": "text", "text": {"body": body}}


def button_message(button_id, title=None, message_id="wamid.2"):
    return {
        "from": PHONE,
        "id": message_id,
        "type": "interactive",
        "interactive": {"type": "button_reply", "button_reply": {"id": button_id, "title": title}},
    }


def flow_message(response, name="registration_form", body="Sent", message_id="wamid.3"):
    return {
        "from": PHONE,
        "id": message_id,
        "type": "interactive",
        "interactive": {
            "type": "nfm_reply",
            "nfm_reply": {"name": name, "body": body, "response_json": json.dumps(response)},
        },
    }


def test_signal_from_message_kinds():
    text = signal_from_message(InboundMessage.model_validate(text_message("  Hi ")))
    assert (text.kind, text.value) == (TriggerKind.KEYWORD_SET, "hi")

    button = signal_from_message(InboundMessage.model_validate(button_message("btn_x", "X")))
    assert (button.kind, button.value, button.title) == (TriggerKind.BUTTON_ID, "btn_x", "X")

    row = signal_from_message(InboundMessage.model_validate({
        "from": PHONE, "type": "interactive",
        "interactive": {"type": "list_reply", "list_reply": {"id": "row_1", "title": "Row"}},
    }))
    assert (row.kind, row.value) == (TriggerKind.LIST_ROW_ID, "row_1")

    image = InboundMessage.model_validate({"from": PHONE, "type": "image"})
    assert signal_from_message(image) is None


def test_parse_form_data_tolerates_garbage():
    assert parse_form_data('{"name": "Asha"}') == {"name": "Asha"}
    assert parse_form_data({"name": "Asha"}) == {"name": "Asha"}
    assert parse_form_data("{not json") == {}
    assert parse_form_data("[1, 2]") == {}
    assert parse_form_data(None) == {}


def test_find_flow_token():
    assert find_flow_token({"flow_token": "flow_token_1"}, None) == "flow_token_1"
    assert find_flow_token({}, "done flow_token_17_abc here") == "flow_token_17_abc"
    assert find_flow_token({}, "nothing") is None


def test_patient_fields_from_form():
    fields = patient_fields_from_form({"text_input": "Asha", "Choose_one": "1_No", "dob": "1990-01-01"})
    assert fields == {"name": "Asha", "gender": "female", "dob": "1990-01-01"}
    assert patient_fields_from_form({"unrelated": 1}) == {}


@pytest.mark.asyncio
async def test_processor_routes_text_and_buttons():
    conversation = Mock()
    conversation.handle = AsyncMock()
    processor = WebhookProcessor(conversation, Mock())

    handled = await processor.process(envelope(text_message("Hi"), button_message("btn_confirm_pay")))

    assert handled == 2
    first, second = conversation.handle.await_args_list
    assert first.args[0] == PHONE
    assert first.args[1].value == "hi"
    assert first.args[2] == "wamid.1"
    assert second.args[1].value == "btn_confirm_pay"


@pytest.mark.asyncio
async def test_processor_ignores_other_objects_and_fields():
    conversation = Mock()
    conversation.handle = AsyncMock()
    processor = WebhookProcessor(conversation, Mock())

    assert await processor.process({"object": "page", "entry": []}) == 0
    statuses_only = envelope(statuses=[{"id": "wamid.9", "recipient_id": PHONE, "status": "read"}])
    assert await processor.process(statuses_only) == 0
    other_field = envelope(text_message("Hi"))
    other_field["entry"][0]["changes"][0]["field"] = "account_update"
    assert await processor.process(other_field) == 0
    assert await processor.process({"object": "whatsapp_business_account", "entry": "oops"}) == 0
    conversation.handle.assert_not_awaited()


@pytest.mark.asyncio
async def test_processor_skips_repeated_message_id():
    conversation = Mock()
    conversation.handle = AsyncMock()
    processor = WebhookProcessor(conversation, Mock())

    await processor.process(envelope(text_message("Hi", "wamid.same")))
    await processor.process(envelope(text_message("Hi", "wamid.same")))

    assert conversation.handle.await_count == 1


@pytest.mark.asyncio
async def test_duplicate_tracking_forgets_least_recent_sender():
    conversation = Mock()
    conversation.handle = AsyncMock()
    processor = WebhookProcessor(conversation, Mock(), max_tracked_senders=2)

    await processor.process(envelope(text_message("Hi", "wamid.a", "911111111111")))
    await processor.process(envelope(text_message("Hi", "wamid.b", "912222222222")))
    await processor.process(envelope(text_message("Hi", "wamid.c", "913333333333")))
    # Still tracked, so still skipped.
    await processor.process(envelope(text_message("Hi", "wamid.c", "913333333333")))
    # Evicted, so handled again.
    await processor.process(envelope(text_message("Hi", "wamid.a", "911111111111")))

    assert conversation.handle.await_count == 4
    assert list(processor._last_msgid) == ["913333333333", "911111111111"]


@pytest.mark.asyncio
async def test_one_failing_message_does_not_stop_the_rest():
    conversation = Mock()
    conversation.handle = AsyncMock(side_effect=[RuntimeError("boom"), None])
    processor = WebhookProcessor(conversation, Mock())

    body = envelope(text_message("Hi", "wamid.a"), text_message("Hi", "wamid.b", "911111111111"))
    handled = await processor.process(body)

    assert handled == 1
    assert conversation.handle.await_count == 2


@pytest.mark.asyncio
async def test_inbound_messages_are_recorded(container):
    await container.webhook.process(envelope(text_message("help")))

    records = await container.flows.messages.where("direction", "inbound").get()
    assert len(records) == 1
    assert records[0]["content"] == "help"
    assert records[0]["isResponse"] is True
    assert records[0]["whatsappMessageId"] == "wamid.1"


@pytest.mark.asyncio
async def test_registration_flow_completion(container, sent_payloads):
    await container.conversation.handle(PHONE, Signal.text("hi"))
    token = sent_payloads()[0]["interactive"]["action"]["parameters"]["flow_token"]

    form = {"flow_token": token, "name": "Asha Verma", "gender": "female", "email": "asha@example.com"}
    await container.webhook.process(envelope(flow_message(form)))

    tracking = (await container.store.collection("flowTrackings").all())[0]
    assert tracking["status"] == "completed"
    response = (await container.flows.responses_for_user(PHONE))[0]
    assert tracking["responseId"] == response["id"]
    assert response["flowId"] == container.settings.registration_flow_id
    assert response["responseType"] == "flow_completion"

    patient = await container.patients.get_by_phone(PHONE)
    assert patient["name"] == "Asha Verma"
    assert patient["email"] == "asha@example.com"

    assert sent_payloads()[-1]["text"]["body"] == THANK_YOU_TEXT
    contents = [m["content"] for m in await container.flows.messages_for_user(PHONE)]
    assert any(str(c).startswith("✅ Registration Complete!") for c in contents)
    assert len(await container.store.collection("webhookMessages").all()) == 1


@pytest.mark.asyncio
async def test_appointment_flow_books_first_matching_doctor(container):
    doctor = await container.doctors.create(
        {"name": "Dr. Rao", "phoneNumber": "919000000001", "specialization": "dermatology"}
    )

    await container.webhook.process(envelope(flow_message(
        {"name": "Asha", "specialization": "dermatology", "date": "2025-02-01T10:00:00Z"},
        name="appointment_form",
    )))

    patient = await container.patients.get_by_phone(PHONE)
    booking = (await container.bookings.for_patient(patient["id"]))[0]
    assert booking["doctorId"] == doctor["id"]
    assert booking["bookingTime"] == "2025-02-01T10:00:00+00:00"
    assert booking["meta"]["source"] == "whatsapp_flow"


@pytest.mark.asyncio
async def test_urgent_symptoms_recorded_in_history(container):
    await container.patients.create({"name": "Asha", "phoneNumber": PHONE})

    await container.webhook.process(envelope(flow_message(
        {"symptoms": ["chest pain"], "urgency": "urgent"}, name="symptom_checker",
    )))

    patient = await container.patients.get_by_phone(PHONE)
    assert patient["medicalHistory"][0]["needsFollowUp"] is True
    contents = [m["content"] for m in await container.flows.messages_for_user(PHONE)]
    assert any(str(c).startswith("🚨 URGENT") for c in contents)


@pytest.mark.asyncio
async def test_unparseable_form_still_acknowledged(container, sent_payloads):
    message = flow_message({}, name="survey")
    message["interactive"]["nfm_reply"]["response_json"] = "{broken"

    await container.webhook.process(envelope(message))

    assert sent_payloads()[-1]["text"]["body"] == THANK_YOU_TEXT
    response = (await container.flows.responses_for_user(PHONE))[0]
    assert response["response"] == {}
