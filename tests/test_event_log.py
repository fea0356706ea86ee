import json
from unittest.mock import AsyncMock

import pytest

from hospital_chat.services.resolver import Signal
from hospital_chat.utils.event_log import (
    get_log_path,
    log_event,
    log_transition,
    set_event_id,
    set_log_path,
)

PHONE = "919876543210"


def read_events():
    with open(get_log_path(), "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def without_time(record):
    assert record.pop("at")
    return record


def test_events_carry_current_event_id(tmp_path):
    log_file = tmp_path / "nested" / "events.jsonl"
    set_log_path(log_file)
    set_event_id("wamid.1")

    log_event("transition", {"phone": PHONE})
    log_event("effect_failed", {"phone": PHONE}, event_id="wamid.override")

    assert get_log_path() == log_file
    first, second = read_events()
    assert without_time(first) == {"event_id": "wamid.1", "event": "transition", "phone": PHONE}
    assert second["event_id"] == "wamid.override"


def test_payload_cannot_replace_record_kind():
    set_event_id("wamid.2")

    written = log_event("transition", {"event": "GreetingReceived", "event_id": "forged"})

    assert written["event"] == "transition"
    assert written["event_id"] == "wamid.2"
    assert read_events() == [written]


def test_transition_record_names_conversation_event():
    set_event_id("wamid.3")

    log_transition(PHONE, "hi", "trigger_hi", "GreetingReceived", "none", ["SendTemplate"])

    (record,) = read_events()
    assert record["event"] == "transition"
    assert record["conversation_event"] == "GreetingReceived"
    assert record["reinterpreted"] is False
    assert record["effects"] == ["SendTemplate"]


@pytest.mark.asyncio
async def test_failed_booking_effect_is_logged_and_pending_kept(container):
    await container.bookings.save_pending(PHONE, doctor_id="d1", booking_time="Mon 9:30 AM")
    container.bookings.create_booking = AsyncMock(side_effect=RuntimeError("store down"))

    with pytest.raises(RuntimeError):
        await container.conversation.handle(PHONE, Signal.button("btn_confirm_pay"), "wamid.7")

    failures = [without_time(e) for e in read_events() if e["event"] == "effect_failed"]
    assert failures == [{
        "event_id": "wamid.7",
        "event": "effect_failed",
        "phone": PHONE,
        "effect": "CreateBooking",
        "error": "store down",
    }]
    assert (await container.bookings.get_pending(PHONE)).doctor_id == "d1"
