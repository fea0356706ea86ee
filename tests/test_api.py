from unittest.mock import Mock

import httpx
import pytest

from hospital_chat.api import create_app
from hospital_chat.core.exceptions import WhatsAppAPIError


@pytest.fixture
def app(container):
    return create_app(container)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def text_envelope(body, sender="919876543210", message_id="wamid.api"):
    return {
        "object": "whatsapp_business_account",
        "entry": [{"changes": [{"field": "messages", "value": {
            "messages": [{"from": sender, "id": message_id, "type": "text", "text": {"body": body}}],
        }}]}],
    }


@pytest.mark.asyncio
async def test_health(client, catalog):
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["transport_configured"] is True
    assert data["catalog_templates"] == len(catalog.templates)
    assert data["catalog_triggers"] == len(catalog.triggers)
    assert data["uptime_seconds"] >= 0
    assert resp.headers["X-Content-Type-Options"] == "nosniff"

    assert (await client.get("/health/ready")).json() == {"status": "ready", "store": True, "transport": True}
    assert (await client.get("/health/live")).json() == {"status": "alive"}


@pytest.mark.asyncio
async def test_readiness_fails_when_store_is_down(client, store):
    store.collection = Mock(side_effect=RuntimeError("store down"))

    resp = await client.get("/health/ready")

    assert resp.status_code == 503
    assert resp.json() == {"status": "unavailable", "store": False, "transport": True}
    assert (await client.get("/health/live")).status_code == 200


@pytest.mark.asyncio
async def test_webhook_verification(client):
    ok = await client.get("/webhook", params={
        "hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "12345",
    })
    assert ok.status_code == 200
    assert ok.text == "12345"

    bad = await client.get("/webhook", params={
        "hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "12345",
    })
    assert bad.status_code == 403


@pytest.mark.asyncio
async def test_webhook_rejects_invalid_json(client):
    resp = await client.post("/webhook", content=b"{nope", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_webhook_acknowledges_and_processes(client, container, sent_payloads):
    await container.patients.create({"name": "Asha", "phoneNumber": "919876543210"})

    resp = await client.post("/webhook", json=text_envelope("Hi"))

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert sent_payloads()[0]["interactive"]["type"] == "button"


@pytest.mark.asyncio
async def test_webhook_acknowledges_foreign_objects(client, transport):
    resp = await client.post("/webhook", json={"object": "page", "entry": []})
    assert resp.status_code == 200
    transport.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_patient_crud(client):
    missing = await client.post("/api/patients", json={"name": "Asha"})
    assert missing.status_code == 400
    assert missing.json()["missing"] == ["phoneNumber"]

    created = await client.post("/api/patients", json={"name": "Asha", "phoneNumber": "9876543210"})
    assert created.status_code == 201
    patient = created.json()["patient"]

    duplicate = await client.post("/api/patients", json={"name": "Asha 2", "phoneNumber": "919876543210"})
    assert duplicate.status_code == 409
    assert duplicate.json()["existing"]["id"] == patient["id"]

    by_phone = await client.get("/api/patients/phone/+91 98765 43210")
    assert by_phone.json()["patient"]["id"] == patient["id"]

    updated = await client.put(f"/api/patients/{patient['id']}", json={"email": "asha@example.com"})
    assert updated.json()["patient"]["email"] == "asha@example.com"

    history = await client.post(f"/api/patients/{patient['id']}/medical-history", json={"type": "allergy"})
    assert history.json()["medicalHistory"][0]["type"] == "allergy"

    listing = await client.get("/api/patients", params={"limit": "abc"})
    assert listing.json()["count"] == 1

    search = await client.get("/api/patients/search/Ash")
    assert search.json()["patients"][0]["id"] == patient["id"]

    deleted = await client.delete(f"/api/patients/{patient['id']}")
    assert deleted.json()["success"] is True
    assert (await client.get("/api/patients/phone/9876543210")).status_code == 404


@pytest.mark.asyncio
async def test_patient_not_found(client):
    assert (await client.get("/api/patients/missing")).status_code == 404
    assert (await client.put("/api/patients/missing", json={"name": "x"})).status_code == 404
    assert (await client.delete("/api/patients/missing")).status_code == 404


@pytest.mark.asyncio
async def test_invalid_json_body(client):
    resp = await client.post("/api/patients", content=b"[1, 2]", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "JSON object expected"


@pytest.mark.asyncio
async def test_doctor_endpoints(client):
    created = await client.post("/api/doctors", json={
        "name": "Dr. Rao", "phoneNumber": "919000000001", "specialization": "cardiology",
    })
    assert created.status_code == 201
    doctor = created.json()["doctor"]
    assert doctor["isAvailable"] is True

    invalid = await client.patch(f"/api/doctors/{doctor['id']}/availability", json={"isAvailable": "no"})
    assert invalid.status_code == 400
    assert invalid.json()["missing"] == ["isAvailable"]

    off = await client.patch(f"/api/doctors/{doctor['id']}/availability", json={"isAvailable": False})
    assert off.json()["doctor"]["isAvailable"] is False
    assert (await client.get("/api/doctors/available/list")).json()["count"] == 0
    assert (await client.get("/api/doctors/specialization/cardiology")).json()["count"] == 0

    schedule = await client.post(f"/api/doctors/{doctor['id']}/schedule", json={"day": "Monday"})
    assert schedule.json()["schedule"][0]["day"] == "Monday"

    assert (await client.get("/api/doctors/phone/9000000001")).json()["doctor"]["id"] == doctor["id"]
    assert (await client.get("/api/doctors/missing")).status_code == 404
    assert (await client.patch("/api/doctors/missing/availability", json={"isAvailable": True})).status_code == 404
    assert (await client.post("/api/doctors/missing/schedule", json={})).status_code == 404


@pytest.mark.asyncio
async def test_flow_endpoints(client):
    created = await client.post("/api/flows", json={"name": "Intake", "flowJson": {"screens": []}})
    assert created.status_code == 201
    flow = created.json()["flow"]

    assert (await client.get(f"/api/flows/{flow['id']}")).json()["flow"]["name"] == "Intake"
    assert (await client.get("/api/flows")).json()["count"] == 1

    response = await client.post("/api/flows/responses", json={
        "flowId": flow["id"], "userPhone": "919876543210", "response": "fine",
    })
    assert response.status_code == 201
    assert (await client.get(f"/api/flows/{flow['id']}/responses")).json()["count"] == 1
    assert (await client.get("/api/flows/responses/user/919876543210")).json()["count"] == 1

    unknown = await client.post("/api/flows/responses", json={
        "flowId": "missing", "userPhone": "919876543210", "response": "fine",
    })
    assert unknown.status_code == 404

    message = await client.post("/api/flows/messages", json={
        "userPhone": "919876543210", "messageType": "text", "content": "hello", "flowId": flow["id"],
    })
    assert message.status_code == 201
    assert (await client.get("/api/flows/messages/user/919876543210")).json()["count"] == 1
    assert (await client.get(f"/api/flows/{flow['id']}/messages")).json()["count"] == 1

    updated = await client.put(f"/api/flows/{flow['id']}", json={"name": "Intake v2"})
    assert updated.json()["flow"]["version"] == 2
    assert (await client.delete(f"/api/flows/{flow['id']}")).status_code == 200
    assert (await client.delete("/api/flows/missing")).status_code == 404


@pytest.mark.asyncio
async def test_booking_lookup_and_checkin(client, container):
    patient = await container.patients.create({"name": "Asha", "phoneNumber": "919876543210"})
    booking = await container.bookings.create_booking(patient["id"], None, "2025-01-15T09:30:00Z")

    fetched = await client.get(f"/api/bookings/{booking['id']}")
    assert fetched.json()["booking"]["status"] == "scheduled"

    checked_in = await client.post(f"/api/bookings/{booking['id']}/checkin")
    assert checked_in.status_code == 200
    assert checked_in.json()["booking"]["status"] == "arrived"

    assert (await client.get("/api/bookings/missing")).status_code == 404
    assert (await client.post("/api/bookings/missing/checkin", json={})).status_code == 404


@pytest.mark.asyncio
async def test_send_prescription(client, sent_payloads):
    resp = await client.post("/api/prescriptions/send", json={
        "phoneNumber": "9876543210",
        "patientName": "Asha",
        "medicineName": "Amoxicillin",
        "dosage": "500mg",
        "frequency": "Twice daily",
        "duration": "5 days",
    })

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["messageId"] == "wamid.test"
    assert data["phoneNumber"] == "919876543210"
    body = sent_payloads()[0]["text"]["body"]
    assert "💊 *Medicine:* Amoxicillin" in body
    assert "🆔 *Patient ID:* N/A" in body


@pytest.mark.asyncio
async def test_send_prescription_missing_fields(client):
    resp = await client.post("/api/prescriptions/send", json={"phoneNumber": "9876543210"})
    assert resp.status_code == 400
    assert resp.json()["missing"] == ["patientName", "medicineName", "dosage", "frequency", "duration"]


@pytest.mark.asyncio
async def test_send_lab_test_transport_failure(client, transport):
    transport.send_message.side_effect = WhatsAppAPIError("Invalid parameter", 400)

    resp = await client.post("/api/prescriptions/send-labtest", json={
        "phoneNumber": "919876543210", "patientName": "Asha", "labTestName": "CBC",
    })

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "error": "Failed to send lab test prescription",
        "details": "Invalid parameter",
    }


@pytest.mark.asyncio
async def test_send_follow_up(client, sent_payloads):
    resp = await client.post("/api/prescriptions/send-followup", json={
        "phoneNumber": "9876543210", "patientName": "Asha", "followUpType": "weeks", "followUpValue": "2",
    })
    assert resp.status_code == 200
    assert resp.json()["data"]["followUpDate"]
    assert "Follow-up scheduled in:* 2 weeks" in sent_payloads()[0]["text"]["body"]

    bad = await client.post("/api/prescriptions/send-followup", json={
        "phoneNumber": "9876543210", "patientName": "Asha", "followUpType": "days", "followUpValue": "soon",
    })
    assert bad.status_code == 400
    assert bad.json()["missing"] == ["followUpValue"]
