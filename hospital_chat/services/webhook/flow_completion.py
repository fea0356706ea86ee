"""
Handling of completed external forms (``nfm_reply`` messages).
"""

import json
import re
from typing import Any, Dict, List, Optional

from ...core.enums import Gender
from ...core.models import InboundMessage
from ...utils.logging import get_logger

logger = get_logger("hospital.flow_completion")

FLOW_TOKEN_RE = re.compile(r"flow_token_[0-9a-zA-Z_-]*", re.IGNORECASE)

THANK_YOU_TEXT = "Thanks! We received your response and saved it."


def parse_form_data(raw: Any) -> Dict[str, Any]:
    """Decode the form payload; anything unparseable becomes an empty form."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Could not parse flow response JSON: %r", raw)
        return {}
    if not isinstance(data, dict):
        logger.warning("Flow response JSON is not an object: %r", raw)
        return {}
    return data


def find_flow_token(form: Dict[str, Any], body: Optional[str]) -> Optional[str]:
    if form.get("flow_token"):
        return str(form["flow_token"])
    if body:
        match = FLOW_TOKEN_RE.search(str(body))
        if match:
            return match.group(0)
    return None


def patient_fields_from_form(form: Dict[str, Any]) -> Dict[str, Any]:
    """Map free-form field names onto patient profile fields."""
    fields: Dict[str, Any] = {}
    name = form.get("name") or form.get("full_name") or form.get("text_input") or form.get("patient_name")
    if name:
        fields["name"] = name
    gender_raw = form.get("Choose_one") or form.get("choose_one") or form.get("gender") or form.get("sex")
    if gender_raw:
        fields["gender"] = Gender.from_form_value(gender_raw).value
    if form.get("email"):
        fields["email"] = form["email"]
    dob = form.get("date_of_birth") or form.get("dob")
    if dob:
        fields["dob"] = dob
    return fields


class FlowCompletionHandler:
    """Stores a completed form, closes its launch record and acts on its contents."""

    def __init__(self, flows, patients, doctors, bookings, dispatcher):
        self.flows = flows
        self.patients = patients
        self.doctors = doctors
        self.bookings = bookings
        self.dispatcher = dispatcher

    async def handle(self, message: InboundMessage) -> Optional[Dict[str, Any]]:
        reply = message.interactive.nfm_reply if message.interactive else None
        if reply is None:
            return None
        phone = message.sender
        form = parse_form_data(reply.response_json)
        logger.info("Flow response from %s (flow=%s, fields=%s)", phone, reply.name, sorted(form))

        token = find_flow_token(form, reply.body)
        tracking = await self._safe(self.flows.find_tracking(token, phone), "tracking lookup")

        try:
            await self.flows.record_webhook_message(message.model_dump(by_alias=True))
        except Exception:
            logger.exception("Failed to persist raw webhook message from %s", phone)

        response = await self._safe(self.flows.create_response({
            "userPhone": phone,
            "flowName": reply.name,
            "flowId": (tracking or {}).get("flowId"),
            "response": form,
            "responseType": "flow_completion",
            "rawResponse": reply.response_json,
            "messageId": message.id,
        }), "flow response save")

        if tracking is not None:
            await self._safe(
                self.flows.complete_tracking(tracking["id"], (response or {}).get("id")),
                "tracking completion",
            )

        await self.dispatcher.deliver_text(phone, THANK_YOU_TEXT)

        await self._safe(self._upsert_patient(phone, form), "patient upsert")
        await self._safe(self.process_by_type(reply.name, form, phone), "flow type processing")
        return response

    async def _upsert_patient(self, phone: str, form: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        fields = patient_fields_from_form(form)
        if not fields:
            return None
        patient = await self.patients.get_by_phone(phone)
        if patient is not None:
            return await self.patients.update(patient["id"], fields)
        return await self.patients.create({**fields, "phoneNumber": phone})

    async def process_by_type(self, flow_name: Optional[str], form: Dict[str, Any], phone: str) -> None:
        name = (flow_name or "").lower()
        if "appointment" in name:
            await self._appointment(form, phone)
        elif "symptom" in name:
            await self._symptoms(form, phone)
        elif "registration" in name:
            await self._registration(form, phone)
        else:
            logger.info("No specific processor for flow %r", flow_name)

    async def _appointment(self, form: Dict[str, Any], phone: str) -> None:
        specialization = form.get("specialization") or "general"
        patient_name = form.get("name") or form.get("patient_name")

        patient = await self.patients.get_by_phone(phone)
        if patient is None and patient_name:
            patient = await self.patients.create({"name": patient_name, "phoneNumber": phone})

        doctors = await self.doctors.by_specialization(specialization)
        if not doctors:
            await self.flows.create_message({
                "userPhone": phone,
                "messageType": "text",
                "content": (
                    f"⚠️ Sorry, no doctors are currently available for {specialization}. "
                    "Please try again later or contact our reception."
                ),
                "patientId": (patient or {}).get("id"),
            })
            return

        doctor = doctors[0]
        booking = await self.bookings.create_booking(
            (patient or {}).get("id"),
            doctor["id"],
            form.get("date") or form.get("preferred_date"),
            {"source": "whatsapp_flow", "specialization": specialization},
        )
        await self.flows.create_message({
            "userPhone": phone,
            "messageType": "text",
            "content": (
                "🏥 Appointment Booked!\n\n"
                f"👤 Patient: {patient_name or (patient or {}).get('name') or 'Patient'}\n"
                f"👨‍⚕️ Doctor: {doctor.get('name')}\n"
                f"🏥 Department: {doctor.get('specialization')}\n"
                f"📞 Contact: {doctor.get('phoneNumber')}\n\n"
                "Your appointment has been scheduled. The doctor will contact you soon."
            ),
            "patientId": (patient or {}).get("id"),
            "doctorId": doctor["id"],
            "bookingId": booking["id"],
        })

    async def _symptoms(self, form: Dict[str, Any], phone: str) -> None:
        symptoms: List[str] = form.get("symptoms") or []
        if isinstance(symptoms, str):
            symptoms = [symptoms]
        urgency = form.get("urgency") or "normal"

        patient = await self.patients.get_by_phone(phone)
        if patient is not None and symptoms:
            await self.patients.add_medical_history(patient["id"], {
                "type": "symptom_report",
                "symptoms": symptoms,
                "urgency": urgency,
                "reportedVia": "whatsapp_flow",
                "needsFollowUp": urgency == "urgent",
            })

        if urgency == "urgent":
            content = (
                "🚨 URGENT: Based on your symptoms, please seek immediate medical attention. "
                "Call emergency services or visit the nearest hospital.\n\n📞 Emergency: 108"
            )
        else:
            listed = "\n".join(f"• {s}" for s in symptoms)
            content = (
                f"🩺 Thank you for reporting your symptoms. Based on your input:\n\n{listed}\n\n"
                "We recommend scheduling an appointment with a doctor. "
                "Would you like to book an appointment now?"
            )
        await self.flows.create_message({
            "userPhone": phone,
            "messageType": "text",
            "content": content,
            "patientId": (patient or {}).get("id"),
        })

    async def _registration(self, form: Dict[str, Any], phone: str) -> None:
        data = {
            "name": form.get("name") or form.get("full_name"),
            "phoneNumber": phone,
            "email": form.get("email"),
            "dateOfBirth": form.get("date_of_birth") or form.get("dob"),
            "gender": form.get("gender"),
            "address": form.get("address"),
            "emergencyContact": {
                "name": form.get("emergency_contact_name"),
                "phoneNumber": form.get("emergency_contact_phone"),
                "relationship": form.get("emergency_contact_relationship"),
            },
        }
        data = {key: value for key, value in data.items() if value is not None}

        existing = await self.patients.get_by_phone(phone)
        if existing is not None:
            patient = await self.patients.update(existing["id"], data)
            verb = "updated"
        else:
            patient = await self.patients.create(data)
            verb = "created"

        await self.flows.create_message({
            "userPhone": phone,
            "messageType": "text",
            "content": (
                "✅ Registration Complete!\n\n"
                f"👤 Name: {patient.get('name')}\n"
                f"📞 Phone: {patient.get('phoneNumber')}\n"
                f"📧 Email: {patient.get('email') or 'Not provided'}\n\n"
                f"Your patient profile has been {verb}. You can now book appointments and access our services."
            ),
            "patientId": patient["id"],
        })

    @staticmethod
    async def _safe(awaitable, what: str):
        try:
            return await awaitable
        except Exception:
            logger.exception("Flow completion step failed: %s", what)
            return None
