"""
One-shot prescription, lab test and follow-up notifications.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ...core.exceptions import ExternalAPIError, ValidationFailed
from ...utils.date import DateParser, now_utc
from ...utils.logging import get_logger
from ...utils.phone import PhoneNumberParser
from ...utils.validation import require_fields
from .common import json_body

logger = get_logger("hospital.prescriptions")


def prescription_text(data: Dict[str, Any], issued_at: str) -> str:
    return (
        "🏥 *Prescription Details*\n\n"
        f"👤 *Patient:* {data['patientName']}\n"
        f"🆔 *Patient ID:* {data.get('patientId') or 'N/A'}\n\n"
        f"💊 *Medicine:* {data['medicineName']}\n"
        f"📋 *Dosage:* {data['dosage']}\n"
        f"⏰ *Frequency:* {data['frequency']}\n"
        f"📅 *Duration:* {data['duration']}\n\n"
        "⚠️ *Important Instructions:*\n"
        "- Take medicine as prescribed\n"
        "- Complete the full course\n"
        "- Contact doctor if you experience any side effects\n\n"
        f"_Prescribed on: {issued_at}_\n\n"
        "For any queries, please contact your healthcare provider."
    )


def lab_test_text(data: Dict[str, Any], issued_at: str) -> str:
    notes = f"📝 *Notes:* {data['notes']}\n" if data.get("notes") else ""
    return (
        "🏥 *Lab Test Prescription*\n\n"
        f"👤 *Patient:* {data['patientName']}\n"
        f"🆔 *Patient ID:* {data.get('patientId') or 'N/A'}\n\n"
        f"🧪 *Lab Test:* {data['labTestName']}\n"
        f"{notes}\n"
        "⚠️ *Instructions:*\n"
        "- Please visit the lab for sample collection\n"
        "- Fasting may be required for certain tests\n"
        "- Carry this prescription and your ID\n\n"
        f"_Prescribed on: {issued_at}_\n\n"
        "For any queries, please contact your healthcare provider."
    )


def follow_up_text(data: Dict[str, Any], follow_up_date: str, issued_at: str) -> str:
    notes = f"📝 *Notes:* {data['notes']}\n" if data.get("notes") else ""
    return (
        "🏥 *Follow-Up Appointment Reminder*\n\n"
        f"👤 *Patient:* {data['patientName']}\n"
        f"🆔 *Patient ID:* {data.get('patientId') or 'N/A'}\n\n"
        f"📅 *Follow-up scheduled in:* {data['followUpValue']} {data['followUpType']}\n"
        f"📆 *Approximate Date:* {follow_up_date}\n"
        f"{notes}\n"
        "⚠️ *Reminder:*\n"
        "- Please schedule your appointment\n"
        "- Bring previous prescriptions and reports\n"
        "- Contact us to confirm your appointment\n\n"
        f"_Scheduled on: {issued_at}_\n\n"
        "For appointment booking, please contact your healthcare provider."
    )


class PrescriptionsHandler:
    """Plain-text notifications sent straight through the transport."""

    def __init__(self, dispatcher, date_parser: Optional[DateParser] = None, country_code: str = "91"):
        self.dispatcher = dispatcher
        self.date_parser = date_parser or DateParser()
        self.country_code = country_code
        self.router = APIRouter()
        self._setup_routes()

    def _format_phone(self, phone: str) -> str:
        formatted = PhoneNumberParser.to_whatsapp_format(phone, self.country_code)
        if not formatted:
            raise ValidationFailed(["phoneNumber"], "phoneNumber must contain digits")
        return formatted

    async def _send(self, phone: str, body: str, what: str, details: Dict[str, Any]):
        logger.info("Sending %s to %s", what, phone)
        try:
            result = await self.dispatcher.send_text(phone, body)
        except ExternalAPIError as e:
            logger.error("Failed to send %s to %s: %s", what, phone, e)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"success": False, "error": f"Failed to send {what}", "details": str(e)},
            )
        return {
            "success": True,
            "data": {
                "messageId": result.message_id,
                "phoneNumber": phone,
                **details,
                "timestamp": result.timestamp,
            },
            "message": f"{what[0].upper()}{what[1:]} sent successfully via WhatsApp",
        }

    def _issued_at(self) -> str:
        return self.date_parser.format_local(now_utc())

    def _setup_routes(self):

        @self.router.post("/send")
        async def send_prescription(request: Request):
            data = await json_body(request)
            require_fields(data, ["phoneNumber", "patientName", "medicineName", "dosage", "frequency", "duration"])
            phone = self._format_phone(data["phoneNumber"])
            return await self._send(
                phone,
                prescription_text(data, self._issued_at()),
                "prescription",
                {"patientName": data["patientName"], "medicineName": data["medicineName"]},
            )

        @self.router.post("/send-labtest")
        async def send_lab_test(request: Request):
            data = await json_body(request)
            require_fields(data, ["phoneNumber", "patientName", "labTestName"])
            phone = self._format_phone(data["phoneNumber"])
            return await self._send(
                phone,
                lab_test_text(data, self._issued_at()),
                "lab test prescription",
                {"patientName": data["patientName"], "labTestName": data["labTestName"]},
            )

        @self.router.post("/send-followup")
        async def send_follow_up(request: Request):
            data = await json_body(request)
            require_fields(data, ["phoneNumber", "patientName", "followUpType", "followUpValue"])
            phone = self._format_phone(data["phoneNumber"])
            try:
                amount = int(data["followUpValue"])
            except (TypeError, ValueError):
                raise ValidationFailed(["followUpValue"], "followUpValue must be a whole number")

            follow_up = now_utc()
            if data["followUpType"] == "days":
                follow_up += timedelta(days=amount)
            elif data["followUpType"] == "weeks":
                follow_up += timedelta(weeks=amount)

            return await self._send(
                phone,
                follow_up_text(data, self.date_parser.format_local_date(follow_up), self._issued_at()),
                "follow-up reminder",
                {"patientName": data["patientName"], "followUpDate": follow_up.isoformat()},
            )
