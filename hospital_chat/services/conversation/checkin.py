"""
Arrival handling shared by the chat check-in and the REST check-in.
"""

from typing import Any, Dict, Optional, Tuple

from ...core.models import DeliveryOutcome
from ...utils.logging import get_logger

logger = get_logger("hospital.checkin")


def patient_arrival_text(patient_name: Optional[str], doctor_name: Optional[str], room: Optional[str]) -> str:
    return (
        f"{patient_name or 'Patient'}, we've registered your arrival. "
        "Please proceed to the reception/desk. "
        f"Doctor: {doctor_name or 'Assigned doctor'}. "
        f"Room: {room or 'Please check at reception'}."
    )


def doctor_arrival_text(patient_name: Optional[str], booking_id: str) -> str:
    return f"✅ {patient_name or 'Patient'} has checked in for booking {booking_id}. Please attend to them."


class CheckInService:
    """Marks bookings arrived and tells the patient and the doctor."""

    def __init__(self, bookings, patients, doctors, dispatcher):
        self.bookings = bookings
        self.patients = patients
        self.doctors = doctors
        self.dispatcher = dispatcher

    async def check_in(
        self,
        booking_id: str,
        arrival_location: Optional[str] = None,
        checked_in_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        booking = await self.bookings.mark_arrived(booking_id, arrival_location, checked_in_by)
        await self.notify(booking)
        return booking

    async def notify(self, booking: Dict[str, Any]) -> Tuple[Optional[DeliveryOutcome], Optional[DeliveryOutcome]]:
        """Send arrival notices; a failure here never undoes the check-in."""
        try:
            patient = await self.patients.get_by_id(booking["patientId"]) if booking.get("patientId") else None
            doctor = await self.doctors.get_by_id(booking["doctorId"]) if booking.get("doctorId") else None
        except Exception:
            logger.exception("Failed to load parties for booking %s", booking.get("id"))
            return None, None

        patient_name = (patient or {}).get("name")
        patient_phone = (patient or {}).get("phoneNumber")
        doctor_phone = (doctor or {}).get("phoneNumber")

        patient_outcome = await self.dispatcher.deliver_text(
            patient_phone,
            patient_arrival_text(patient_name, (doctor or {}).get("name"), booking.get("room")),
            patientId=booking.get("patientId"),
            bookingId=booking.get("id"),
        )
        doctor_outcome = await self.dispatcher.deliver_text(
            doctor_phone,
            doctor_arrival_text(patient_name, booking.get("id")),
            doctorId=(doctor or {}).get("id"),
            bookingId=booking.get("id"),
        )
        logger.info(
            "Arrival notices for booking %s: patient=%s doctor=%s",
            booking.get("id"), patient_outcome.status.value, doctor_outcome.status.value,
        )
        return patient_outcome, doctor_outcome
