"""
Booking and pending-booking service.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ...core.enums import BookingStatus
from ...core.exceptions import BookingNotFoundError
from ...core.models import PendingBooking
from ...utils.date import DateParser, now_iso, now_utc, parse_iso
from ...utils.logging import get_logger
from ..store import DocumentStore, Collections

logger = get_logger("hospital.bookings")


def select_checkin_candidates(
    bookings: List[Dict[str, Any]],
    now: datetime,
    window_hours: int = 6,
) -> List[Dict[str, Any]]:
    """
    Scheduled bookings a patient could be checking in for.

    Bookings within ``window_hours`` of ``now`` are preferred; when none fall
    inside the window every scheduled booking is returned.
    """
    scheduled = [b for b in bookings if b.get("status") == BookingStatus.SCHEDULED.value]
    window = timedelta(hours=window_hours)
    nearby = []
    for booking in scheduled:
        when = parse_iso(booking.get("bookingTime"))
        if when is not None and abs(when - now) <= window:
            nearby.append(booking)
    return nearby or scheduled


class BookingService:
    """Finalized bookings plus the per-phone pending booking scratch record."""

    def __init__(self, store: DocumentStore, date_parser: Optional[DateParser] = None):
        self.store = store
        self.collection = store.collection(Collections.BOOKINGS)
        self.pending = store.collection(Collections.PENDING_BOOKINGS)
        self.date_parser = date_parser or DateParser()

    async def create_booking(
        self,
        patient_id: Optional[str],
        doctor_id: Optional[str],
        booking_time: Any = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Persist a scheduled booking. Unparseable times become now."""
        when = self.date_parser.parse_booking_time(booking_time)
        booking = {
            "patientId": patient_id,
            "doctorId": doctor_id,
            "bookingTime": when.isoformat(),
            "status": BookingStatus.SCHEDULED.value,
            "meta": dict(meta or {}),
            "createdAt": now_iso(),
            "updatedAt": now_iso(),
        }
        booking_id = await self.collection.add(booking)
        try:
            await self.collection.update(booking_id, {"bookingId": booking_id})
            booking["bookingId"] = booking_id
        except Exception:
            logger.exception("Failed to write bookingId into booking %s", booking_id)
        logger.info("Created booking %s patient=%s doctor=%s", booking_id, patient_id, doctor_id)
        return {"id": booking_id, **booking}

    async def get_by_id(self, booking_id: str) -> Optional[Dict[str, Any]]:
        return await self.collection.get(booking_id)

    async def update(self, booking_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = {**changes, "updatedAt": now_iso()}
        if not await self.collection.update(booking_id, payload):
            return None
        return await self.get_by_id(booking_id)

    async def for_patient(self, patient_id: str) -> List[Dict[str, Any]]:
        return await self.collection.where("patientId", patient_id).get()

    async def scheduled_for_patient(self, patient_id: str) -> List[Dict[str, Any]]:
        return await (
            self.collection.where("patientId", patient_id)
            .where("status", BookingStatus.SCHEDULED.value)
            .order_by("bookingTime")
            .get()
        )

    async def mark_arrived(
        self,
        booking_id: str,
        arrival_location: Optional[str] = None,
        checked_in_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Move a booking to arrived and stamp the arrival fields."""
        arrived_at = now_iso()
        booking = await self.update(booking_id, {
            "status": BookingStatus.ARRIVED.value,
            "arrivalTime": arrived_at,
            "arrivalLocation": arrival_location,
            "checkedInBy": checked_in_by,
        })
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        if not booking.get("bookingId"):
            booking = await self.update(booking_id, {"bookingId": booking_id}) or booking
        logger.info("Booking %s marked arrived", booking_id)
        return booking

    async def save_pending(
        self,
        user_phone: str,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        booking_time: Any = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> PendingBooking:
        """
        Create or merge the pending booking for a phone.

        Only the fields provided are written and ``meta`` is merged key by
        key, so doctor and slot choices made in separate steps both survive.
        """
        existing = await self.pending.get(user_phone)
        merged_meta = dict((existing or {}).get("meta") or {})
        merged_meta.update(meta or {})

        payload: Dict[str, Any] = {
            "userPhone": user_phone,
            "meta": merged_meta,
            "updatedAt": now_iso(),
        }
        if existing is None:
            payload["createdAt"] = now_iso()
        if patient_id is not None:
            payload["patientId"] = patient_id
        if doctor_id is not None:
            payload["doctorId"] = doctor_id
        if booking_time is not None:
            payload["bookingTime"] = booking_time.isoformat() if isinstance(booking_time, datetime) else booking_time

        await self.pending.set(user_phone, payload, merge=True)
        return await self.get_pending(user_phone)

    async def get_pending(self, user_phone: str) -> Optional[PendingBooking]:
        document = await self.pending.get(user_phone)
        if document is None:
            return None
        return PendingBooking.model_validate(document)

    async def delete_pending(self, user_phone: str) -> bool:
        return await self.pending.delete(user_phone)

    async def checkin_candidates(self, patient_id: str, window_hours: int = 6) -> List[Dict[str, Any]]:
        bookings = await self.scheduled_for_patient(patient_id)
        return select_checkin_candidates(bookings, now_utc(), window_hours)
