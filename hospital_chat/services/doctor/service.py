"""
Doctor service over the document store.
"""

from typing import Any, Dict, List, Optional

from ...core.exceptions import DoctorNotFoundError
from ...utils.date import now_iso
from ...utils.ids import unique_suffix
from ...utils.logging import get_logger
from ...utils.phone import PhoneNumberParser
from ..store import DocumentStore, Collections

logger = get_logger("hospital.doctors")


class DoctorService:
    """Doctor profiles with availability and an appended schedule."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.collection = store.collection(Collections.DOCTORS)

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        doctor = {
            **data,
            "createdAt": now_iso(),
            "updatedAt": now_iso(),
            "isActive": True,
            "isAvailable": True,
        }
        doctor.pop("id", None)
        doctor_id = await self.collection.add(doctor)
        logger.info("Created doctor %s (%s)", doctor_id, doctor.get("name"))
        return {"id": doctor_id, **doctor}

    async def get_by_id(self, doctor_id: str) -> Optional[Dict[str, Any]]:
        return await self.collection.get(doctor_id)

    async def require(self, doctor_id: str) -> Dict[str, Any]:
        doctor = await self.get_by_id(doctor_id)
        if doctor is None:
            raise DoctorNotFoundError(f"Doctor {doctor_id} not found")
        return doctor

    async def get_by_phone(self, phone: Optional[str]) -> Optional[Dict[str, Any]]:
        """Active doctor by exact phone, falling back to the last 10 digits."""
        if not phone:
            return None
        exact = await self.collection.where("phoneNumber", phone).where("isActive", True).first()
        if exact is not None:
            return exact
        for doctor in await self.collection.where("isActive", True).get():
            if PhoneNumberParser.same_number(doctor.get("phoneNumber"), phone):
                return doctor
        return None

    async def by_specialization(self, specialization: str) -> List[Dict[str, Any]]:
        """Active, available doctors of one specialization."""
        return await (
            self.collection.where("specialization", specialization)
            .where("isActive", True)
            .where("isAvailable", True)
            .get()
        )

    async def update(self, doctor_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = {**changes, "updatedAt": now_iso()}
        payload.pop("id", None)
        if not await self.collection.update(doctor_id, payload):
            return None
        return await self.get_by_id(doctor_id)

    async def list(self, limit: int = 50, start_after: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.collection.where("isActive", True).order_by("name")
        if start_after:
            query = query.start_after(start_after)
        return await query.limit(limit).get()

    async def available(self) -> List[Dict[str, Any]]:
        return await self.collection.where("isActive", True).where("isAvailable", True).order_by("name").get()

    async def all_records(self) -> List[Dict[str, Any]]:
        """Every doctor document, including ones without an isActive flag."""
        return await self.collection.all()

    async def set_availability(self, doctor_id: str, is_available: bool) -> Optional[Dict[str, Any]]:
        return await self.update(doctor_id, {"isAvailable": is_available})

    async def add_schedule(self, doctor_id: str, entry: Dict[str, Any]) -> List[Dict[str, Any]]:
        doctor = await self.require(doctor_id)
        schedule = list(doctor.get("schedule") or [])
        schedule.append({**entry, "id": unique_suffix(), "createdAt": now_iso()})
        await self.update(doctor_id, {"schedule": schedule})
        return schedule

    async def delete(self, doctor_id: str) -> bool:
        """Soft delete."""
        updated = await self.update(doctor_id, {"isActive": False, "deletedAt": now_iso()})
        return updated is not None
