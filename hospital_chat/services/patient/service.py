"""
Patient service over the document store.
"""

from typing import Any, Dict, List, Optional

from ...core.exceptions import PatientNotFoundError
from ...utils.date import now_iso
from ...utils.ids import unique_suffix
from ...utils.logging import get_logger
from ...utils.phone import PhoneNumberParser
from ..store import DocumentStore, Collections

logger = get_logger("hospital.patients")


class PatientService:
    """Patient profiles with soft delete and an audit trail."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.collection = store.collection(Collections.PATIENTS)
        self.audits = store.collection(Collections.PATIENT_AUDITS)

    async def _audit(self, action: str, patient_id: str, **details) -> None:
        try:
            await self.audits.add({
                "action": action,
                "patientId": patient_id,
                "timestamp": now_iso(),
                **details,
            })
        except Exception:
            logger.exception("Failed to write patient %s audit for %s", action, patient_id)

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create an active patient record."""
        patient = {
            **data,
            "createdAt": now_iso(),
            "updatedAt": now_iso(),
            "isActive": True,
        }
        patient.pop("id", None)
        patient_id = await self.collection.add(patient)
        logger.info("Created patient %s (%s)", patient_id, patient.get("phoneNumber"))
        await self._audit("create", patient_id, data=patient)
        return {"id": patient_id, **patient}

    async def get_by_id(self, patient_id: str) -> Optional[Dict[str, Any]]:
        return await self.collection.get(patient_id)

    async def require(self, patient_id: str) -> Dict[str, Any]:
        patient = await self.get_by_id(patient_id)
        if patient is None:
            raise PatientNotFoundError(f"Patient {patient_id} not found")
        return patient

    async def get_by_phone(self, phone: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Active patient by phone number.

        Tries an exact match first, then compares the last 10 digits so that
        numbers stored with or without a country code still resolve.
        """
        if not phone:
            return None

        exact = await self.collection.where("phoneNumber", phone).where("isActive", True).first()
        if exact is not None:
            return exact

        last_ten = PhoneNumberParser.last_ten(phone)
        if not last_ten:
            return None

        for patient in await self.collection.where("isActive", True).get():
            if PhoneNumberParser.last_ten(patient.get("phoneNumber")) == last_ten:
                return patient
        return None

    async def update(self, patient_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Partial update. Returns None when the patient does not exist."""
        before = await self.get_by_id(patient_id)
        if before is None:
            return None
        payload = {**changes, "updatedAt": now_iso()}
        payload.pop("id", None)
        logger.info("Updating patient %s fields=%s", patient_id, sorted(changes))
        await self.collection.update(patient_id, payload)
        before.pop("id", None)
        await self._audit("update", patient_id, before=before, after=payload)
        return await self.get_by_id(patient_id)

    async def list(self, limit: int = 50, start_after: Optional[str] = None) -> List[Dict[str, Any]]:
        """Active patients, newest first."""
        query = self.collection.where("isActive", True).order_by("createdAt", descending=True)
        if start_after:
            query = query.start_after(start_after)
        return await query.limit(limit).get()

    async def search_by_name(self, term: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Active patients whose name starts with ``term``."""
        patients = await self.collection.where("isActive", True).order_by("name").get()
        matches = [p for p in patients if str(p.get("name") or "").startswith(term)]
        return matches[:limit]

    async def all_records(self) -> List[Dict[str, Any]]:
        """Every patient document, including ones without an isActive flag."""
        return await self.collection.all()

    async def delete(self, patient_id: str) -> bool:
        """Soft delete."""
        before = await self.get_by_id(patient_id)
        if before is None:
            return False
        logger.warning("Soft-deleting patient %s", patient_id)
        await self.collection.update(patient_id, {
            "isActive": False,
            "deletedAt": now_iso(),
            "updatedAt": now_iso(),
        })
        before.pop("id", None)
        await self._audit("delete", patient_id, before=before)
        return True

    async def add_medical_history(self, patient_id: str, entry: Dict[str, Any]) -> List[Dict[str, Any]]:
        patient = await self.require(patient_id)
        history = list(patient.get("medicalHistory") or [])
        history.append({**entry, "timestamp": now_iso(), "id": unique_suffix()})
        await self.update(patient_id, {"medicalHistory": history})
        return history
