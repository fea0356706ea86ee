"""
Patient REST endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Request, status

from ...core.exceptions import ConflictError, PatientNotFoundError
from ...services.patient import PatientService
from ...utils.validation import coerce_limit, require_fields
from .common import json_body, listing


class PatientsHandler:
    """CRUD over patient profiles."""

    def __init__(self, patients: PatientService):
        self.patients = patients
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):

        @self.router.post("", status_code=status.HTTP_201_CREATED)
        async def create_patient(request: Request):
            data = await json_body(request)
            require_fields(data, ["name", "phoneNumber"], "Name and phone number are required")
            existing = await self.patients.get_by_phone(data["phoneNumber"])
            if existing is not None:
                raise ConflictError("Patient with this phone number already exists", existing)
            patient = await self.patients.create(data)
            return {"success": True, "patient": patient}

        @self.router.get("")
        async def list_patients(limit: str = "50", startAfter: Optional[str] = None):
            patients = await self.patients.list(coerce_limit(limit), startAfter)
            return listing("patients", patients)

        @self.router.get("/phone/{phone_number}")
        async def get_patient_by_phone(phone_number: str):
            patient = await self.patients.get_by_phone(phone_number)
            if patient is None:
                raise PatientNotFoundError("Patient not found")
            return {"success": True, "patient": patient}

        @self.router.get("/search/{term}")
        async def search_patients(term: str):
            return listing("patients", await self.patients.search_by_name(term))

        @self.router.get("/{patient_id}")
        async def get_patient(patient_id: str):
            patient = await self.patients.require(patient_id)
            return {"success": True, "patient": patient}

        @self.router.put("/{patient_id}")
        async def update_patient(patient_id: str, request: Request):
            data = await json_body(request)
            patient = await self.patients.update(patient_id, data)
            if patient is None:
                raise PatientNotFoundError("Patient not found")
            return {"success": True, "patient": patient}

        @self.router.post("/{patient_id}/medical-history")
        async def add_medical_history(patient_id: str, request: Request):
            entry = await json_body(request)
            history = await self.patients.add_medical_history(patient_id, entry)
            return {"success": True, "medicalHistory": history}

        @self.router.delete("/{patient_id}")
        async def delete_patient(patient_id: str):
            if not await self.patients.delete(patient_id):
                raise PatientNotFoundError("Patient not found")
            return {"success": True, "message": "Patient deleted successfully"}
