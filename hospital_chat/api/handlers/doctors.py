"""
Doctor REST endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Request, status

from ...core.exceptions import ConflictError, DoctorNotFoundError, ValidationFailed
from ...services.doctor import DoctorService
from ...utils.validation import coerce_limit, require_fields
from .common import json_body, listing


class DoctorsHandler:
    """CRUD over doctor profiles, availability and schedules."""

    def __init__(self, doctors: DoctorService):
        self.doctors = doctors
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):

        @self.router.post("", status_code=status.HTTP_201_CREATED)
        async def create_doctor(request: Request):
            data = await json_body(request)
            require_fields(
                data,
                ["name", "phoneNumber", "specialization"],
                "Name, phone number, and specialization are required",
            )
            existing = await self.doctors.get_by_phone(data["phoneNumber"])
            if existing is not None:
                raise ConflictError("Doctor with this phone number already exists", existing)
            doctor = await self.doctors.create(data)
            return {"success": True, "doctor": doctor}

        @self.router.get("")
        async def list_doctors(limit: str = "50", startAfter: Optional[str] = None):
            doctors = await self.doctors.list(coerce_limit(limit), startAfter)
            return listing("doctors", doctors)

        @self.router.get("/available/list")
        async def available_doctors():
            return listing("doctors", await self.doctors.available())

        @self.router.get("/phone/{phone_number}")
        async def get_doctor_by_phone(phone_number: str):
            doctor = await self.doctors.get_by_phone(phone_number)
            if doctor is None:
                raise DoctorNotFoundError("Doctor not found")
            return {"success": True, "doctor": doctor}

        @self.router.get("/specialization/{specialization}")
        async def doctors_by_specialization(specialization: str):
            return listing("doctors", await self.doctors.by_specialization(specialization))

        @self.router.get("/{doctor_id}")
        async def get_doctor(doctor_id: str):
            return {"success": True, "doctor": await self.doctors.require(doctor_id)}

        @self.router.put("/{doctor_id}")
        async def update_doctor(doctor_id: str, request: Request):
            data = await json_body(request)
            doctor = await self.doctors.update(doctor_id, data)
            if doctor is None:
                raise DoctorNotFoundError("Doctor not found")
            return {"success": True, "doctor": doctor}

        @self.router.patch("/{doctor_id}/availability")
        async def set_availability(doctor_id: str, request: Request):
            data = await json_body(request)
            is_available = data.get("isAvailable")
            if not isinstance(is_available, bool):
                raise ValidationFailed(["isAvailable"], "isAvailable must be a boolean value")
            doctor = await self.doctors.set_availability(doctor_id, is_available)
            if doctor is None:
                raise DoctorNotFoundError("Doctor not found")
            return {"success": True, "doctor": doctor}

        @self.router.post("/{doctor_id}/schedule")
        async def add_schedule(doctor_id: str, request: Request):
            entry = await json_body(request)
            schedule = await self.doctors.add_schedule(doctor_id, entry)
            return {"success": True, "schedule": schedule}

        @self.router.delete("/{doctor_id}")
        async def delete_doctor(doctor_id: str):
            if not await self.doctors.delete(doctor_id):
                raise DoctorNotFoundError("Doctor not found")
            return {"success": True, "message": "Doctor deleted successfully"}
