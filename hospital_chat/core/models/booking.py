"""
Booking-related data models.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class PendingBooking(BaseModel):
    """Scratch state of an in-progress booking, one per phone number."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_phone: str = Field(alias="userPhone")
    patient_id: Optional[str] = Field(default=None, alias="patientId")
    doctor_id: Optional[str] = Field(default=None, alias="doctorId")
    booking_time: Optional[str] = Field(default=None, alias="bookingTime")
    meta: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


@dataclass
class BookingContext:
    """Booking facts carried through every conversation step for one phone."""

    user_phone: str
    has_pending: bool = False
    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    doctor_name: Optional[str] = None
    slot_label: Optional[str] = None
    slot_title: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_pending(cls, user_phone: str, pending: Optional[PendingBooking]) -> "BookingContext":
        if pending is None:
            return cls(user_phone=user_phone)
        meta = dict(pending.meta or {})
        return cls(
            user_phone=user_phone,
            has_pending=True,
            patient_id=pending.patient_id,
            doctor_id=pending.doctor_id,
            doctor_name=meta.get("doctorName"),
            slot_label=pending.booking_time,
            slot_title=meta.get("slotTitle"),
            meta=meta,
        )
