"""
Booking REST endpoints.
"""

from fastapi import APIRouter, Request

from ...core.exceptions import BookingNotFoundError
from .common import json_body


class BookingsHandler:
    """Booking lookup and front-desk check-in."""

    def __init__(self, bookings, checkin):
        self.bookings = bookings
        self.checkin = checkin
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):

        @self.router.get("/{booking_id}")
        async def get_booking(booking_id: str):
            booking = await self.bookings.get_by_id(booking_id)
            if booking is None:
                raise BookingNotFoundError("Booking not found")
            return {"success": True, "booking": booking}

        @self.router.post("/{booking_id}/checkin")
        async def check_in(booking_id: str, request: Request):
            data = await json_body(request, allow_empty=True)
            booking = await self.checkin.check_in(
                booking_id,
                arrival_location=data.get("arrivalLocation"),
                checked_in_by=data.get("checkedInBy"),
            )
            return {"success": True, "booking": booking}
